"""Domain models for pickup proposals exchanged with the remote store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class Proposal:
    """A pickup proposal persisted by the remote store."""

    id: int
    created_at: datetime
    location: str
    start_time: datetime
    end_time: datetime
    fee: Optional[Decimal] = None
    giver_id: Optional[str] = None
    acquirer_id: Optional[str] = None

    @property
    def is_free(self) -> bool:
        return self.fee is None


@dataclass(frozen=True)
class Submission:
    """Caller-constructed payload used to create a :class:`Proposal`."""

    location: str
    start_time: datetime
    end_time: datetime
    fee: Optional[Decimal] = None


@dataclass(frozen=True)
class ProposalFilter:
    """Restricts a list query to proposals bound to one acquirer."""

    acquirer_id: Optional[str] = None


@dataclass(frozen=True)
class Credentials:
    api_key: str
    bearer_token: str

    def __repr__(self) -> str:
        return "Credentials(api_key='***', bearer_token='***')"


__all__ = ["Credentials", "Proposal", "ProposalFilter", "Submission"]
