"""Client library for exchanging pickup proposals with the remote store."""

from __future__ import annotations

from .client import ProposalClient
from .errors import (
    DecodingFailure,
    EncodingFailure,
    ExchangeError,
    InvalidEndpoint,
    MalformedResponse,
    ServerRejected,
    TransportFailure,
)
from .models import Credentials, Proposal, ProposalFilter, Submission


def create_devstore_app(*args, **kwargs):
    """Factory for the in-memory development store application."""

    from .devstore import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Credentials",
    "DecodingFailure",
    "EncodingFailure",
    "ExchangeError",
    "InvalidEndpoint",
    "MalformedResponse",
    "Proposal",
    "ProposalClient",
    "ProposalFilter",
    "ServerRejected",
    "Submission",
    "TransportFailure",
    "create_devstore_app",
]
