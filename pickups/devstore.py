"""In-memory FastAPI stand-in for the remote proposal store.

Only the ``/rest/v1/proposals`` resource is emulated, with the subset of the
REST query grammar the client relies on: ``select=*`` and ``acquirer_id=eq.<id>``.
"""
from __future__ import annotations

import logging
import secrets
import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Header, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from .client import RESOURCE_PATH
from .codec import encode_proposal
from .models import Proposal

logger = logging.getLogger("pickups.devstore")


class StoreError(Exception):
    """Error rendered as a PostgREST-style JSON body."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        code: str | None = None,
        hint: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.hint = hint
        self.details = details

    def to_payload(self) -> Dict[str, Optional[str]]:
        return {
            "message": self.message,
            "code": self.code,
            "hint": self.hint,
            "details": self.details,
        }


class ProposalCreateRequest(BaseModel):
    location: str
    start_time: datetime
    end_time: datetime
    fee: Optional[Decimal] = Field(default=None, ge=0)
    giver_id: Optional[str] = None
    acquirer_id: Optional[str] = None

    class Config:
        extra = "forbid"

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_to_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        try:
            return value.astimezone(timezone.utc)
        except OverflowError as exc:
            raise ValueError("timestamp is out of range") from exc


class ProposalStore:
    """Thread-safe in-memory table of proposals."""

    def __init__(self) -> None:
        self._rows: List[Proposal] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def insert(self, request: ProposalCreateRequest) -> Proposal:
        with self._lock:
            proposal = Proposal(
                id=self._next_id,
                created_at=self._now(),
                location=request.location,
                start_time=request.start_time,
                end_time=request.end_time,
                fee=request.fee,
                giver_id=request.giver_id,
                acquirer_id=request.acquirer_id,
            )
            self._rows.append(proposal)
            self._next_id += 1
        return proposal

    def select(self, *, acquirer_id: str | None = None) -> List[Proposal]:
        with self._lock:
            rows = list(self._rows)
        if acquirer_id is None:
            return rows
        return [row for row in rows if row.acquirer_id == acquirer_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)


def _parse_eq_filter(column: str, raw: str | None) -> str | None:
    if raw is None:
        return None
    operator, dot, value = raw.partition(".")
    if operator != "eq" or not dot:
        raise StoreError(
            status.HTTP_400_BAD_REQUEST,
            f"failed to parse filter ({column}={raw})",
            code="PGRST100",
            hint="Only the 'eq.' operator is supported by the development store",
        )
    return value


def create_app(api_key: str, *, store: ProposalStore | None = None) -> FastAPI:
    """Return an application serving the proposal resource from memory."""

    cleaned_key = (api_key or "").strip()
    if not cleaned_key:
        raise ValueError("The development store requires a non-empty API key")

    if store is None:
        store = ProposalStore()

    app = FastAPI(
        title="Pickup proposal development store",
        description="In-memory emulation of the remote proposal table",
        version="1.0.0",
    )
    app.state.store = store

    def require_credentials(
        apikey: Optional[str] = Header(default=None),
        authorization: Optional[str] = Header(default=None),
    ) -> None:
        if not apikey:
            raise StoreError(
                status.HTTP_401_UNAUTHORIZED,
                "No API key found in request",
                hint="No `apikey` request header or url param was found.",
            )
        if not secrets.compare_digest(apikey.encode("utf-8"), cleaned_key.encode("utf-8")):
            raise StoreError(status.HTTP_401_UNAUTHORIZED, "Invalid API key")
        scheme, _, token = (authorization or "").partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise StoreError(status.HTTP_401_UNAUTHORIZED, "Missing bearer token")

    @app.post(RESOURCE_PATH, dependencies=[Depends(require_credentials)])
    async def create_proposal(
        payload: ProposalCreateRequest,
        prefer: Optional[str] = Header(default=None),
    ) -> Response:
        proposal = store.insert(payload)
        logger.info("Stored proposal %s at %r", proposal.id, proposal.location)
        if prefer and "return=representation" in prefer:
            return JSONResponse(status_code=status.HTTP_201_CREATED, content=[encode_proposal(proposal)])
        return Response(status_code=status.HTTP_201_CREATED)

    @app.get(RESOURCE_PATH, dependencies=[Depends(require_credentials)])
    async def list_proposals(
        select: str = Query(default="*"),
        acquirer_id: Optional[str] = Query(default=None),
    ) -> JSONResponse:
        if select != "*":
            raise StoreError(
                status.HTTP_400_BAD_REQUEST,
                f"unsupported select list '{select}'",
                code="PGRST100",
            )
        rows = store.select(acquirer_id=_parse_eq_filter("acquirer_id", acquirer_id))
        return JSONResponse(content=[encode_proposal(row) for row in rows])

    @app.exception_handler(StoreError)
    async def handle_store_error(_: Request, exc: StoreError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(_: Request, exc: RequestValidationError):
        errors = exc.errors()
        details = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ())[1:]) or 'body'}: {error.get('msg')}"
            for error in errors
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "message": "Invalid proposal payload",
                "code": "PGRST102",
                "hint": None,
                "details": details or None,
            },
        )

    return app


__all__ = ["ProposalCreateRequest", "ProposalStore", "StoreError", "create_app"]
