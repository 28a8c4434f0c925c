"""Failure taxonomy for proposal exchanges and the helpers that classify them."""

from __future__ import annotations

import json
from typing import Dict, Optional

import httpx


class ExchangeError(RuntimeError):
    """Base class for every failure raised by the proposal exchange."""


class InvalidEndpoint(ExchangeError):
    """Raised when the base address and resource path do not form a usable URL."""

    def __init__(self, detail: str | None = None) -> None:
        message = "Invalid remote store URL"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.detail = detail


class EncodingFailure(ExchangeError):
    """Raised when an outbound payload cannot be serialised."""

    def __init__(self, detail: str | None = None) -> None:
        message = "Failed to encode proposal data"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.detail = detail


class TransportFailure(ExchangeError):
    """Raised when the network exchange did not complete."""

    def __init__(self, cause: str) -> None:
        super().__init__(f"Network error: {cause}")
        self.cause = cause


class ServerRejected(ExchangeError):
    """Raised when the remote store answers with a status outside [200, 300)."""

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        *,
        code: str | None = None,
        hint: str | None = None,
        details: str | None = None,
    ) -> None:
        description = f"Request failed with status code {status_code}"
        if message is not None:
            description = f"{description} - {message}"
        super().__init__(description)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.hint = hint
        self.details = details


class MalformedResponse(ExchangeError):
    """Raised when the transport produced something that is not an HTTP response."""

    def __init__(self, detail: str | None = None) -> None:
        message = "Invalid response received from server"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.detail = detail


class DecodingFailure(ExchangeError):
    """Raised when a successful response body cannot be decoded."""

    def __init__(self, cause: str) -> None:
        super().__init__(f"Failed to decode server response: {cause}")
        self.cause = cause


def _parse_error_body(body: bytes) -> Optional[Dict[str, Optional[str]]]:
    try:
        parsed = json.loads(body)
    except (TypeError, ValueError):
        return None

    if not isinstance(parsed, dict):
        return None
    message = parsed.get("message")
    if not isinstance(message, str):
        return None

    fields: Dict[str, Optional[str]] = {"message": message}
    for key in ("code", "hint", "details"):
        value = parsed.get(key)
        fields[key] = value if isinstance(value, str) else None
    return fields


def extract_error_message(body: bytes) -> Optional[str]:
    """Return the top-level ``message`` of an error body, if there is one."""

    fields = _parse_error_body(body)
    if fields is None:
        return None
    return fields["message"]


def classify_response(response: httpx.Response) -> Optional[ServerRejected]:
    """Return ``None`` for a 2xx response, otherwise the matching rejection."""

    if 200 <= response.status_code < 300:
        return None

    fields = _parse_error_body(response.content) or {}
    return ServerRejected(
        response.status_code,
        fields.get("message"),
        code=fields.get("code"),
        hint=fields.get("hint"),
        details=fields.get("details"),
    )


def classify_transport_error(exc: Exception) -> ExchangeError:
    """Map an exception raised while performing the exchange onto the taxonomy."""

    if isinstance(exc, ExchangeError):
        return exc
    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return InvalidEndpoint(str(exc) or None)
    if isinstance(exc, (httpx.RemoteProtocolError, httpx.DecodingError)):
        return MalformedResponse(str(exc) or None)
    return TransportFailure(str(exc) or exc.__class__.__name__)


__all__ = [
    "DecodingFailure",
    "EncodingFailure",
    "ExchangeError",
    "InvalidEndpoint",
    "MalformedResponse",
    "ServerRejected",
    "TransportFailure",
    "classify_response",
    "classify_transport_error",
    "extract_error_message",
]
