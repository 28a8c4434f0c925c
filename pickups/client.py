"""HTTP client for submitting and listing pickup proposals."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Sequence, Tuple
from urllib.parse import quote, urlencode

import httpx

from .codec import decode_proposal_list, dump_submission, encode_filter_query
from .errors import ExchangeError, InvalidEndpoint, classify_response, classify_transport_error
from .models import Credentials, Proposal, ProposalFilter, Submission

if TYPE_CHECKING:  # pragma: no cover
    from .config import ExchangeConfig

RESOURCE_PATH = "/rest/v1/proposals"

_default_logger = logging.getLogger("pickups.client")


def _normalize_base_url(base_url: str) -> str:
    cleaned = (base_url or "").strip()
    if not cleaned:
        raise InvalidEndpoint("base URL must not be empty")
    return cleaned.rstrip("/")


def build_endpoint(base_url: str, path: str = RESOURCE_PATH) -> httpx.URL:
    """Join the configured base address and a resource path into a URL."""

    if not path.startswith("/"):
        path = "/" + path
    try:
        url = httpx.URL(f"{_normalize_base_url(base_url)}{path}")
    except httpx.InvalidURL as exc:
        raise InvalidEndpoint(str(exc)) from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise InvalidEndpoint(f"'{base_url}' is not an absolute http(s) address")
    return url


def with_query(url: httpx.URL, params: Sequence[Tuple[str, str]]) -> httpx.URL:
    """Attach ``params`` to ``url``, leaving the query grammar's ``*`` unescaped."""

    query = urlencode(list(params), safe="*", quote_via=quote)
    return httpx.URL(f"{url}?{query}")


def _auth_headers(credentials: Credentials) -> Dict[str, str]:
    return {
        "apikey": credentials.api_key,
        "Authorization": f"Bearer {credentials.bearer_token}",
    }


class ProposalClient:
    """Exchange pickup proposals with the remote store.

    Every call performs exactly one HTTP request and keeps nothing between
    calls. Failures of the exchange itself are raised as
    :class:`~pickups.errors.ExchangeError` subclasses. Calling without
    credentials, when the client was built without defaults, is a programming
    error and raises :class:`ValueError` before any request is made.
    """

    def __init__(
        self,
        base_url: str,
        *,
        credentials: Credentials | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._base_url = base_url
        self._credentials = credentials
        self._timeout = timeout
        self._transport = transport
        self._logger = logger or _default_logger

    @classmethod
    def from_config(cls, config: "ExchangeConfig", **kwargs) -> "ProposalClient":
        return cls(
            config.base_url,
            credentials=config.credentials,
            timeout=config.timeout,
            **kwargs,
        )

    def _resolve_credentials(self, credentials: Credentials | None) -> Credentials:
        resolved = credentials or self._credentials
        if resolved is None:
            raise ValueError("Credentials must be supplied to the proposal client")
        return resolved

    async def _exchange(
        self,
        method: str,
        url: httpx.URL,
        *,
        headers: Dict[str, str],
        content: bytes | None = None,
    ) -> httpx.Response:
        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            try:
                response = await client.request(
                    method,
                    url,
                    headers=headers,
                    content=content,
                )
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                error = classify_transport_error(exc)
                self._logger.warning("%s %s failed: %s", method, url, error)
                raise error from exc

        rejection = classify_response(response)
        if rejection is not None:
            self._logger.warning(
                "Remote store rejected %s %s with status %s: %s",
                method,
                response.request.url,
                rejection.status_code,
                rejection.message or "no error details",
            )
            raise rejection
        return response

    async def submit(self, submission: Submission, credentials: Credentials | None = None) -> None:
        """Create a proposal on the remote store.

        The store is asked not to return a representation, so nothing is
        returned on success. Submitting twice creates two proposals.
        """

        auth = self._resolve_credentials(credentials)
        url = build_endpoint(self._base_url)
        body = dump_submission(submission)

        headers = _auth_headers(auth)
        headers["Content-Type"] = "application/json"
        headers["Prefer"] = "return=minimal"

        self._logger.debug("Submitting proposal to %s", url)
        await self._exchange("POST", url, headers=headers, content=body)
        self._logger.info("Proposal for %r submitted", submission.location)

    async def list(
        self,
        proposal_filter: ProposalFilter | None = None,
        credentials: Credentials | None = None,
    ) -> List[Proposal]:
        """Fetch proposals, optionally restricted to one acquirer."""

        auth = self._resolve_credentials(credentials)
        url = with_query(build_endpoint(self._base_url), encode_filter_query(proposal_filter))

        headers = _auth_headers(auth)
        headers["Accept"] = "application/json"

        self._logger.debug("Fetching proposals from %s", url)
        response = await self._exchange("GET", url, headers=headers)

        try:
            proposals = decode_proposal_list(response.content)
        except ExchangeError:
            self._logger.warning("Failed to decode proposals returned by %s", response.request.url)
            self._logger.debug("Raw response body: %r", response.content)
            raise
        self._logger.info("Fetched %d proposal(s)", len(proposals))
        return proposals


__all__ = [
    "ProposalClient",
    "RESOURCE_PATH",
    "build_endpoint",
    "with_query",
]
