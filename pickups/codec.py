"""Wire-format conversion between proposal models and the remote store's JSON.

All formatting conventions of the exchange live here: timestamps travel as
ISO-8601 strings with millisecond precision and a ``Z`` marker, fees travel
as plain JSON numbers and column names use snake_case.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import DecodingFailure, EncodingFailure
from .models import Proposal, ProposalFilter, Submission


def format_timestamp(value: datetime) -> str:
    """Render ``value`` as ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Naive datetimes are taken to already be in UTC.
    """

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


def parse_timestamp(value: object) -> datetime:
    """Parse an ISO-8601 timestamp string into an aware UTC datetime."""

    if not isinstance(value, str):
        raise ValueError(f"expected an ISO-8601 string, got {type(value).__name__}")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def encode_fee(fee: object) -> int | float:
    if isinstance(fee, bool):
        raise EncodingFailure("fee must be a number")
    if isinstance(fee, Decimal):
        amount = fee
    else:
        try:
            amount = Decimal(str(fee))
        except InvalidOperation as exc:
            raise EncodingFailure(f"fee {fee!r} is not a number") from exc
    if not amount.is_finite():
        raise EncodingFailure("fee must be a finite number")
    # Whole amounts stay integers so that a zero fee is written as ``0``.
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


def encode_submission(submission: Submission) -> Dict[str, Any]:
    """Return the JSON object sent when creating a proposal.

    ``fee`` is only present when the submission carries one; a fee of zero
    is kept because it differs from "no fee" on the wire.
    """

    try:
        start_time = format_timestamp(submission.start_time)
        end_time = format_timestamp(submission.end_time)
    except OverflowError as exc:
        raise EncodingFailure(f"timestamp out of range: {exc}") from exc

    payload: Dict[str, Any] = {
        "location": submission.location,
        "start_time": start_time,
        "end_time": end_time,
    }
    if submission.fee is not None:
        payload["fee"] = encode_fee(submission.fee)
    return payload


def dump_submission(submission: Submission) -> bytes:
    payload = encode_submission(submission)
    try:
        return json.dumps(payload, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise EncodingFailure(str(exc)) from exc


def encode_filter_query(proposal_filter: Optional[ProposalFilter] = None) -> List[Tuple[str, str]]:
    query: List[Tuple[str, str]] = [("select", "*")]
    if proposal_filter is not None and proposal_filter.acquirer_id is not None:
        query.append(("acquirer_id", f"eq.{proposal_filter.acquirer_id}"))
    return query


def encode_proposal(proposal: Proposal) -> Dict[str, Any]:
    """Return the row representation the remote store uses for a proposal."""

    return {
        "id": proposal.id,
        "created_at": format_timestamp(proposal.created_at),
        "location": proposal.location,
        "start_time": format_timestamp(proposal.start_time),
        "end_time": format_timestamp(proposal.end_time),
        "fee": encode_fee(proposal.fee) if proposal.fee is not None else None,
        "giver_id": proposal.giver_id,
        "acquirer_id": proposal.acquirer_id,
    }


def _require(record: Mapping[str, Any], key: str) -> Any:
    if key not in record:
        raise ValueError(f"missing field '{key}'")
    return record[key]


def _optional_text(record: Mapping[str, Any], key: str) -> Optional[str]:
    value = record.get(key)
    if value is None or isinstance(value, str):
        return value
    raise ValueError(f"field '{key}' must be a string or null")


def _decode_fee(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, Decimal)):
        raise ValueError("field 'fee' must be a number or null")
    return Decimal(value)


def _decode_proposal(record: Any) -> Proposal:
    if not isinstance(record, dict):
        raise ValueError("expected a JSON object")

    proposal_id = _require(record, "id")
    if isinstance(proposal_id, bool) or not isinstance(proposal_id, int):
        raise ValueError("field 'id' must be an integer")
    location = _require(record, "location")
    if not isinstance(location, str):
        raise ValueError("field 'location' must be a string")

    return Proposal(
        id=proposal_id,
        created_at=parse_timestamp(_require(record, "created_at")),
        location=location,
        start_time=parse_timestamp(_require(record, "start_time")),
        end_time=parse_timestamp(_require(record, "end_time")),
        fee=_decode_fee(record.get("fee")),
        giver_id=_optional_text(record, "giver_id"),
        acquirer_id=_optional_text(record, "acquirer_id"),
    )


def decode_proposal_list(data: bytes | str) -> List[Proposal]:
    """Decode a JSON array of proposal rows, failing as a whole on any bad row."""

    try:
        parsed = json.loads(data, parse_float=Decimal)
    except (ValueError, RecursionError) as exc:
        raise DecodingFailure(str(exc)) from exc

    if not isinstance(parsed, list):
        raise DecodingFailure(f"expected a JSON array, got {type(parsed).__name__}")

    proposals: List[Proposal] = []
    for index, record in enumerate(parsed):
        try:
            proposals.append(_decode_proposal(record))
        except (ValueError, OverflowError) as exc:
            raise DecodingFailure(f"proposal at index {index}: {exc}") from exc
    return proposals


__all__ = [
    "decode_proposal_list",
    "dump_submission",
    "encode_fee",
    "encode_filter_query",
    "encode_proposal",
    "encode_submission",
    "format_timestamp",
    "parse_timestamp",
]
