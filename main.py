"""Command-line front-end for proposing and reviewing pickups."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from datetime import datetime
from decimal import Decimal, InvalidOperation
from functools import partial
from pathlib import Path
from typing import List, Sequence

import anyio

from pickups.client import ProposalClient
from pickups.config import load_config
from pickups.errors import ExchangeError
from pickups.models import Proposal, ProposalFilter, Submission

logger = logging.getLogger("pickups.main")

_DEFAULT_DEVSTORE_PORT = 54321


def _parse_datetime(value: str) -> datetime:
    """Parse an ISO-8601 date and time, reading naive values as local time."""

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"'{value}' is not an ISO-8601 date and time") from exc
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def _parse_fee(value: str) -> Decimal:
    try:
        fee = Decimal(value.strip())
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError("Please enter a valid number for the fee.") from exc
    if not fee.is_finite() or fee < 0:
        raise argparse.ArgumentTypeError("Please enter a valid number for the fee.")
    return fee


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Pickup proposal exchange utilities")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the exchange configuration file (default: $PICKUPS_CONFIG or config/exchange.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    propose_parser = subparsers.add_parser("propose", help="Propose a pickup window and location")
    propose_parser.add_argument("--location", required=True, help="Where the pickup should happen")
    propose_parser.add_argument(
        "--start",
        required=True,
        type=_parse_datetime,
        help="Start of the pickup window (ISO-8601, local time when no offset is given)",
    )
    propose_parser.add_argument(
        "--end",
        required=True,
        type=_parse_datetime,
        help="End of the pickup window (ISO-8601, local time when no offset is given)",
    )
    propose_parser.add_argument("--fee", type=_parse_fee, default=None, help="Optional fee, e.g. 5.00")

    list_parser = subparsers.add_parser("list", help="List proposed pickups")
    list_parser.add_argument(
        "--acquirer-id",
        default=None,
        help="Only show proposals bound to this acquirer",
    )

    devstore_parser = subparsers.add_parser(
        "devstore", help="Serve an in-memory development store for local testing"
    )
    devstore_parser.add_argument("--host", default="127.0.0.1", help="Bind address for the store")
    devstore_parser.add_argument(
        "--port",
        type=int,
        default=_DEFAULT_DEVSTORE_PORT,
        help=f"Port for the store (default: {_DEFAULT_DEVSTORE_PORT})",
    )
    devstore_parser.add_argument(
        "--api-key",
        default=None,
        help="API key clients must send (default: $PICKUPS_API_KEY)",
    )

    return parser.parse_args(list(argv) if argv is not None else sys.argv[1:])


def build_submission(
    location: str,
    start_time: datetime,
    end_time: datetime,
    fee: Decimal | None = None,
) -> Submission:
    """Apply the pickup form's checks and return a submission."""

    cleaned = location.strip()
    if not cleaned:
        raise ValueError("Please enter a location for the pickup.")
    if end_time <= start_time:
        raise ValueError("End time must be after start time.")
    return Submission(location=cleaned, start_time=start_time, end_time=end_time, fee=fee)


def format_proposals(proposals: Sequence[Proposal]) -> List[str]:
    if not proposals:
        return ["No proposals found."]

    lines = [
        f"{len(proposals)} proposal(s) found:",
        f"{'ID':>4}  {'Location':<28}  {'Starts':<17}  {'Ends':<17}  Fee",
        "-" * 80,
    ]
    for proposal in proposals:
        starts = proposal.start_time.astimezone().strftime("%Y-%m-%d %H:%M")
        ends = proposal.end_time.astimezone().strftime("%Y-%m-%d %H:%M")
        fee = "Free" if proposal.fee is None else f"{proposal.fee:.2f}"
        lines.append(f"{proposal.id:>4}  {proposal.location:<28}  {starts:<17}  {ends:<17}  {fee}")
    return lines


def _propose(client: ProposalClient, args: argparse.Namespace) -> int:
    try:
        submission = build_submission(args.location, args.start, args.end, args.fee)
    except ValueError as exc:
        print(exc)
        return 2

    print("--- Proposal Details ---")
    print(f"Location: {submission.location}")
    print(f"Start Time: {submission.start_time:%Y-%m-%d %H:%M}")
    print(f"End Time: {submission.end_time:%Y-%m-%d %H:%M}")
    print(f"Proposed Fee: {submission.fee if submission.fee is not None else 'None'}")

    try:
        anyio.run(client.submit, submission)
    except ExchangeError as exc:
        print(f"Failed to send proposal: {exc}")
        return 1

    print("Proposal sent.")
    return 0


def _list(client: ProposalClient, args: argparse.Namespace) -> int:
    proposal_filter = ProposalFilter(acquirer_id=args.acquirer_id)
    try:
        proposals = anyio.run(partial(client.list, proposal_filter))
    except ExchangeError as exc:
        print(f"Error: {exc}")
        return 1

    for line in format_proposals(proposals):
        print(line)
    return 0


def _serve_devstore(*, host: str, port: int, api_key: str | None) -> int:
    from pickups.devstore import create_app
    import uvicorn

    key = api_key or os.getenv("PICKUPS_API_KEY")
    if not key:
        print("An API key is required. Pass --api-key or set PICKUPS_API_KEY.")
        return 2

    logger.info("Starting development store on http://%s:%s", host, port)
    uvicorn.run(create_app(key), host=host, port=port, log_level="info")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)

    if args.command == "devstore":
        return _serve_devstore(host=args.host, port=args.port, api_key=args.api_key)

    try:
        config = load_config(args.config)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}")
        return 2

    client = ProposalClient.from_config(config)
    if args.command == "propose":
        return _propose(client, args)
    return _list(client, args)


if __name__ == "__main__":
    raise SystemExit(main())
