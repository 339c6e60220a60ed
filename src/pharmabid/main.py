#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
import threading
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from pharmabid import app
from pharmabid.config import ConfigurationError, configure_logging
from pharmabid.domain.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pharmabid", description="Inventory reconciliation and bid request expiry"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    upload = commands.add_parser("upload", help="Reconcile a distributor CSV export")
    upload.add_argument("csv", type=Path, help="Path to the inventory CSV file")
    upload.add_argument("--distributor", required=True, help="Distributor key")

    commands.add_parser("sweep", help="Expire idle bid requests once")
    commands.add_parser("schedule", help="Expire idle bid requests on an interval")

    search = commands.add_parser("search", help="Search the catalog and unidentified entries")
    search.add_argument("term", help="Search term")

    match = commands.add_parser("match", help="Find the catalog product matching a name")
    match.add_argument("name", help="Product name as written by a distributor")

    counts = commands.add_parser("counts", help="Show identified/unidentified inventory counts")
    counts.add_argument("--distributor", required=True, help="Distributor key")

    return parser.parse_args(list(argv))


def _validate(args: argparse.Namespace) -> None:
    if args.command == "upload" and not args.csv.is_file():
        raise ValueError(f"CSV file not found: {args.csv}")
    if args.command in {"upload", "counts"} and not args.distributor.strip():
        raise ValueError("Distributor key must not be blank")


def _run_upload(args: argparse.Namespace) -> None:
    result = app.upload_inventory_file(args.csv, distributor=args.distributor.strip())
    print(
        f"Upload completed! {result.matched_count} products matched, "
        f"{result.unmatched_count} not found."
    )
    if result.promoted_names:
        print(f"New catalog products: {len(result.promoted_names)}")


def _run_sweep(_args: argparse.Namespace) -> None:
    result = app.run_expiry_sweep()
    print(
        f"Examined {result.examined} requests: {len(result.expired)} expired, "
        f"{len(result.failed)} failed"
    )


def _run_schedule(_args: argparse.Namespace) -> None:
    scheduler = app.build_expiry_scheduler()
    scheduler.start()
    print(f"Sweeping every {scheduler.interval}; press Ctrl+C to stop")
    try:
        threading.Event().wait()
    finally:
        scheduler.stop()


def _run_search(args: argparse.Namespace) -> None:
    hits = app.search_catalog(args.term)
    if not hits:
        print("No products found")
        return
    for hit in hits:
        marker = "" if hit.identified else " (unidentified)"
        stock = "in stock" if hit.has_inventory else "no stock"
        price = f"{hit.price:.2f}" if hit.price is not None else "-"
        print(f"{hit.name} | {hit.manufacturer or 'Unknown'} | {price} | {stock}{marker}")


def _run_match(args: argparse.Namespace) -> None:
    product = app.match_catalog_product(args.name)
    if product is None:
        print("No matching product")
        return
    print(f"{product.id}: {product.name} ({product.manufacturer})")


def _run_counts(args: argparse.Namespace) -> None:
    counts = app.distributor_inventory_counts(args.distributor.strip())
    print(
        f"identified={counts.identified} unidentified={counts.unidentified} total={counts.total}"
    )


_COMMANDS = {
    "upload": _run_upload,
    "sweep": _run_sweep,
    "schedule": _run_schedule,
    "search": _run_search,
    "match": _run_match,
    "counts": _run_counts,
}


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(sys.argv[1:] if argv is None else argv)
        _validate(parsed_args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        _COMMANDS[parsed_args.command](parsed_args)
    except (ValidationError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:  # noqa: BLE001
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
