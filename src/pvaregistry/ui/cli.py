from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from pvaregistry.app import (
    approve_product,
    brand_statistics,
    check_quota,
    check_remote_connection,
    delete_product,
    download_template,
    import_bulk_csv,
    list_products,
    pending_brand_requests,
    request_brand_ownership,
    review_brand_ownership,
    scan_text,
    submit_product,
    update_product,
    watch_products,
)
from pvaregistry.config import configure_logging
from pvaregistry.domain.errors import RegistryError
from pvaregistry.domain.ingest_pipeline import Submitter
from pvaregistry.domain.model import CandidateRecord, ProductChanges, ProductStatus
from pvaregistry.domain.reconciliation import ViewerContext
from pvaregistry.domain.regions import GLOBAL_REGION, join_countries, normalize_countries
from pvaregistry.domain.submission import candidate_from_scan

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from pvaregistry.domain.model import ProductRecord
    from pvaregistry.domain.reconciliation import ReconciledView

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Crowd-sourced PVA product registry")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    template = subparsers.add_parser("template", help="Write the bulk upload CSV template")
    template.add_argument(
        "--output",
        type=Path,
        help="File to write; defaults to standard output",
    )

    bulk = subparsers.add_parser("import", help="Import products from a CSV file")
    bulk.add_argument("path", type=Path, help="CSV file to import")
    bulk.add_argument("--user-id", type=str, help="Contributor id owning the submissions")
    bulk.add_argument(
        "--admin",
        action="store_true",
        help="Import as an administrator (records are approved immediately)",
    )
    bulk.add_argument(
        "--country",
        action="append",
        dest="countries",
        help="Override the region of every row (repeatable)",
    )

    scan = subparsers.add_parser("scan", help="Classify extracted label or datasheet text")
    scan.add_argument("path", type=Path, help="Text file holding the extracted text")
    scan.add_argument("--brand", type=str, default="", help="Brand the text belongs to")

    listing = subparsers.add_parser("list", help="Show the reconciled product list")
    _add_viewer_arguments(listing)
    listing.add_argument(
        "--pending",
        action="store_true",
        help="Show the moderation queue instead (admin view only)",
    )

    quota = subparsers.add_parser("quota", help="Show a contributor's submission quota")
    quota.add_argument("--user-id", type=str, help="Contributor id; omit for anonymous")
    quota.add_argument("--admin", action="store_true", help="Check as an administrator")
    quota.add_argument("--bulk", action="store_true", help="Use bulk upload limits")

    stats = subparsers.add_parser("stats", help="Show top brands")
    _add_viewer_arguments(stats)
    stats.add_argument("--limit", type=int, default=5, help="Number of brands before 'Others'")

    approve = subparsers.add_parser("approve", help="Approve a pending product")
    approve.add_argument("record_id", type=str)
    approve.add_argument("--revoke", action="store_true", help="Withdraw approval instead")

    status = subparsers.add_parser("set-status", help="Change a product's status")
    status.add_argument("record_id", type=str)
    status.add_argument("status", type=str, help="contains, verified-free, ...")
    status.add_argument("--percentage", type=float, help="PVA percentage, when known")

    delete = subparsers.add_parser("delete", help="Delete a product")
    delete.add_argument("record_id", type=str)

    submit = subparsers.add_parser("submit", help="Submit a single product for review")
    submit.add_argument("brand", type=str)
    submit.add_argument("name", type=str)
    submit.add_argument("type", type=str, help="Product type, e.g. 'Laundry Detergent'")
    submit.add_argument("--status", type=str, help="Explicit status; overrides --text")
    submit.add_argument("--text", type=Path, help="Label or datasheet text to classify")
    submit.add_argument("--percentage", type=float, help="PVA percentage, when known")
    submit.add_argument("--country", action="append", dest="countries", default=[])
    submit.add_argument("--description", type=str, default="")
    submit.add_argument("--website-url", type=str)
    submit.add_argument("--user-id", type=str, help="Contributor id; omit for anonymous")
    submit.add_argument("--admin", action="store_true", help="Submit as an administrator")

    brand = subparsers.add_parser("brand", help="Manage brand ownership requests")
    brand_actions = brand.add_subparsers(dest="brand_command", required=True)
    brand_request = brand_actions.add_parser("request", help="Request ownership of a brand")
    brand_request.add_argument("record_id", type=str)
    brand_request.add_argument("email", type=str, help="Contact email of the brand owner")
    for action in ("approve", "reject"):
        review = brand_actions.add_parser(action, help=f"{action.capitalize()} a request")
        review.add_argument("record_id", type=str)
    brand_actions.add_parser("pending", help="List open ownership requests")

    watch = subparsers.add_parser("watch", help="Refresh the product list periodically")
    _add_viewer_arguments(watch)
    watch.add_argument("--interval", type=float, help="Seconds between refreshes")

    subparsers.add_parser("check", help="Check the remote store connection")

    return parser.parse_args(list(argv))


def _add_viewer_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--admin", action="store_true", help="View as an administrator")
    parser.add_argument("--user-id", type=str, help="Viewer id, to include own pending items")
    parser.add_argument(
        "--country",
        type=str,
        default=GLOBAL_REGION,
        help="Region filter (default: Global)",
    )


def _viewer_context(args: argparse.Namespace) -> ViewerContext:
    return ViewerContext(
        is_admin=args.admin,
        is_admin_view=args.admin,
        selected_country=args.country,
        user_id=args.user_id,
    )


def _write(line: str = "") -> None:
    sys.stdout.write(line + "\n")


def _format_record(record: ProductRecord) -> str:
    percentage = f" {record.percentage:g}%" if record.percentage is not None else ""
    flag = "" if record.approved else " [pending]"
    return (
        f"{record.id}  {record.brand} / {record.name} ({record.type}): "
        f"{record.status.value}{percentage}  [{join_countries(record.countries)}]{flag}"
    )


def _candidate(args: argparse.Namespace) -> CandidateRecord:
    if args.status is not None:
        return CandidateRecord(
            brand=args.brand,
            name=args.name,
            type=args.type,
            status=ProductStatus.parse(args.status),
            percentage=args.percentage,
            countries=normalize_countries(args.countries),
            description=args.description,
            website_url=args.website_url,
        )
    if args.text is None:
        raise ValueError("Either --status or --text is required")
    scan = scan_text(args.text.read_text(encoding="utf-8"), brand=args.brand)
    log.info("Classified %s as %s", args.text, scan.status.value)
    candidate = candidate_from_scan(
        scan,
        brand=args.brand,
        name=args.name,
        type=args.type,
        countries=args.countries,
        description=args.description,
        website_url=args.website_url,
    )
    if args.percentage is not None:
        candidate = replace(candidate, percentage=args.percentage)
    return candidate


def _print_refresh(view: ReconciledView) -> None:
    suffix = "" if view.remote_ok else " (offline data)"
    _write(f"{view.refreshed_at:%H:%M:%S}  {len(view)} product(s){suffix}")


def _run_brand(args: argparse.Namespace) -> None:
    if args.brand_command == "request":
        record = request_brand_ownership(args.record_id, args.email)
        _write(f"ownership of {record.brand} requested by {record.brand_contact_email}")
    elif args.brand_command == "pending":
        for record in pending_brand_requests():
            _write(f"{record.id}  {record.brand}  <{record.brand_contact_email}>")
    else:
        approve = args.brand_command == "approve"
        record = review_brand_ownership(args.record_id, approve=approve)
        _write(f"{record.brand}: {'verified' if record.brand_verified else 'not verified'}")


def _run(args: argparse.Namespace) -> int:
    exit_code = 0
    if args.command == "template":
        content = download_template()
        if args.output is None:
            sys.stdout.write(content)
        else:
            args.output.write_text(content, encoding="utf-8")
            log.info("Wrote template to %s", args.output)
    elif args.command == "import":
        result = import_bulk_csv(
            args.path.read_text(encoding="utf-8-sig"),
            submitter=Submitter(user_id=args.user_id, is_admin=args.admin),
            countries=args.countries,
        )
        _write(result.summary())
        for duplicate in result.duplicates:
            _write(f"duplicate: {duplicate.label()}")
        for rejected in result.rejected:
            _write(f"rejected: {rejected.row.label()}: {rejected.reason}")
    elif args.command == "scan":
        scan = scan_text(args.path.read_text(encoding="utf-8"), brand=args.brand)
        _write(f"status: {scan.status.value} (confidence {scan.confidence.value})")
        if scan.terms:
            _write(f"matched: {', '.join(scan.terms)}")
        if scan.percentage is not None:
            _write(f"percentage: {scan.percentage:g}%")
    elif args.command == "list":
        view = list_products(_viewer_context(args))
        records = view.pending if args.pending else view.records
        for record in records:
            _write(_format_record(record))
        for record in view.own_pending:
            _write(f"{_format_record(record)} (yours)")
        if not view.remote_ok:
            log.warning("Remote store unavailable; showing offline data")
    elif args.command == "quota":
        quota = check_quota(args.user_id, is_admin=args.admin, is_bulk=args.bulk)
        _write(quota.describe())
    elif args.command == "stats":
        for entry in brand_statistics(limit=args.limit, context=_viewer_context(args)):
            _write(f"{entry.brand}: {entry.count}")
    elif args.command == "approve":
        outcome = approve_product(args.record_id, approved=not args.revoke)
        exit_code = 0 if outcome.succeeded else 1
    elif args.command == "set-status":
        changes = ProductChanges.of(
            status=ProductStatus.parse(args.status), percentage=args.percentage
        )
        outcome = update_product(args.record_id, changes)
        exit_code = 0 if outcome.succeeded else 1
    elif args.command == "delete":
        outcome = delete_product(args.record_id)
        exit_code = 0 if outcome.succeeded else 1
    elif args.command == "submit":
        outcome = submit_product(
            _candidate(args), submitter=Submitter(user_id=args.user_id, is_admin=args.admin)
        )
        where = "" if outcome.stored_remotely else " (saved offline only)"
        _write(f"submitted {outcome.record.id}: {outcome.record.status.value}{where}")
        if outcome.quota is not None:
            _write(outcome.quota.describe())
    elif args.command == "brand":
        _run_brand(args)
    elif args.command == "watch":
        watch_products(_print_refresh, _viewer_context(args), interval=args.interval)
    elif args.command == "check":
        status = check_remote_connection()
        _write(status.message)
        exit_code = 0 if status.connected else 1
    else:
        raise ValueError(f"Unsupported command: {args.command}")
    return exit_code


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        exit_code = _run(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)
    except RegistryError as exc:
        log.error("%s", exc)
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)
    if exit_code:
        sys.exit(exit_code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
