# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from loadsync import app
from loadsync.config import ConfigurationError, configure_logging
from loadsync.domain.model import BatchStatus, Category, ConflictStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from loadsync.domain.model import ConflictRecord

log = logging.getLogger(__name__)

_CATEGORIES = [category.value for category in Category]


def _add_scope_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--category",
        required=True,
        choices=_CATEGORIES,
        help="Inventory category to operate on",
    )
    parser.add_argument(
        "--tenant",
        type=str,
        default=None,
        help="Tenant id (defaults to LOADSYNC_TENANT)",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile warehouse batch feeds")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    resync = subparsers.add_parser(
        "resync",
        help="Wipe a category and reload it from the feed",
    )
    _add_scope_arguments(resync)
    resync.add_argument(
        "--no-preserve",
        dest="preserve_metadata",
        action="store_false",
        help="Discard human-edited batch metadata instead of carrying it across",
    )

    reconcile = subparsers.add_parser(
        "reconcile",
        help="Reconcile the feed against stored inventory without wiping",
    )
    _add_scope_arguments(reconcile)

    merge = subparsers.add_parser("merge", help="Merge batches into a target batch")
    _add_scope_arguments(merge)
    merge.add_argument(
        "--source",
        dest="sources",
        action="append",
        required=True,
        help="Source batch number (repeat for every source)",
    )
    merge.add_argument("--target", required=True, help="Target batch number")
    merge.add_argument(
        "--create-target",
        action="store_true",
        help="Create the target batch; it must not exist yet",
    )

    delete = subparsers.add_parser("delete-batch", help="Delete a batch record")
    _add_scope_arguments(delete)
    delete.add_argument("--batch", required=True, help="Batch number to delete")
    delete.add_argument(
        "--keep-items",
        dest="clear_items",
        action="store_false",
        help="Leave items assigned to the deleted batch number",
    )

    status = subparsers.add_parser("set-status", help="Change the status of a batch")
    _add_scope_arguments(status)
    status.add_argument("--batch", required=True, help="Batch number")
    status.add_argument(
        "--status",
        required=True,
        choices=[value.value for value in BatchStatus],
        help="New batch status",
    )

    conflicts = subparsers.add_parser("conflicts", help="List conflicts for a batch")
    _add_scope_arguments(conflicts)
    conflicts.add_argument("--batch", required=True, help="Losing batch number")
    conflicts.add_argument(
        "--status",
        choices=[value.value for value in ConflictStatus],
        default=None,
        help="Only show conflicts with this status",
    )

    resolve = subparsers.add_parser("resolve-conflict", help="Mark a conflict resolved")
    _add_scope_arguments(resolve)
    resolve.add_argument("--id", dest="conflict_id", required=True, help="Conflict id")
    resolve.add_argument("--notes", type=str, default=None, help="Resolution notes")

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _conflict_payload(conflict: ConflictRecord) -> dict[str, object]:
    return {
        "id": str(conflict.id),
        "serial": conflict.serial,
        "losingBatch": conflict.losing_batch_number,
        "winningBatch": conflict.winning_batch_number,
        "status": conflict.status.value,
        "notes": conflict.notes,
        "detectedAt": conflict.detected_at.isoformat(),
    }


def _emit(payload: object) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def _run_command(args: argparse.Namespace) -> int:
    """Execute the parsed command and return the process exit code."""

    if args.command == "resync":
        result = app.resync(
            args.category,
            tenant_id=args.tenant,
            preserve_metadata=args.preserve_metadata,
        )
        _emit(result.as_dict())
        return 0 if result.summary.completed else 1
    if args.command == "reconcile":
        summary = app.reconcile(args.category, tenant_id=args.tenant)
        _emit(summary.as_dict())
        return 0 if summary.completed else 1
    if args.command == "merge":
        merged = app.merge(
            args.category,
            args.sources,
            args.target,
            tenant_id=args.tenant,
            create_target=args.create_target,
        )
        _emit(merged.as_dict())
        return 0
    if args.command == "delete-batch":
        unassigned = app.delete_batch(
            args.category,
            args.batch,
            tenant_id=args.tenant,
            clear_items=args.clear_items,
        )
        _emit({"deleted": args.batch, "itemsUnassigned": unassigned})
        return 0
    if args.command == "set-status":
        batch = app.set_batch_status(args.category, args.batch, args.status, tenant_id=args.tenant)
        _emit({"batch": batch.batch_number, "status": batch.status.value})
        return 0
    if args.command == "conflicts":
        status = ConflictStatus(args.status) if args.status else None
        records = app.list_conflicts(
            args.category,
            args.batch,
            tenant_id=args.tenant,
            status=status,
        )
        _emit([_conflict_payload(record) for record in records])
        return 0
    if args.command == "resolve-conflict":
        conflict = app.resolve_conflict(
            args.category,
            _parse_uuid(args.conflict_id),
            tenant_id=args.tenant,
            notes=args.notes,
        )
        _emit(_conflict_payload(conflict))
        return 0
    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    if parsed_args.verbose:
        configure_logging(level=logging.DEBUG, force=True)

    try:
        exit_code = _run_command(parsed_args)
    except (ConfigurationError, ValueError):
        log.exception("Invalid request")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
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
