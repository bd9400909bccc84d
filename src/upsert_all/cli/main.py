"""
Command-line upsert of JSON rows into a PostgreSQL table.

Usage:
    # Upsert and report inserted/updated counts
    python -m upsert_all.cli upsert --table users --unique-by email --input users.json

    # Report every category, 500 rows per statement
    python -m upsert_all.cli upsert --table users --schema crm --unique-by email \\
        --input users.jsonl --batch-size 500 --returning inserted,updated,unchanged

    # Print the first batch statement without executing it
    python -m upsert_all.cli upsert --table users --unique-by email --input users.json --plan-only
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from upsert_all.config import get_engine
from upsert_all.infrastructure.schema.reflection import reflect_table
from upsert_all.io.loader import (
    CHANGES,
    DictRecordCodec,
    InvalidArgumentError,
    UpsertError,
    UpsertReturnType,
    prepare_upsert,
    upsert_all,
)
from upsert_all.io.loader.results import outcome_counts
from upsert_all.utils.logging import configure_logging


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_returning(value: Optional[str]) -> frozenset:
    if value is None:
        return CHANGES
    kinds = set()
    for tag in _split(value):
        kind = UpsertReturnType.from_tag(tag)
        if kind is None:
            raise argparse.ArgumentTypeError(
                f"Unknown outcome '{tag}'; choose from "
                + ", ".join(k.value for k in UpsertReturnType)
            )
        kinds.add(kind)
    return frozenset(kinds)


def load_rows(path: Path) -> List[Dict[str, Any]]:
    """Read a JSON array of objects, or one JSON object per line."""
    text = path.read_text(encoding="utf-8").strip()
    if not text:
        return []
    if text.startswith("["):
        rows = json.loads(text)
    else:
        rows = [json.loads(line) for line in text.splitlines() if line.strip()]
    if not all(isinstance(row, dict) for row in rows):
        raise ValueError(f"{path} must contain JSON objects only")
    return rows


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="upsert_all.cli",
        description="Batched insert / update-if-changed of JSON rows into PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override LOG_LEVEL for this run",
    )
    subparsers = parser.add_subparsers(dest="command", title="commands")

    upsert = subparsers.add_parser("upsert", help="Upsert rows from a JSON file")
    upsert.add_argument("--table", required=True, help="Target table name")
    upsert.add_argument("--schema", default="public", help="Target schema")
    upsert.add_argument(
        "--unique-by",
        required=True,
        help="Comma-separated conflict-key columns",
    )
    upsert.add_argument(
        "--input", required=True, type=Path, help="JSON array or JSON lines file"
    )
    upsert.add_argument(
        "--batch-size", type=int, default=None, help="Rows per statement"
    )
    upsert.add_argument(
        "--returning",
        default=None,
        help="Comma-separated outcomes to report (inserted,updated,unchanged)",
    )
    upsert.add_argument(
        "--excluded", default=None, help="Columns ignored by change detection"
    )
    upsert.add_argument(
        "--non-updatable", default=None, help="Columns never rewritten on update"
    )
    upsert.add_argument(
        "--plan-only",
        action="store_true",
        default=False,
        help="Print the first batch statement without executing it",
    )
    return parser


def _run_upsert(args: argparse.Namespace) -> int:
    try:
        returning = _parse_returning(args.returning)
        rows = load_rows(args.input)
    except (argparse.ArgumentTypeError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if not rows:
        print(json.dumps({"table": args.table, "outcomes": {}}))
        return 0

    engine = get_engine()
    with engine.connect() as conn:
        table = reflect_table(conn, args.table, schema=args.schema)
    if table is None:
        print(f"error: table {args.schema}.{args.table} not found", file=sys.stderr)
        return 1

    options = dict(
        unique_by=_split(args.unique_by),
        batch_size=args.batch_size,
        excluded_criteria_columns=_split(args.excluded),
        non_updatable_columns=_split(args.non_updatable),
        returning=returning,
        record_type=dict,
        table=table,
        codec=DictRecordCodec(),
    )

    try:
        if args.plan_only:
            prepared = prepare_upsert(rows, **options)
            print(next(iter(prepared.statements())))
            return 0

        with engine.begin() as conn:
            results = upsert_all(rows, transaction=conn, **options)
    except InvalidArgumentError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except UpsertError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps({"table": args.table, "outcomes": outcome_counts(results)}))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point with subcommand routing.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.log_level:
        configure_logging(level=args.log_level)

    if args.command == "upsert":
        return _run_upsert(args)

    parser.print_help()
    return 1
