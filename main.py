"""
main.py - CLI orchestration for the reconciliation engine.

This module is orchestration-only:
1. ingest   (bank CSV + book CSV)
2. reconcile (match + classify)
3. summarize
4. explain
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from explain import format_executive_summary, format_result_json
from ingest import load_bank_records, load_book_records
from logging_config import get_logger, level_from_env, setup_logging
from models import ParseFailure, ReconciliationResult, SummaryStats
from reconcile import reconcile
from summary import summarize

logger = get_logger("recon")

TRUTHY = {"1", "true", "yes", "on"}


def _configure_output_symbols() -> str:
    """Configure stdout encoding and return a safe box-drawing line character."""
    try:
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    except (AttributeError, OSError, ValueError):
        pass

    try:
        "═".encode(sys.stdout.encoding or "utf-8")
        return "═"
    except (LookupError, UnicodeEncodeError):
        return "="


BOX_CHAR = _configure_output_symbols()


def run_reconciliation(
    bank_path: str,
    book_path: str,
) -> tuple[ReconciliationResult, SummaryStats, list[ParseFailure]]:
    """Run ingest -> reconcile -> summarize for a pair of CSV files."""
    pipeline_start = time.time()

    logger.info("pipeline_stage | stage=1/3 | name=ingest | status=start")
    bank_ingest = load_bank_records(bank_path)
    book_ingest = load_book_records(book_path)
    failures = [*bank_ingest.failures, *book_ingest.failures]
    if bank_ingest.has_failures or book_ingest.has_failures:
        logger.warning(
            "pipeline_parse_failures | bank_failures=%s | book_failures=%s | fallback='rows skipped'",
            len(bank_ingest.failures),
            len(book_ingest.failures),
        )

    logger.info("pipeline_stage | stage=2/3 | name=reconcile | status=start")
    result = reconcile(bank_ingest.records, book_ingest.records)

    logger.info("pipeline_stage | stage=3/3 | name=summarize | status=start")
    stats = summarize(result, len(bank_ingest.records), len(book_ingest.records))

    logger.info("pipeline_complete | total_duration_s=%.2f", time.time() - pipeline_start)
    return result, stats, failures


def _print_result_tables(result: ReconciliationResult) -> None:
    """Print matched pairs, open bank items and open book items with suggestions."""
    print(f"\n{BOX_CHAR * 72}")
    print(f"  MATCHED ({len(result.matches)})")
    print(f"{BOX_CHAR * 72}")
    print(f"  {'Bank':<10} {'Book':<10} {'Invoice':<18} {'Amount':>14} {'Score':>6}  Note")
    for match in result.matches:
        print(
            f"  {match.bank.id:<10} {match.book.id:<10} {match.bank.invoice_number[:18]:<18} "
            f"{match.bank.total_amount:>14,.2f} {match.score:>6}  {match.note}"
        )

    print(f"\n{BOX_CHAR * 72}")
    print(f"  OPEN IN BANK ({len(result.unmatched_bank)})")
    print(f"{BOX_CHAR * 72}")
    for record in result.unmatched_bank:
        print(
            f"  {record.id:<10} {record.transaction_date:<12} {record.invoice_number[:18]:<18} "
            f"{record.total_amount:>14,.2f}"
        )

    print(f"\n{BOX_CHAR * 72}")
    print(f"  OPEN IN BOOK ({len(result.unmatched_book)})")
    print(f"{BOX_CHAR * 72}")
    for record in result.unmatched_book:
        print(
            f"  {record.id:<10} {record.posting_date:<12} {record.description[:18]:<18} "
            f"{record.amount:>14,.2f}"
        )
        fix = result.smart_fixes.get(record.id)
        if fix:
            print(
                f"      -> {fix.error_type.value} ({fix.confidence_score}%) "
                f"suggest {fix.suggested_bank_record.id}: {fix.reason}"
            )


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point for the reconciliation engine."""
    try:
        load_dotenv()
    except UnicodeDecodeError:
        # Fallback for legacy Windows-encoded .env files.
        load_dotenv(encoding="cp1252")

    parser = argparse.ArgumentParser(
        prog="recon",
        description=(
            "Bank / Book Reconciliation\n"
            "Matches a bank feed against the general ledger and explains "
            "the leftovers (transposed digits, wrong amounts, date slips)."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s --bank bank.csv --book book.csv\n"
            "  %(prog)s --bank bank.csv --book book.csv --json\n"
            "  %(prog)s --bank bank.csv --book book.csv --output result.json\n"
        ),
    )
    parser.add_argument(
        "--bank",
        "-b",
        type=str,
        default=os.getenv("RECON_BANK_CSV"),
        help="Path to the bank feed CSV (default: $RECON_BANK_CSV)",
    )
    parser.add_argument(
        "--book",
        "-k",
        type=str,
        default=os.getenv("RECON_BOOK_CSV"),
        help="Path to the general-ledger CSV (default: $RECON_BOOK_CSV)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full result as JSON instead of the text report",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Also write the JSON result to this path",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose (DEBUG-level) logging",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=os.getenv("RECON_LOG_JSON", "").strip().lower() in TRUTHY,
        help="Output logs as JSON lines (default: $RECON_LOG_JSON)",
    )

    args = parser.parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else level_from_env(),
        json_format=args.log_json,
    )

    if not args.bank or not args.book:
        parser.error("Provide both --bank PATH and --book PATH (or RECON_BANK_CSV / RECON_BOOK_CSV)")

    try:
        logger.info("cli_mode | bank=%s | book=%s", args.bank, args.book)
        result, stats, failures = run_reconciliation(args.bank, args.book)
        payload = format_result_json(result, stats=stats, failures=failures)

        if args.output:
            Path(args.output).write_text(json.dumps(payload, indent=2), encoding="utf-8")
            logger.info("cli_output_written | path=%s", args.output)

        if args.json:
            print(json.dumps(payload, indent=2))
            return

        _print_result_tables(result)
        print(format_executive_summary(stats))
        for failure in failures:
            print(f"  ! {failure.side} row {failure.row} ({failure.column}={failure.raw_value!r}): {failure.reason}")
    except FileNotFoundError as exc:
        logger.error("cli_error | type=FileNotFoundError | error=%s", exc)
        print(f"\nError: {exc}")
        raise SystemExit(1) from exc
    except ValueError as exc:
        logger.error("cli_error | type=ValueError | error=%s", exc)
        print(f"\nError: {exc}")
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        print("\nInterrupted.")
        raise SystemExit(130)


if __name__ == "__main__":
    main()
