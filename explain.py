"""
explain.py - Human-readable and JSON-ready reconciliation output.

This module converts engine output into:
- a plain-text executive summary for CLI usage / download
- a machine-friendly dictionary for APIs, logging and storage
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from logging_config import get_logger
from models import (
    BankRecord,
    BookRecord,
    Match,
    ParseFailure,
    ReconciliationResult,
    SmartFix,
    SummaryStats,
)

logger = get_logger(__name__)

OUTPUT_WIDTH = 48
SEPARATOR = "=" * OUTPUT_WIDTH
RULE = "-" * OUTPUT_WIDTH


def _performance_status(match_percentage: float) -> str:
    if match_percentage >= 95:
        return "Excellent"
    if match_percentage >= 80:
        return "Fair"
    return "Critical"


def _balance_status(net_difference: float) -> str:
    if net_difference > 0:
        return "Bank over"
    if net_difference < 0:
        return "Book over"
    return "Balanced"


def format_executive_summary(stats: SummaryStats, generated_at: Optional[datetime] = None) -> str:
    """Format summary statistics into the plain-text executive report."""
    analysis = stats.analysis
    timestamp = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")

    lines: list[str] = [
        SEPARATOR,
        "   EXECUTIVE SUMMARY - Bank Reconciliation",
        SEPARATOR,
        f"Date: {timestamp}",
        "",
        "[1] Performance Snapshot",
        RULE,
        f"  Match rate:      {stats.match_percentage:.2f}%",
        f"  Status:          {_performance_status(stats.match_percentage)}",
        f"  Total records:   {stats.total_bank_records + stats.total_book_records}",
        f"  Matched:         {stats.matched_count}",
        "",
        "[2] Financial Risk",
        RULE,
        f"  Net difference:  {analysis.net_difference:,.2f}",
        f"  Status:          {_balance_status(analysis.net_difference)}",
        f"  Open in bank:    {stats.unmatched_bank_count}",
        f"  Open in book:    {stats.unmatched_book_count}",
        "",
        "[3] Analysis",
        RULE,
    ]

    if analysis.observations:
        lines.extend(f"  • {observation}" for observation in analysis.observations)
    else:
        lines.append("  • (no observations)")

    lines.extend(
        [
            "",
            "[4] Root Cause",
            RULE,
            f"  >> {analysis.primary_cause}",
            "",
            "[5] Action Items",
            RULE,
        ]
    )

    if analysis.recommendations:
        lines.extend(
            f"  {index}. {recommendation}"
            for index, recommendation in enumerate(analysis.recommendations, start=1)
        )
    else:
        lines.append("  (no action required)")

    lines.extend(["", SEPARATOR, "End of Report", ""])
    return "\n".join(lines)


def _record_json(record: BankRecord | BookRecord) -> dict[str, Any]:
    return record.model_dump(mode="json")


def _match_json(match: Match) -> dict[str, Any]:
    return {
        "bank": _record_json(match.bank),
        "book": _record_json(match.book),
        "score": match.score,
        "note": match.note,
        "is_exact": match.is_exact,
    }


def _fix_json(fix: SmartFix) -> dict[str, Any]:
    return {
        "book_id": fix.book_id,
        "suggested_bank_id": fix.suggested_bank_record.id,
        "suggested_bank_record": _record_json(fix.suggested_bank_record),
        "error_type": fix.error_type.value,
        "confidence_score": fix.confidence_score,
        "reason": fix.reason,
        "diff_amount": None if fix.diff_amount is None else round(fix.diff_amount, 2),
    }


def format_result_json(
    result: ReconciliationResult,
    stats: Optional[SummaryStats] = None,
    failures: Optional[Sequence[ParseFailure]] = None,
) -> dict[str, Any]:
    """Format a reconciliation result as a structured JSON-compatible dictionary."""
    unmatched_book = []
    for record in result.unmatched_book:
        fix = result.smart_fixes.get(record.id)
        entry = _record_json(record)
        entry["smart_fix"] = _fix_json(fix) if fix else None
        unmatched_book.append(entry)

    payload: dict[str, Any] = {
        "status": "balanced" if not result.unmatched_bank and not result.unmatched_book else "open_items",
        "matches": [_match_json(match) for match in result.matches],
        "unmatched_bank": [_record_json(record) for record in result.unmatched_bank],
        "unmatched_book": unmatched_book,
        "smart_fixes": {book_id: _fix_json(fix) for book_id, fix in result.smart_fixes.items()},
    }

    if stats is not None:
        payload["summary"] = stats.model_dump(mode="json")

    if failures is not None:
        payload["parse_failures"] = [failure.model_dump(mode="json") for failure in failures]

    logger.debug(
        "explain_json_complete | status=%s | matches=%s | smart_fixes=%s",
        payload["status"],
        len(payload["matches"]),
        len(payload["smart_fixes"]),
    )
    return payload
