"""
reconcile.py - Engine entry point.

Runs the two stages in sequence:
1. match      (bank/book pairs + residuals)
2. diagnose   (smart fix per residual book record)

The classifier only sees the matcher's residuals and never revises a match.
"""

from __future__ import annotations

import time
from typing import Sequence

from diagnose import classify_anomalies
from logging_config import get_logger
from match import match_records
from models import BankRecord, BookRecord, ReconciliationResult

logger = get_logger(__name__)


def reconcile(
    bank_records: Sequence[BankRecord],
    book_records: Sequence[BookRecord],
) -> ReconciliationResult:
    """Reconcile a bank feed against the book ledger."""
    start = time.time()

    match_result = match_records(bank_records, book_records)
    smart_fixes = classify_anomalies(match_result.unmatched_bank, match_result.remaining_book)

    logger.info(
        "reconcile_complete | matched=%s | unmatched_bank=%s | unmatched_book=%s | smart_fixes=%s | duration_s=%.3f",
        len(match_result.matches),
        len(match_result.unmatched_bank),
        len(match_result.remaining_book),
        len(smart_fixes),
        time.time() - start,
    )

    return ReconciliationResult(
        matches=match_result.matches,
        unmatched_bank=match_result.unmatched_bank,
        unmatched_book=match_result.remaining_book,
        smart_fixes=smart_fixes,
    )
