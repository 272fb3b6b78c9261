"""
match.py - Bank-to-book scoring and greedy pair selection.

Bank records are the source of truth. Each bank record, in input order,
scores every book record still available on three dimensions:
- amount agreement (hard gate)
- reference agreement (invoice number vs book description)
- date proximity

The best candidate at or above MATCH_THRESHOLD is accepted and removed from
the pool before the next bank record is considered.
"""

from __future__ import annotations

from typing import Optional, Sequence

from logging_config import get_logger
from models import BankRecord, BookRecord, Match, MatchResult
from normalize import amounts_equal, days_between, normalize_reference

logger = get_logger(__name__)

AMOUNT_POINTS = 50
REFERENCE_POINTS = 30
SAME_DAY_POINTS = 20
NEAR_DAY_POINTS = 10

NEAR_DAY_MAX = 2
# Dates up to this many days apart still earn NEAR_DAY_POINTS.

MATCH_THRESHOLD = 70
# Amount alone (50) never passes. Amount needs either the reference (80+)
# or a same-day date (70) to be accepted.

EXACT_SCORE = AMOUNT_POINTS + REFERENCE_POINTS + SAME_DAY_POINTS

NOTE_EXACT = "Exact match"
NOTE_PARTIAL = "Partial match (minor date drift)"


def score_amount(bank: BankRecord, book: BookRecord) -> Optional[int]:
    """Amount gate. Returns None when the candidate is disqualified."""
    if amounts_equal(bank.total_amount, book.amount):
        return AMOUNT_POINTS
    return None


def score_reference(bank: BankRecord, book: BookRecord) -> int:
    """Reference agreement: either side contains the other after normalization."""
    invoice = normalize_reference(bank.invoice_number)
    description = normalize_reference(book.description)

    if not invoice or not description:
        return 0
    if invoice in description or description in invoice:
        return REFERENCE_POINTS
    return 0


def score_date(bank: BankRecord, book: BookRecord) -> int:
    """Date proximity. Missing dates on either side contribute nothing."""
    days_apart = days_between(bank.parsed_date, book.parsed_date)
    if days_apart is None:
        return 0
    if days_apart == 0:
        return SAME_DAY_POINTS
    if days_apart <= NEAR_DAY_MAX:
        return NEAR_DAY_POINTS
    return 0


def score_candidate(bank: BankRecord, book: BookRecord) -> Optional[int]:
    """Total score for one bank/book pair, or None if the amount gate fails."""
    amount_points = score_amount(bank, book)
    if amount_points is None:
        return None

    reference_points = score_reference(bank, book)
    date_points = score_date(bank, book)
    total = amount_points + reference_points + date_points

    logger.debug(
        "candidate_scoring | bank_id=%s | book_id=%s | amount=%s | reference=%s | date=%s | total=%s",
        bank.id,
        book.id,
        amount_points,
        reference_points,
        date_points,
        total,
    )
    return total


def _match_note(score: int) -> str:
    return NOTE_EXACT if score == EXACT_SCORE else NOTE_PARTIAL


def match_records(
    bank_records: Sequence[BankRecord],
    book_records: Sequence[BookRecord],
) -> MatchResult:
    """Greedily pair bank records with book records in bank input order."""
    book_pool = list(book_records)
    available = [True] * len(book_pool)

    matches: list[Match] = []
    unmatched_bank: list[BankRecord] = []

    for bank in bank_records:
        best_index = -1
        best_score = 0

        for index, book in enumerate(book_pool):
            if not available[index]:
                continue

            score = score_candidate(bank, book)
            if score is None:
                continue

            # Strict improvement only: the first-seen candidate keeps ties.
            if score > best_score:
                best_score = score
                best_index = index

        if best_index != -1 and best_score >= MATCH_THRESHOLD:
            book = book_pool[best_index]
            available[best_index] = False
            matches.append(
                Match(bank=bank, book=book, score=best_score, note=_match_note(best_score))
            )
            logger.debug(
                "match_accepted | bank_id=%s | book_id=%s | score=%s",
                bank.id,
                book.id,
                best_score,
            )
        else:
            unmatched_bank.append(bank)
            logger.debug(
                "match_rejected | bank_id=%s | best_score=%s | threshold=%s",
                bank.id,
                best_score,
                MATCH_THRESHOLD,
            )

    remaining_book = [book for index, book in enumerate(book_pool) if available[index]]

    exact_count = sum(1 for match in matches if match.is_exact)
    logger.info(
        "matching_complete | bank=%s | book=%s | matched=%s | exact=%s | unmatched_bank=%s | remaining_book=%s",
        len(bank_records),
        len(book_pool),
        len(matches),
        exact_count,
        len(unmatched_bank),
        len(remaining_book),
    )

    return MatchResult(
        matches=matches,
        unmatched_bank=unmatched_bank,
        remaining_book=remaining_book,
    )
