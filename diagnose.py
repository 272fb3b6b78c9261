"""
diagnose.py - Deterministic anomaly classification for residual records.

This module looks at the book records the matcher could not pair and, for
each one, proposes at most one residual bank record as its likely
counterpart together with a classified root cause (`SmartFix`).
"""

from __future__ import annotations

from typing import Callable, NamedTuple, Optional, Sequence

from logging_config import get_logger
from models import BankRecord, BookRecord, ErrorType, SmartFix
from normalize import amounts_equal, days_between, is_transposition

logger = get_logger(__name__)

# -- Confidence Scores --
# Heuristic strengths attached to each archetype. They rank suggestions for
# a reviewer and are not calibrated probabilities.

REFERENCED_TRANSPOSITION_CONFIDENCE = 95
# Reference numbers agree AND the amounts are a digit swap of each other.

REFERENCED_WRONG_AMOUNT_CONFIDENCE = 90
# Reference numbers agree but the amount difference is not a digit swap.

DATE_MISMATCH_CONFIDENCE = 80
# Amounts agree exactly but the dates were too far apart for the matcher.

UNREFERENCED_TRANSPOSITION_CONFIDENCE = 60
# Digit-swap test passes without any reference confirmation.

NEARBY_DATE_BONUS = 10
NEARBY_DATE_MAX_DAYS = 5
# Unreferenced transpositions gain NEARBY_DATE_BONUS when both dates are
# known and within NEARBY_DATE_MAX_DAYS of each other.


def _reference_confirmed(bank: BankRecord, book: BookRecord) -> Optional[SmartFix]:
    """Invoice number equals the book description: amount was keyed wrong."""
    invoice = (bank.invoice_number or "").strip()
    description = (book.description or "").strip()
    if not invoice or description != invoice:
        return None

    diff_amount = bank.total_amount - book.amount
    if is_transposition(bank.total_amount, book.amount):
        return SmartFix(
            book_id=book.id,
            suggested_bank_record=bank,
            error_type=ErrorType.TRANSPOSITION,
            confidence_score=REFERENCED_TRANSPOSITION_CONFIDENCE,
            reason=(
                f"Transposed digits detected with matching reference '{invoice}' "
                f"(book {book.original_amount or book.amount} vs bank "
                f"{bank.original_amount or bank.total_amount})"
            ),
            diff_amount=diff_amount,
        )

    return SmartFix(
        book_id=book.id,
        suggested_bank_record=bank,
        error_type=ErrorType.WRONG_AMOUNT,
        confidence_score=REFERENCED_WRONG_AMOUNT_CONFIDENCE,
        reason=f"Reference '{invoice}' matches but the recorded amount is incorrect",
        diff_amount=diff_amount,
    )


def _date_only(bank: BankRecord, book: BookRecord) -> Optional[SmartFix]:
    """Same amount, dates outside the matcher's window."""
    if not amounts_equal(bank.total_amount, book.amount):
        return None

    return SmartFix(
        book_id=book.id,
        suggested_bank_record=bank,
        error_type=ErrorType.DATE_MISMATCH,
        confidence_score=DATE_MISMATCH_CONFIDENCE,
        reason=(
            f"Amount matches ({book.original_amount or book.amount}) "
            "but the dates differ beyond the normal window"
        ),
        diff_amount=0.0,
    )


def _unreferenced_transposition(bank: BankRecord, book: BookRecord) -> Optional[SmartFix]:
    """Digit-swap test without reference confirmation."""
    if not is_transposition(bank.total_amount, book.amount):
        return None

    confidence = UNREFERENCED_TRANSPOSITION_CONFIDENCE
    days_apart = days_between(bank.parsed_date, book.parsed_date)
    if days_apart is not None and days_apart <= NEARBY_DATE_MAX_DAYS:
        confidence += NEARBY_DATE_BONUS

    return SmartFix(
        book_id=book.id,
        suggested_bank_record=bank,
        error_type=ErrorType.TRANSPOSITION,
        confidence_score=confidence,
        reason=(
            "Likely transposed digits: the difference is divisible by 9 and the "
            "digits match, but no reference confirms it"
        ),
        diff_amount=bank.total_amount - book.amount,
    )


class ClassificationRule(NamedTuple):
    name: str
    evaluate: Callable[[BankRecord, BookRecord], Optional[SmartFix]]
    # Only fires while the book record has no suggestion yet.
    requires_empty_slot: bool
    # Ends the search over further bank candidates for this book record.
    stops_search: bool


# Evaluated in order for every (book, bank) pair.
CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("reference_confirmed", _reference_confirmed, False, True),
    ClassificationRule("date_only", _date_only, True, False),
    ClassificationRule("unreferenced_transposition", _unreferenced_transposition, True, False),
)


def _apply_rules(bank: BankRecord, book: BookRecord, smart_fixes: dict[str, SmartFix]) -> bool:
    """Run the rule table for one pair. Returns True when the search should stop."""
    for rule in CLASSIFICATION_RULES:
        if rule.requires_empty_slot and book.id in smart_fixes:
            continue

        fix = rule.evaluate(bank, book)
        if fix is None:
            continue

        replaced = smart_fixes.get(book.id)
        smart_fixes[book.id] = fix
        logger.debug(
            "classification_rule_fired | rule=%s | book_id=%s | bank_id=%s | error_type=%s | confidence=%s | replaced=%s",
            rule.name,
            book.id,
            bank.id,
            fix.error_type.value,
            fix.confidence_score,
            replaced.error_type.value if replaced else None,
        )

        if rule.stops_search:
            return True
    return False


def classify_anomalies(
    unmatched_bank: Sequence[BankRecord],
    remaining_book: Sequence[BookRecord],
) -> dict[str, SmartFix]:
    """Suggest at most one residual bank counterpart per residual book record.

    A referenced rule found on a later bank candidate replaces an earlier
    date-only or unreferenced suggestion, never the other way round. The same
    bank record may be suggested for several book records.
    """
    smart_fixes: dict[str, SmartFix] = {}

    for book in remaining_book:
        for bank in unmatched_bank:
            if _apply_rules(bank, book, smart_fixes):
                break

    counts = {error_type.value: 0 for error_type in ErrorType}
    for fix in smart_fixes.values():
        counts[fix.error_type.value] += 1

    logger.info(
        "classification_complete | unmatched_bank=%s | remaining_book=%s | smart_fixes=%s | transposition=%s | wrong_amount=%s | date_mismatch=%s",
        len(unmatched_bank),
        len(remaining_book),
        len(smart_fixes),
        counts[ErrorType.TRANSPOSITION.value],
        counts[ErrorType.WRONG_AMOUNT.value],
        counts[ErrorType.DATE_MISMATCH.value],
    )
    return smart_fixes
