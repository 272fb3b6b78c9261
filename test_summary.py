"""
test_summary.py - Summary statistics and narrative analysis tests.

Usage: pytest test_summary.py
"""

from __future__ import annotations

import os
import sys
from datetime import date

import pytest

# Ensure local imports resolve from project root.
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from models import BankRecord, BookRecord, ErrorType, Match, ReconciliationResult, SmartFix
from summary import CAUSE_DEFAULT, CAUSE_TIMING, CAUSE_TRANSPOSITION, summarize

DAY = date(2024, 1, 10)


def _bank(record_id: str, amount: float) -> BankRecord:
    return BankRecord(id=record_id, invoice_number=record_id.upper(), total_amount=amount, parsed_date=DAY)


def _book(record_id: str, amount: float) -> BookRecord:
    return BookRecord(id=record_id, description=record_id.upper(), amount=amount, parsed_date=DAY)


def _matches(count: int, amount: float = 100.0) -> list[Match]:
    return [
        Match(bank=_bank(f"bank-m{i}", amount), book=_book(f"book-m{i}", amount), score=100, note="Exact match")
        for i in range(count)
    ]


def _fix(book_id: str, bank: BankRecord, error_type: ErrorType, confidence: int = 80) -> SmartFix:
    return SmartFix(
        book_id=book_id,
        suggested_bank_record=bank,
        error_type=error_type,
        confidence_score=confidence,
        reason="test",
        diff_amount=0.0,
    )


def _distribution(stats) -> dict[str, int]:
    return {entry.name: entry.value for entry in stats.analysis.error_distribution}


def test_fully_balanced():
    result = ReconciliationResult(matches=_matches(20))

    stats = summarize(result, total_bank=20, total_book=20)

    assert stats.matched_count == 20
    assert stats.match_percentage == 100.0
    assert stats.total_matched_amount == pytest.approx(2000.0)
    assert stats.smart_fix_count == 0
    assert stats.analysis.net_difference == 0.0
    assert stats.analysis.primary_cause == CAUSE_DEFAULT
    assert stats.analysis.recommendations == []
    assert "Excellent" in stats.analysis.observations[0]
    assert _distribution(stats) == {"Matched": 20}


def test_zero_bank_records_gives_zero_rate():
    stats = summarize(ReconciliationResult(), total_bank=0, total_book=0)

    assert stats.match_percentage == 0.0
    assert stats.analysis.error_distribution == []
    assert "below target" in stats.analysis.observations[0]


def test_transposition_sets_primary_cause():
    bank = _bank("bank-x", 5400.0)
    book = _book("book-x", 4500.0)
    result = ReconciliationResult(
        matches=_matches(19),
        unmatched_bank=[bank],
        unmatched_book=[book],
        smart_fixes={"book-x": _fix("book-x", bank, ErrorType.TRANSPOSITION, 95)},
    )

    stats = summarize(result, total_bank=20, total_book=20)

    assert stats.analysis.primary_cause == CAUSE_TRANSPOSITION
    assert stats.analysis.net_difference == pytest.approx(900.0)
    assert stats.match_percentage == 95.0
    assert any("transposed digits" in item for item in stats.analysis.recommendations)
    assert _distribution(stats) == {
        "Matched": 19,
        "Transposition (fix)": 1,
        "Missing from book (bank only)": 1,
    }


def test_timing_overrides_transposition_when_date_slips_dominate():
    bank_a = _bank("bank-a", 5400.0)
    bank_b = _bank("bank-b", 300.0)
    result = ReconciliationResult(
        matches=_matches(5),
        unmatched_bank=[bank_a, bank_b],
        unmatched_book=[_book("book-a", 4500.0), _book("book-b", 300.0)],
        smart_fixes={
            "book-a": _fix("book-a", bank_a, ErrorType.TRANSPOSITION, 95),
            "book-b": _fix("book-b", bank_b, ErrorType.DATE_MISMATCH),
        },
    )

    stats = summarize(result, total_bank=7, total_book=7)

    assert stats.analysis.primary_cause == CAUSE_TIMING
    assert len(stats.analysis.recommendations) == 2
    assert "Fair" not in stats.analysis.observations[0]
    assert "below target" in stats.analysis.observations[0]


def test_date_slips_below_ratio_keep_default_cause():
    bank = _bank("bank-d", 300.0)
    result = ReconciliationResult(
        matches=_matches(20),
        unmatched_bank=[bank],
        unmatched_book=[_book("book-d", 300.0)],
        smart_fixes={"book-d": _fix("book-d", bank, ErrorType.DATE_MISMATCH)},
    )

    stats = summarize(result, total_bank=21, total_book=21)

    assert stats.analysis.primary_cause == CAUSE_DEFAULT
    assert _distribution(stats)["Date mismatch (fix)"] == 1


def test_wrong_amount_observation():
    bank = _bank("bank-w", 700.0)
    result = ReconciliationResult(
        matches=_matches(4),
        unmatched_bank=[bank],
        unmatched_book=[_book("book-w", 650.0)],
        smart_fixes={"book-w": _fix("book-w", bank, ErrorType.WRONG_AMOUNT, 90)},
    )

    stats = summarize(result, total_bank=5, total_book=5)

    assert any("incorrect amount" in item for item in stats.analysis.observations)
    assert stats.match_percentage == 80.0
    assert "Good match performance" in stats.analysis.observations[0]


@pytest.mark.parametrize(
    "bank_amount, book_amount, expected",
    [
        (5000.0, 100.0, "surplus"),
        (100.0, 5000.0, "shortage"),
        (1100.0, 100.0, "balanced"),
    ],
)
def test_net_difference_materiality(bank_amount, book_amount, expected):
    result = ReconciliationResult(
        unmatched_bank=[_bank("bank-n", bank_amount)],
        unmatched_book=[_book("book-n", book_amount)],
    )

    stats = summarize(result, total_bank=1, total_book=1)

    assert any(expected in item for item in stats.analysis.observations)


def test_over_recording_when_only_book_is_open():
    result = ReconciliationResult(
        matches=_matches(3),
        unmatched_book=[_book("book-o", 42.0)],
    )

    stats = summarize(result, total_bank=3, total_book=4)

    assert stats.analysis.net_difference == pytest.approx(-42.0)
    assert any("over-recorded" in item for item in stats.analysis.recommendations)
    assert _distribution(stats)["Missing from bank (book only)"] == 1
    assert stats.unmatched_book_count == 1
