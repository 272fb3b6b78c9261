"""
models.py - Data Models for the Reconciliation Engine

This file defines ALL data structures shared across the reconciliation flow.
Every module communicates exclusively through these models:

    ingest.py    ->  BankRecord / BookRecord (+ ParseFailure)
    match.py     ->  MatchResult (list[Match] + residuals)
    diagnose.py  ->  dict[str, SmartFix]
    reconcile.py ->  ReconciliationResult
    summary.py   ->  SummaryStats
    explain.py   ->  str / dict (uses ReconciliationResult + SummaryStats)

Design principles:
1. Records are immutable once ingestion builds them
2. Engine output references the input records, it never copies or edits them
3. Every suggestion carries a human-readable reason so the output is traceable

Schema relationships:
    BankRecord --used by--> Match.bank, SmartFix.suggested_bank_record
    BookRecord --used by--> Match.book
    ErrorType  --used by--> SmartFix.error_type
    SmartFix   --used by--> ReconciliationResult.smart_fixes (keyed by book id)
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ErrorType(str, Enum):
    """Three archetypes describing why a book record failed to match the bank."""

    # Two digits swapped during data entry (5400.00 keyed as 4500.00).
    # The difference is a multiple of 9 and the digit multiset is preserved.
    TRANSPOSITION = "TRANSPOSITION"

    # Reference numbers agree but the amount was keyed incorrectly and is
    # not a simple digit swap.
    WRONG_AMOUNT = "WRONG_AMOUNT"

    # Amount agrees exactly but the posting date is too far from the bank
    # date for the matcher to accept (wrong month/year keyed).
    DATE_MISMATCH = "DATE_MISMATCH"


class BankRecord(BaseModel):
    """Single transaction as reported by the bank feed.

    The bank is treated as the source of truth by the matcher: bank records
    are processed in their given order and each one claims at most one book
    record.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable identity, e.g. 'bank-0'.")
    account_no: str = Field(default="", description="Account number the transaction posted to.")
    transaction_date: str = Field(
        default="",
        description="Transaction date exactly as it appeared in the feed (day/month/year).",
    )
    time: str = Field(default="", description="Time of day, kept as an opaque string.")
    invoice_number: str = Field(
        default="",
        description=(
            "Invoice or reference number. Compared against the book description "
            "by both the matcher (substring, case-insensitive) and the anomaly "
            "classifier (exact after trimming)."
        ),
    )
    product: str = Field(default="", description="Product or service description.")
    total_amount: float = Field(
        ...,
        allow_inf_nan=False,
        description="Signed transaction amount, currency-agnostic.",
    )
    original_amount: str = Field(default="", description="Amount text as printed in the feed.")
    parsed_date: Optional[date] = Field(
        default=None,
        description="Parsed transaction date. None when the source text did not parse.",
    )
    merchant_id: str = Field(default="", description="Merchant identity reported by the bank.")
    brand: str = Field(default="", description="Brand or category tag.")


class BookRecord(BaseModel):
    """Single transaction as recorded in the general ledger."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable identity, e.g. 'book-0'.")
    document_no: str = Field(default="", description="Ledger document number.")
    posting_date: str = Field(default="", description="Posting date text (day/month/year).")
    description: str = Field(
        default="",
        description="Free-text description. Usually carries the bank invoice number.",
    )
    amount: float = Field(..., allow_inf_nan=False, description="Signed posted amount.")
    original_amount: str = Field(default="", description="Amount text as entered in the ledger.")
    parsed_date: Optional[date] = Field(
        default=None,
        description="Parsed posting date. None when the source text did not parse.",
    )


class Match(BaseModel):
    """An accepted bank-book correspondence produced by the matcher."""

    model_config = ConfigDict(frozen=True)

    bank: BankRecord
    book: BookRecord
    score: int = Field(
        ...,
        ge=0,
        le=100,
        description=(
            "Additive score: amount 50 + reference 30 + date 20 (or 10 for "
            "1-2 days drift). Only scores of 70 or more are ever accepted."
        ),
    )
    note: str = Field(default="", description="'Exact match' or partial match annotation.")

    @property
    def is_exact(self) -> bool:
        """Whether amount, reference and same-day date all agreed."""
        return self.score == 100


class SmartFix(BaseModel):
    """Suggested counterpart and root cause for one residual book record."""

    model_config = ConfigDict(frozen=True)

    book_id: str = Field(..., description="Identity of the residual book record.")
    suggested_bank_record: BankRecord = Field(
        ...,
        description="Residual bank record believed to be the true counterpart.",
    )
    error_type: ErrorType
    confidence_score: int = Field(
        ...,
        ge=0,
        le=100,
        description=(
            "Heuristic strength, not a probability. "
            "95 = referenced transposition, 90 = referenced wrong amount, "
            "80 = same amount with date slip, 60-70 = unreferenced transposition."
        ),
    )
    reason: str = Field(default="", description="Human-readable explanation.")
    diff_amount: Optional[float] = Field(
        default=None,
        allow_inf_nan=False,
        description="Bank amount minus book amount. 0.0 for date mismatches.",
    )


class MatchResult(BaseModel):
    """Matcher output: accepted pairs plus the residuals on each side."""

    matches: list[Match] = Field(default_factory=list)
    unmatched_bank: list[BankRecord] = Field(default_factory=list)
    remaining_book: list[BookRecord] = Field(default_factory=list)


class ReconciliationResult(BaseModel):
    """Full engine output consumed by the summary and reporting layers."""

    matches: list[Match] = Field(default_factory=list)
    unmatched_bank: list[BankRecord] = Field(default_factory=list)
    unmatched_book: list[BookRecord] = Field(default_factory=list)
    smart_fixes: dict[str, SmartFix] = Field(
        default_factory=dict,
        description="Smart fix per residual book record, keyed by book id.",
    )

    @property
    def pure_unmatched_book_count(self) -> int:
        """Residual book records with no smart fix suggestion."""
        return len(self.unmatched_book) - len(self.smart_fixes)


class ParseFailure(BaseModel):
    """One input row that ingestion could not turn into a record."""

    side: str = Field(default="", description="'bank' or 'book'.")
    row: int = Field(..., ge=0, description="Zero-based data row index in the source file.")
    column: str = Field(..., description="Column holding the offending value.")
    raw_value: str = Field(default="", description="Value exactly as read.")
    reason: str = Field(default="", description="Why the value was rejected.")


class IngestResult(BaseModel):
    """Records parsed from one file, alongside the rows that failed."""

    records: list[Union[BankRecord, BookRecord]] = Field(default_factory=list)
    failures: list[ParseFailure] = Field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


class DistributionEntry(BaseModel):
    name: str
    value: int = Field(..., ge=0)


class AnalysisReport(BaseModel):
    """Narrative analysis derived from a reconciliation result."""

    net_difference: float = Field(
        default=0.0,
        description="Sum of unmatched bank amounts minus sum of unmatched book amounts.",
    )
    error_distribution: list[DistributionEntry] = Field(default_factory=list)
    primary_cause: str = Field(default="General omissions")
    recommendations: list[str] = Field(default_factory=list)
    observations: list[str] = Field(default_factory=list)


class SummaryStats(BaseModel):
    """Aggregate counts and analysis for display and reporting."""

    total_bank_records: int = 0
    total_book_records: int = 0
    matched_count: int = 0
    unmatched_bank_count: int = 0
    unmatched_book_count: int = 0
    total_matched_amount: float = 0.0
    match_percentage: float = 0.0
    smart_fix_count: int = 0
    analysis: AnalysisReport = Field(default_factory=AnalysisReport)
