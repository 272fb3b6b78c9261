"""
summary.py - Aggregate statistics and narrative analysis for a reconciliation.

Turns a `ReconciliationResult` into `SummaryStats`: counts, match rate,
net difference of the residuals, error distribution, a primary cause and
a short list of observations / recommendations.
"""

from __future__ import annotations

from logging_config import get_logger
from models import (
    AnalysisReport,
    DistributionEntry,
    ErrorType,
    ReconciliationResult,
    SummaryStats,
)

logger = get_logger(__name__)

EXCELLENT_MATCH_RATE = 95.0
FAIR_MATCH_RATE = 80.0

DATE_SLIP_RATIO = 0.1
# Date mismatches above this share of matched pairs count as a systemic
# timing difference rather than isolated keying errors.

MATERIAL_NET_DIFFERENCE = 1000.0

CAUSE_DEFAULT = "General omissions"
CAUSE_TRANSPOSITION = "Human error (transposition)"
CAUSE_TIMING = "Timing difference"


def _match_rate_observation(match_rate: float) -> str:
    if match_rate >= EXCELLENT_MATCH_RATE:
        return f"Excellent match performance ({match_rate:.1f}%): the ledger is highly accurate."
    if match_rate >= FAIR_MATCH_RATE:
        return f"Good match performance ({match_rate:.1f}%), but some items still need review."
    return f"Match rate below target ({match_rate:.1f}%): data discrepancies are high."


def summarize(
    result: ReconciliationResult,
    total_bank: int,
    total_book: int,
) -> SummaryStats:
    """Build display statistics for a reconciliation result."""
    matched = len(result.matches)
    unmatched_bank = len(result.unmatched_bank)
    unmatched_book = len(result.unmatched_book)

    fix_counts = {error_type: 0 for error_type in ErrorType}
    for fix in result.smart_fixes.values():
        fix_counts[fix.error_type] += 1

    transposition_count = fix_counts[ErrorType.TRANSPOSITION]
    date_mismatch_count = fix_counts[ErrorType.DATE_MISMATCH]
    wrong_amount_count = fix_counts[ErrorType.WRONG_AMOUNT]
    pure_unmatched_book = result.pure_unmatched_book_count

    unmatched_bank_sum = sum(record.total_amount for record in result.unmatched_bank)
    unmatched_book_sum = sum(record.amount for record in result.unmatched_book)
    net_difference = round(unmatched_bank_sum - unmatched_book_sum, 2)

    match_rate = (matched / total_bank) * 100.0 if total_bank else 0.0

    observations: list[str] = [_match_rate_observation(match_rate)]
    recommendations: list[str] = []
    primary_cause = CAUSE_DEFAULT

    if transposition_count > 0:
        primary_cause = CAUSE_TRANSPOSITION
        recommendations.append(
            "High rate of transposed digits detected: review numeric keypad data entry."
        )
        observations.append(
            f"Found {transposition_count} transposition error(s), typically caused by fast keying."
        )

    if date_mismatch_count > matched * DATE_SLIP_RATIO:
        primary_cause = CAUSE_TIMING
        recommendations.append(
            "Many date discrepancies found: check system timezone or cut-off times."
        )
        observations.append(
            "Significant date slip pattern detected, possibly from different cut-off cycles."
        )

    if wrong_amount_count > 0:
        observations.append(
            f"Found {wrong_amount_count} entry(ies) with a confirmed reference but an incorrect amount."
        )

    if abs(net_difference) > MATERIAL_NET_DIFFERENCE:
        status = "surplus (Bank > Book)" if net_difference > 0 else "shortage (Book > Bank)"
        observations.append(f"Material net difference: {status} of {abs(net_difference):,.2f}.")
    else:
        observations.append("Net difference is within acceptable range (balanced).")

    if pure_unmatched_book > 0 and unmatched_bank == 0:
        recommendations.append(
            "Book contains entries not present in the bank (over-recorded): check for duplicate documents."
        )
        observations.append("Book entries without a bank counterpart found (possible over-recording).")

    distribution = [
        DistributionEntry(name="Matched", value=matched),
        DistributionEntry(name="Transposition (fix)", value=transposition_count),
        DistributionEntry(name="Date mismatch (fix)", value=date_mismatch_count),
        DistributionEntry(name="Wrong amount (fix)", value=wrong_amount_count),
        DistributionEntry(name="Missing from book (bank only)", value=unmatched_bank),
        DistributionEntry(name="Missing from bank (book only)", value=pure_unmatched_book),
    ]

    stats = SummaryStats(
        total_bank_records=total_bank,
        total_book_records=total_book,
        matched_count=matched,
        unmatched_bank_count=unmatched_bank,
        unmatched_book_count=unmatched_book,
        total_matched_amount=round(sum(match.bank.total_amount for match in result.matches), 2),
        match_percentage=round(match_rate, 2),
        smart_fix_count=len(result.smart_fixes),
        analysis=AnalysisReport(
            net_difference=net_difference,
            error_distribution=[entry for entry in distribution if entry.value > 0],
            primary_cause=primary_cause,
            recommendations=recommendations,
            observations=observations,
        ),
    )

    logger.info(
        "summary_complete | match_rate=%.1f%% | net_difference=%.2f | primary_cause=%r | smart_fixes=%s",
        match_rate,
        net_difference,
        primary_cause,
        stats.smart_fix_count,
    )
    return stats
