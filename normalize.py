"""
normalize.py - Data normalization and shared comparison helpers.

Two ingestion parsers:
    parse_amount(text)          -> signed float, thousands separators removed
    parse_date(text)            -> date | None from day/month/year text

Shared comparison helpers (used by both match.py and diagnose.py):
    normalize_reference(text)   -> trimmed, casefolded reference
    amounts_equal(a, b)         -> within AMOUNT_TOLERANCE
    days_between(a, b)          -> absolute day gap, None if a date is missing
    digit_signature(amount)     -> sorted digits of the 2-decimal rendering
    is_transposition(a, b)      -> digit-swap test

Design principles:
    - SAME normalization on BOTH sides
    - Pure transformations, no I/O
    - Missing dates and empty references never match anything
"""

from __future__ import annotations

import math
import re
from datetime import date
from typing import Any, Optional

from dateutil import parser as dateparser

from logging_config import get_logger

logger = get_logger(__name__)

AMOUNT_TOLERANCE = 0.01
# Two amounts closer than one cent are "equal". Used as the hard gate in
# matching and for the date-only mismatch rule.

TRANSPOSITION_TOLERANCE_CENTS = 0.1
# Float slack, in cents (0.001 currency units), when checking that the
# difference is non-zero and a multiple of 9 cents.

DATE_PATTERN = re.compile(r"^\s*(\d{1,2})/(\d{1,2})/(\d{2,4})\s*$")

NULL_TOKENS = {"n/a", "na", "none", "null", "nan", "unknown"}


class AmountParseError(ValueError):
    """Raised when an amount string cannot be turned into a number."""


def parse_amount(amount_str: Any) -> float:
    """Parse a delimited amount string ('2,080.00', '(45.10)', '-12') to a float."""
    if amount_str is None:
        raise AmountParseError("amount is missing")

    if isinstance(amount_str, (int, float)) and not isinstance(amount_str, bool):
        value = float(amount_str)
        if not math.isfinite(value):
            raise AmountParseError(f"amount is not finite: {amount_str!r}")
        return value

    cleaned = str(amount_str).strip()
    if not cleaned or cleaned.lower() in NULL_TOKENS:
        raise AmountParseError(f"amount is empty: {amount_str!r}")

    is_parenthesized = cleaned.startswith("(") and cleaned.endswith(")")
    if is_parenthesized:
        cleaned = cleaned[1:-1].strip()

    has_minus = cleaned.startswith("-")
    if has_minus:
        cleaned = cleaned[1:]

    is_negative = has_minus or is_parenthesized

    cleaned = (
        cleaned.replace(",", "")
        .replace("$", "")
        .replace("€", "")
        .replace("£", "")
        .replace("฿", "")
        .replace(" ", "")
    )

    # Parentheses and a leading "-" both mean negative; a further sign is rejected.
    if is_negative and cleaned.startswith(("-", "+")):
        raise AmountParseError(f"amount has two sign markers: {amount_str!r}")

    try:
        value = float(cleaned)
    except ValueError as exc:
        raise AmountParseError(f"amount is not numeric: {amount_str!r}") from exc

    if not math.isfinite(value):
        raise AmountParseError(f"amount is not finite: {amount_str!r}")

    normalized = -value if is_negative else value
    logger.debug("parse_amount | raw=%r | normalized=%s", amount_str, normalized)
    return normalized


def parse_date(date_str: Any) -> Optional[date]:
    """Parse 'day/month/year' text into a date. Returns None on any malformed input."""
    if date_str is None:
        return None

    date_str = str(date_str).strip()
    if not date_str or date_str.lower() in NULL_TOKENS:
        return None

    pattern_match = DATE_PATTERN.match(date_str)
    if not pattern_match:
        logger.debug("parse_date | rejected_format | raw=%r", date_str)
        return None

    try:
        parsed = dateparser.parse(date_str, dayfirst=True, yearfirst=False)
    except (ValueError, OverflowError) as exc:
        logger.warning(
            "parse_date | parse_error=%s | raw=%r | fallback=None",
            type(exc).__name__,
            date_str,
        )
        return None

    if parsed is None:
        return None

    # dateutil silently swaps day and month when the day exceeds 12.
    day, month = int(pattern_match.group(1)), int(pattern_match.group(2))
    if parsed.day != day or parsed.month != month:
        logger.debug("parse_date | rejected_swap | raw=%r", date_str)
        return None

    logger.debug("parse_date | raw=%r | normalized=%s", date_str, parsed.date().isoformat())
    return parsed.date()


def normalize_reference(reference: Optional[str]) -> str:
    """Trim and casefold a reference/description for substring comparison."""
    if reference is None:
        return ""
    return str(reference).strip().casefold()


def amounts_equal(a: float, b: float) -> bool:
    return abs(a - b) < AMOUNT_TOLERANCE


def days_between(first: Optional[date], second: Optional[date]) -> Optional[int]:
    """Absolute calendar-day gap, or None when either date is missing."""
    if first is None or second is None:
        return None
    return abs((first - second).days)


def digit_signature(amount: float) -> str:
    """Sorted characters of the amount rendered with exactly two decimals."""
    return "".join(sorted(f"{amount:.2f}".replace(".", "")))


def is_transposition(a: float, b: float) -> bool:
    """Whether two amounts look like the same number with swapped digits.

    The cent difference must be a non-zero multiple of 9 and both amounts
    must render to the same multiset of digits. Non-finite amounts never
    qualify.
    """
    if not (math.isfinite(a) and math.isfinite(b)):
        return False

    diff_cents = abs(a - b) * 100.0
    if diff_cents < TRANSPOSITION_TOLERANCE_CENTS:
        return False

    remainder = diff_cents % 9.0
    if min(remainder, 9.0 - remainder) > TRANSPOSITION_TOLERANCE_CENTS:
        return False

    return digit_signature(a) == digit_signature(b)
