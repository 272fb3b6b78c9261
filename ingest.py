"""
ingest.py - CSV ingestion boundary for the reconciliation engine.

This module converts raw bank and book CSV exports into typed
`BankRecord` / `BookRecord` values.

Pipeline role:
- It is the only module that knows about file formats and column names.
- Rows whose amount cannot be parsed are reported as `ParseFailure`s and
  left out; every other row is still returned.
- Dates that fail to parse are not failures: the record keeps the raw text
  and gets `parsed_date=None`, which the engine handles.
"""

from __future__ import annotations

import os
from typing import Any

import pandas as pd

from logging_config import get_logger
from models import BankRecord, BookRecord, IngestResult, ParseFailure
from normalize import AmountParseError, parse_amount, parse_date

logger = get_logger(__name__)

BANK_REQUIRED_COLUMNS = ["transaction_date", "invoice_number", "total_amount"]
BANK_OPTIONAL_COLUMNS = ["account_no", "time", "product", "merchant_id", "brand"]

BOOK_REQUIRED_COLUMNS = ["posting_date", "description", "amount"]
BOOK_OPTIONAL_COLUMNS = ["document_no"]

COLUMN_ALIASES: dict[str, str] = {
    "fuel_brand": "brand",
}


def read_csv(csv_path: str, required_columns: list[str], optional_columns: list[str]) -> pd.DataFrame:
    """Load a CSV as strings and validate its columns."""
    if csv_path is None:
        raise ValueError("csv_path cannot be None")

    csv_path = str(csv_path).strip()
    if not csv_path:
        raise ValueError("csv_path cannot be empty")

    if not os.path.exists(csv_path):
        raise FileNotFoundError(f"CSV not found: {csv_path}")

    try:
        df = pd.read_csv(csv_path, encoding="utf-8-sig", dtype=str)
    except UnicodeDecodeError:
        logger.warning(
            "csv_encoding_warning | path=%s | reason='utf-8 decode failed' | fallback=latin-1",
            csv_path,
        )
        df = pd.read_csv(csv_path, encoding="latin-1", dtype=str)
    except pd.errors.EmptyDataError as exc:
        raise ValueError(f"CSV is empty: {csv_path}") from exc
    except Exception as exc:
        raise ValueError(f"Failed to read CSV '{csv_path}': {exc}") from exc

    df = prepare_dataframe(df, required_columns, optional_columns, source=csv_path)
    logger.info("csv_loaded | path=%s | rows=%s | columns=%s", csv_path, len(df), list(df.columns))
    return df


def prepare_dataframe(
    df: pd.DataFrame,
    required_columns: list[str],
    optional_columns: list[str],
    source: str = "<dataframe>",
) -> pd.DataFrame:
    """Normalize headers, drop empty rows and check required columns."""
    df = df.copy()
    df.columns = [str(col).strip().lower() for col in df.columns]
    df = df.rename(columns={alias: name for alias, name in COLUMN_ALIASES.items() if name not in df.columns})
    df = df.dropna(how="all")

    if df.empty:
        raise ValueError(f"CSV has no data rows: {source}")

    missing = [column for column in required_columns if column not in df.columns]
    if missing:
        raise ValueError(
            f"CSV missing required columns: {missing}\n"
            f"Required: {required_columns}\n"
            f"Found: {list(df.columns)}"
        )

    for optional in optional_columns:
        if optional not in df.columns:
            df[optional] = ""

    return df.fillna("").reset_index(drop=True)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _amount_or_failure(
    side: str,
    row_index: int,
    column: str,
    raw: str,
    failures: list[ParseFailure],
) -> float | None:
    try:
        return parse_amount(raw)
    except AmountParseError as exc:
        failures.append(ParseFailure(side=side, row=row_index, column=column, raw_value=raw, reason=str(exc)))
        logger.warning(
            "ingest_row_skipped | side=%s | row=%s | column=%s | raw=%r | reason=%s",
            side,
            row_index,
            column,
            raw,
            exc,
        )
        return None


def bank_records_from_dataframe(df: pd.DataFrame) -> IngestResult:
    """Build BankRecords from a prepared bank DataFrame."""
    records: list[BankRecord] = []
    failures: list[ParseFailure] = []

    for row_index, row in enumerate(df.to_dict("records")):
        raw_amount = _text(row.get("total_amount"))
        amount = _amount_or_failure("bank", row_index, "total_amount", raw_amount, failures)
        if amount is None:
            continue

        raw_date = _text(row.get("transaction_date"))
        records.append(
            BankRecord(
                id=f"bank-{row_index}",
                account_no=_text(row.get("account_no")),
                transaction_date=raw_date,
                time=_text(row.get("time")),
                invoice_number=_text(row.get("invoice_number")),
                product=_text(row.get("product")),
                total_amount=amount,
                original_amount=raw_amount,
                parsed_date=parse_date(raw_date),
                merchant_id=_text(row.get("merchant_id")),
                brand=_text(row.get("brand")),
            )
        )

    _log_ingest("bank", records, failures)
    return IngestResult(records=records, failures=failures)


def book_records_from_dataframe(df: pd.DataFrame) -> IngestResult:
    """Build BookRecords from a prepared book DataFrame."""
    records: list[BookRecord] = []
    failures: list[ParseFailure] = []

    for row_index, row in enumerate(df.to_dict("records")):
        raw_amount = _text(row.get("amount"))
        amount = _amount_or_failure("book", row_index, "amount", raw_amount, failures)
        if amount is None:
            continue

        raw_date = _text(row.get("posting_date"))
        records.append(
            BookRecord(
                id=f"book-{row_index}",
                document_no=_text(row.get("document_no")),
                posting_date=raw_date,
                description=_text(row.get("description")),
                amount=amount,
                original_amount=raw_amount,
                parsed_date=parse_date(raw_date),
            )
        )

    _log_ingest("book", records, failures)
    return IngestResult(records=records, failures=failures)


def _log_ingest(side: str, records: list, failures: list[ParseFailure]) -> None:
    undated = sum(1 for record in records if record.parsed_date is None)
    if undated:
        logger.warning(
            "ingest_date_warning | side=%s | unparsed_dates=%s | fallback='date scoring skipped'",
            side,
            undated,
        )
    logger.info(
        "ingest_complete | side=%s | records=%s | failures=%s",
        side,
        len(records),
        len(failures),
    )


def load_bank_records(csv_path: str) -> IngestResult:
    """Load and parse a bank feed CSV."""
    df = read_csv(csv_path, BANK_REQUIRED_COLUMNS, BANK_OPTIONAL_COLUMNS)
    return bank_records_from_dataframe(df)


def load_book_records(csv_path: str) -> IngestResult:
    """Load and parse a general-ledger CSV."""
    df = read_csv(csv_path, BOOK_REQUIRED_COLUMNS, BOOK_OPTIONAL_COLUMNS)
    return book_records_from_dataframe(df)
