"""
test_ingest.py - CSV ingestion tests.

Covers:
- header normalization and column aliases
- delimited amounts and day/month/year dates
- per-row amount failures reported as ParseFailure
- unparseable dates kept as records with parsed_date=None
- file-level errors (missing file, missing columns, no data rows)

Usage: pytest test_ingest.py
"""

from __future__ import annotations

import os
import sys
from datetime import date
from pathlib import Path

import pandas as pd
import pytest

# Ensure local imports resolve from project root.
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from ingest import (
    BOOK_REQUIRED_COLUMNS,
    BOOK_OPTIONAL_COLUMNS,
    load_bank_records,
    load_book_records,
    prepare_dataframe,
)
from models import BankRecord, BookRecord

BANK_CSV = (
    "Account_No,Transaction_Date,Time,Invoice_Number,Product,Total_Amount,Merchant_ID,Fuel_Brand\n"
    '1001,10/01/2024,08:15,INV1,Diesel,"2,080.00",M-1,Shell\n'
    "1001,11/01/2024,09:00,INV2,Gasohol,abc,M-1,Shell\n"
    "1001,31/02/2024,10:30,INV3,Diesel,450.50,M-2,PTT\n"
)

BOOK_CSV = (
    "Document_No,Posting_Date,Description,Amount\n"
    'JV-01,10/01/2024,Payment INV1,"2,080.00"\n'
    "JV-02,2024-01-12,INV3,450.50\n"
    "JV-03,12/01/2024,Refund,(15.00)\n"
)


def _write(tmp_path: Path, name: str, content: str) -> str:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_load_bank_records(tmp_path):
    result = load_bank_records(_write(tmp_path, "bank.csv", BANK_CSV))

    assert [record.id for record in result.records] == ["bank-0", "bank-2"]
    assert all(isinstance(record, BankRecord) for record in result.records)

    first = result.records[0]
    assert first.total_amount == pytest.approx(2080.0)
    assert first.original_amount == "2,080.00"
    assert first.parsed_date == date(2024, 1, 10)
    assert first.transaction_date == "10/01/2024"
    assert first.invoice_number == "INV1"
    assert first.brand == "Shell"
    assert first.merchant_id == "M-1"
    assert first.account_no == "1001"


def test_bank_amount_failure_is_reported_not_raised(tmp_path):
    result = load_bank_records(_write(tmp_path, "bank.csv", BANK_CSV))

    assert result.has_failures
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert failure.side == "bank"
    assert failure.row == 1
    assert failure.column == "total_amount"
    assert failure.raw_value == "abc"
    assert failure.reason


def test_unparseable_date_keeps_record(tmp_path):
    result = load_bank_records(_write(tmp_path, "bank.csv", BANK_CSV))

    invalid_day = result.records[1]
    assert invalid_day.id == "bank-2"
    assert invalid_day.parsed_date is None
    assert invalid_day.transaction_date == "31/02/2024"


def test_load_book_records(tmp_path):
    result = load_book_records(_write(tmp_path, "book.csv", BOOK_CSV))

    assert not result.has_failures
    assert [record.id for record in result.records] == ["book-0", "book-1", "book-2"]
    assert all(isinstance(record, BookRecord) for record in result.records)
    assert result.records[0].description == "Payment INV1"
    assert result.records[0].document_no == "JV-01"
    assert result.records[1].parsed_date is None
    assert result.records[2].amount == pytest.approx(-15.0)


def test_optional_columns_default_to_empty(tmp_path):
    csv = "transaction_date,invoice_number,total_amount\n10/01/2024,INV1,100\n"
    result = load_bank_records(_write(tmp_path, "bank.csv", csv))

    record = result.records[0]
    assert record.brand == ""
    assert record.product == ""
    assert record.time == ""


def test_blank_cells_become_empty_strings(tmp_path):
    csv = "posting_date,description,amount\n,,100\n"
    result = load_book_records(_write(tmp_path, "book.csv", csv))

    record = result.records[0]
    assert record.description == ""
    assert record.posting_date == ""
    assert record.parsed_date is None


def test_missing_required_columns(tmp_path):
    csv = "posting_date,amount\n10/01/2024,100\n"
    with pytest.raises(ValueError, match="missing required columns"):
        load_book_records(_write(tmp_path, "book.csv", csv))


def test_header_only_file(tmp_path):
    csv = "posting_date,description,amount\n"
    with pytest.raises(ValueError, match="no data rows"):
        load_book_records(_write(tmp_path, "book.csv", csv))


def test_empty_file(tmp_path):
    with pytest.raises(ValueError):
        load_book_records(_write(tmp_path, "book.csv", ""))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_bank_records(str(tmp_path / "nope.csv"))


def test_empty_path():
    with pytest.raises(ValueError):
        load_bank_records("  ")


def test_prepare_dataframe_drops_fully_empty_rows():
    df = pd.DataFrame(
        {
            "Posting_Date": ["10/01/2024", None, "11/01/2024"],
            "Description": ["A", None, "B"],
            "Amount": ["1", None, "2"],
        }
    )

    prepared = prepare_dataframe(df, BOOK_REQUIRED_COLUMNS, BOOK_OPTIONAL_COLUMNS)

    assert len(prepared) == 2
    assert list(prepared.index) == [0, 1]
    assert "document_no" in prepared.columns
    assert prepared.loc[1, "description"] == "B"
