"""
test_api.py - HTTP layer tests.

Validates:
- GET /health
- POST /reconcile happy path (multipart bank + book CSV)
- 400 responses for malformed uploads
- debug trace gated on DEBUG

Usage: pytest test_api.py
"""

from __future__ import annotations

import os
import sys

from fastapi.testclient import TestClient

# Ensure local imports resolve from project root.
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from api import app

BANK_CSV = (
    "transaction_date,invoice_number,total_amount\n"
    "10/01/2024,INV1,1000.00\n"
    '10/01/2024,INV2,"5,400.00"\n'
    "15/01/2024,INV9,77.00\n"
)

BOOK_CSV = (
    "posting_date,description,amount\n"
    "10/01/2024,INV1,1000.00\n"
    '10/01/2024,INV2,"4,500.00"\n'
)

client = TestClient(app)


def _files(bank: str = BANK_CSV, book: str = BOOK_CSV) -> dict:
    return {
        "bank": ("bank.csv", bank.encode("utf-8"), "text/csv"),
        "book": ("book.csv", book.encode("utf-8"), "text/csv"),
    }


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_reconcile_endpoint(monkeypatch):
    monkeypatch.delenv("DEBUG", raising=False)

    response = client.post("/reconcile", files=_files())

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "open_items"
    assert len(payload["matches"]) == 1
    assert [record["id"] for record in payload["unmatched_bank"]] == ["bank-1", "bank-2"]
    assert payload["smart_fixes"]["book-1"]["error_type"] == "TRANSPOSITION"
    assert payload["summary"]["total_bank_records"] == 3
    assert payload["parse_failures"] == []
    assert "End of Report" in payload["report"]
    assert "debug_trace" not in payload


def test_reconcile_reports_row_failures(monkeypatch):
    monkeypatch.delenv("DEBUG", raising=False)
    bank = BANK_CSV + "16/01/2024,INV10,not-a-number\n"

    response = client.post("/reconcile", files=_files(bank=bank))

    assert response.status_code == 200
    failures = response.json()["parse_failures"]
    assert len(failures) == 1
    assert failures[0]["side"] == "bank"
    assert failures[0]["row"] == 3


def test_missing_columns_is_bad_request():
    response = client.post("/reconcile", files=_files(book="posting_date,amount\n10/01/2024,1\n"))

    assert response.status_code == 400
    assert "missing required columns" in response.json()["detail"]


def test_missing_upload_is_rejected():
    response = client.post(
        "/reconcile",
        files={"bank": ("bank.csv", BANK_CSV.encode("utf-8"), "text/csv")},
    )
    assert response.status_code == 422


def test_debug_trace(monkeypatch):
    monkeypatch.setenv("DEBUG", "true")

    response = client.post("/reconcile", files=_files())

    assert response.status_code == 200
    trace = response.json()["debug_trace"]
    assert trace["bank_filename"] == "bank.csv"
    assert trace["parse_failure_count"] == 0
