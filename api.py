"""
api.py - FastAPI HTTP layer for the reconciliation engine.

Endpoints:
  - POST /reconcile   (multipart: bank CSV + book CSV)
  - GET  /health

No matching or classification logic is implemented here.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from explain import format_executive_summary, format_result_json
from logging_config import get_logger, level_from_env, setup_logging
from main import run_reconciliation

logger = get_logger("recon-api")

try:
    load_dotenv()
except UnicodeDecodeError:
    # Fallback for legacy Windows-encoded .env files.
    load_dotenv(encoding="cp1252")

app = FastAPI(
    title="Bank Reconciliation API",
    version="1.0.0",
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

# Allows local UI use from file:// or another local host/port.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _save_upload(upload: UploadFile, destination: Path) -> None:
    """Save an UploadFile to disk."""
    try:
        with destination.open("wb") as out_file:
            while True:
                chunk = await upload.read(1024 * 1024)
                if not chunk:
                    break
                out_file.write(chunk)
    finally:
        await upload.close()


def _is_debug_enabled() -> bool:
    """Return True when DEBUG mode is enabled via environment variable."""
    return os.getenv("DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}


@app.get("/health")
def health() -> dict[str, str]:
    """Service health check."""
    return {"status": "ok"}


@app.post("/reconcile")
async def reconcile_endpoint(
    bank: UploadFile = File(...),
    book: UploadFile = File(...),
) -> JSONResponse:
    """Reconcile an uploaded bank feed against an uploaded ledger export."""
    if not bank.filename:
        raise HTTPException(status_code=400, detail="Bank CSV file is required.")
    if not book.filename:
        raise HTTPException(status_code=400, detail="Book CSV file is required.")

    with tempfile.TemporaryDirectory(prefix="recon-") as tmp_dir:
        tmp_path = Path(tmp_dir)
        bank_path = tmp_path / "bank.csv"
        book_path = tmp_path / "book.csv"

        try:
            await _save_upload(bank, bank_path)
            await _save_upload(book, book_path)

            result, stats, failures = run_reconciliation(str(bank_path), str(book_path))
            payload = format_result_json(result, stats=stats, failures=failures)
            payload["report"] = format_executive_summary(stats)

            if _is_debug_enabled():
                payload["debug_trace"] = {
                    "bank_filename": bank.filename,
                    "book_filename": book.filename,
                    "parse_failure_count": len(failures),
                }

            return JSONResponse(content=payload)
        except HTTPException:
            raise
        except FileNotFoundError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except Exception as exc:
            logger.error(
                "api_reconcile_error | error_type=%s | error=%s",
                type(exc).__name__,
                exc,
                exc_info=True,
            )
            raise HTTPException(
                status_code=500,
                detail="Unexpected server error while reconciling.",
            ) from exc


if __name__ == "__main__":
    setup_logging(level=level_from_env())
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("api:app", host="0.0.0.0", port=port, reload=False)
