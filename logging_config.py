"""
logging_config.py - Centralized logging configuration.

Provides consistent logging setup across all modules. Messages follow the
`event_name | key=value | key=value` convention so they stay greppable in
both the plain and the JSON-like format.
"""

from __future__ import annotations

import logging
import os
import sys


def setup_logging(level: int = logging.INFO, json_format: bool = False) -> None:
    """Configure root logger with consistent formatting.

    Args:
        level: Logging level.
        json_format: If True, emit JSON-like log lines.
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if json_format:
        formatter = logging.Formatter(
            '{"timestamp":"%(asctime)s","level":"%(levelname)s",'
            '"module":"%(name)s","message":"%(message)s"}',
            datefmt="%H:%M:%S",
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(name)-12s] %(levelname)-7s %(message)s",
            datefmt="%H:%M:%S",
        )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger."""
    return logging.getLogger(name)


def level_from_env(default: int = logging.INFO) -> int:
    """Resolve the log level from RECON_LOG_LEVEL ('DEBUG', 'WARNING', '10', ...)."""
    raw = os.getenv("RECON_LOG_LEVEL", "").strip().upper()
    if not raw:
        return default
    if raw.isdigit():
        return int(raw)

    level = logging.getLevelName(raw)
    if isinstance(level, int):
        return level

    logging.getLogger(__name__).warning(
        "log_level_invalid | raw=%r | fallback=%s",
        raw,
        logging.getLevelName(default),
    )
    return default
