"""Logging bootstrap for the inspect-statblock CLI.

// [LAW:single-enforcer] Logger handler wiring is enforced in this module only.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "inspect_statblock"

_LOG_FILE: str | None = None


def _parse_level(raw: str) -> int:
    level = getattr(logging, str(raw or "INFO").strip().upper(), logging.INFO)
    return level if isinstance(level, int) else logging.INFO


def _default_log_path(run_name: str) -> str:
    log_dir = Path(
        os.environ.get(
            "INSPECT_STATBLOCK_LOG_DIR",
            os.path.expanduser("~/.local/share/inspect-statblock/logs"),
        )
    )
    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return str(log_dir / f"{run_name}-{ts}-{os.getpid()}.log")


def configure(run_name: str = "inspect", level: str | None = None) -> str:
    """Attach stderr + rotating file handlers to the package logger.

    level overrides INSPECT_STATBLOCK_LOG_LEVEL (default WARNING). Returns the
    log file path; repeated calls keep the first configuration.
    """
    global _LOG_FILE
    if _LOG_FILE is not None:
        return _LOG_FILE

    level_value = _parse_level(level or os.environ.get("INSPECT_STATBLOCK_LOG_LEVEL", "WARNING"))
    file_path = os.environ.get("INSPECT_STATBLOCK_LOG_FILE") or _default_log_path(run_name)
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter("[%(name)s] %(levelname)s %(message)s"))
    file_handler = RotatingFileHandler(
        file_path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s", datefmt="%Y-%m-%dT%H:%M:%S"
        )
    )

    # Package module loggers all propagate up to this one.
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level_value)
    logger.propagate = False
    logger.handlers.clear()
    logger.addHandler(stream_handler)
    logger.addHandler(file_handler)

    _LOG_FILE = file_path
    return file_path
