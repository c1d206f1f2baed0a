"""
Structured Logging Utilities

Every UpdateKit module logs through ``logging.getLogger(__name__)``; this module
wires the ``UpdateKit`` logger to a short console format and a rotating JSONL
file per day. Credentials that end up in logged URLs or exception text
(``apikey=...``, ``token=...``) are redacted by both formatters. Day files older
than the retention window are gzipped, and archives are dropped after a second
window.
"""

from __future__ import annotations

import gzip
import json
import logging
import os
import re
import shutil
import sys
import time
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import platformdirs

from .settings import LoggingConfiguration

ROOT_LOGGER_NAME = "UpdateKit"
_MANAGED_ATTR = "_updatekit_managed"
_DAY_SECONDS = 86400

_SECRET_PATTERN = re.compile(
    r"(?i)\b(api_?key|token|password|secret|authorization)(\s*[=:]\s*['\"]?)([^&\s,;'\"]+)"
)


def redact(text: str) -> str:
    """Replace credential values in ``key=value`` or ``key: value`` pairs.

    Examples:
        >>> redact("GET https://api.example.org/?itemid=1&apikey=abc123")
        'GET https://api.example.org/?itemid=1&apikey=***'
    """
    return _SECRET_PATTERN.sub(r"\1\2***", text)


class ConsoleFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(levelname)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        return redact(super().format(record))


class JSONFormatter(logging.Formatter):
    """One JSON object per record, stamped with the record's own UTC time."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": redact(record.getMessage()),
        }
        if record.exc_info:
            entry["exc_info"] = redact(self.formatException(record.exc_info))
        return json.dumps(entry, ensure_ascii=False)


def _expire_logs(log_dir: Path, retention_days: int) -> None:
    """Gzip day files past the retention window; delete archives past twice that."""
    now = time.time()
    window = retention_days * _DAY_SECONDS
    for path in log_dir.iterdir():
        age = now - path.stat().st_mtime
        if path.name.endswith(".jsonl") and age > window:
            archive = path.with_name(path.name + ".gz")
            with path.open("rb") as source, gzip.open(archive, "wb") as target:
                shutil.copyfileobj(source, target)
            path.unlink()
        elif path.name.endswith(".jsonl.gz") and age > 2 * window:
            path.unlink()


def default_log_dir() -> Path:
    override = os.environ.get("UPDATEKIT_LOG_DIR")
    if override:
        return Path(override)
    return Path(platformdirs.user_log_dir("UpdateKit", appauthor=False))


def setup_logging(config: LoggingConfiguration, log_dir: Optional[Path] = None) -> logging.Logger:
    """Configure console and JSONL file handlers on the ``UpdateKit`` logger.

    Calling this again replaces the handlers installed by a previous call and
    leaves any other handlers alone.

    Args:
        config: Level, rotation size and retention.
        log_dir: Directory for the JSONL files; defaults to ``config.log_dir``,
            then ``$UPDATEKIT_LOG_DIR``, then the platform log directory.

    Returns:
        The configured ``UpdateKit`` logger.
    """
    log_dir = log_dir or config.log_dir or default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    _expire_logs(log_dir, config.retention_days)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(config.level)

    for handler in list(logger.handlers):
        if getattr(handler, _MANAGED_ATTR, False):
            logger.removeHandler(handler)
            handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ConsoleFormatter())

    day = datetime.now(timezone.utc).strftime("%Y%m%d")
    jsonl = RotatingFileHandler(
        log_dir / f"updatekit-{day}.jsonl",
        maxBytes=config.max_log_size_mb * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    jsonl.setFormatter(JSONFormatter())

    for handler in (console, jsonl):
        setattr(handler, _MANAGED_ATTR, True)
        logger.addHandler(handler)

    logger.propagate = True
    return logger


__all__ = ["ConsoleFormatter", "JSONFormatter", "default_log_dir", "redact", "setup_logging"]
