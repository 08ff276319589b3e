"""Logging setup for netprobe."""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

_ROOT = "netprobe"

# LogRecord attributes copied into JSON output when a caller passes them via ``extra``.
_CONTEXT_FIELDS = ("run_id", "worker_index", "request_index", "target")


class _JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message plus run context."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(
    level: int = logging.WARNING,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure and return the ``netprobe`` logger.

    Installs a single stderr handler. Calling again only adjusts the level,
    so the CLI and library callers can both call it safely.

    Args:
        level: Logging level. Defaults to WARNING so that live progress
            output is not interleaved with log lines.
        json_format: Emit one-line JSON records instead of plain text.

    Returns:
        The configured ``netprobe`` logger.
    """
    logger = logging.getLogger(_ROOT)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if json_format:
        formatter: logging.Formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger, e.g. ``get_logger("probe.tcp")`` -> ``netprobe.probe.tcp``."""
    return logging.getLogger(f"{_ROOT}.{name}")
