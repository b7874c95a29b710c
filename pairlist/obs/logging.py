"""
Structured JSON Lines logging for the pair-list pipeline.

Every log entry is a single JSON object carrying:
- Timestamp (ISO 8601 UTC)
- Log level
- Instance ID, so several bots sharing a log sink can be told apart
- Event type for filtering (e.g. "filter_applied", "pairlist_refreshed")
- Module name
- Human-readable message
- Extra structured data

Example log entry:
    {"ts": "2024-01-15T10:30:00Z", "level": "INFO", "instance_id": "bot-1",
     "event": "pairlist_refreshed", "module": "manager", "msg": "Pair list refreshed",
     "extra": {"pair_count": 12, "duration_ms": 3.4}}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class LogSettings:
    """
    Configuration for logger initialization.

    Attributes:
        level: Log level string (DEBUG, INFO, WARNING, ERROR).
        instance_id: Identifier of the running bot instance.
        log_file: Optional path to log file (None for console only).
        jsonl: If True, use JSON Lines format; otherwise plain text.
    """
    level: str
    instance_id: str
    log_file: Path | None = None
    jsonl: bool = True


class JsonLineFormatter(logging.Formatter):
    """Formats each record as one JSON object per line."""

    def __init__(self, instance_id: str):
        super().__init__()
        self._instance_id = instance_id

    def format(self, record: logging.LogRecord) -> str:
        event = getattr(record, "event", "log")
        extra = getattr(record, "extra", {})
        if not isinstance(extra, dict):
            extra = {"value": extra}

        payload = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "instance_id": self._instance_id,
            "event": event,
            "module": record.module,
            "msg": record.getMessage(),
            "extra": extra,
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def build_logger(settings: LogSettings) -> logging.Logger:
    """
    Create the logger used by one pipeline instance.

    The logger does not propagate, so repeated calls with the same
    instance ID replace its handlers instead of stacking them.

    Args:
        settings: LogSettings with level, instance id, file path, and format.

    Returns:
        Configured Logger instance ready for use.
    """
    logger = logging.getLogger(f"pairlist.{settings.instance_id}")
    logger.setLevel(settings.level)
    logger.handlers.clear()
    logger.propagate = False

    formatter = JsonLineFormatter(settings.instance_id) if settings.jsonl else None

    stream_handler = logging.StreamHandler()
    if formatter:
        stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if settings.log_file:
        file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        if formatter:
            file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    message: str,
    *,
    exc_info: logging._ExcInfoType | None = None,
    **extra: Any,
) -> None:
    """
    Log a structured event with typed metadata.

    Args:
        logger: Logger instance to use.
        level: Log level (logging.DEBUG, INFO, WARNING, ERROR).
        event: Event type identifier (e.g., "filter_applied").
        message: Human-readable log message.
        exc_info: Optional exception info for error logging.
        **extra: Additional key-value pairs to include in log entry.

    Example:
        >>> log_event(logger, logging.INFO, "filter_applied",
        ...           "Filter applied", filter="SpreadFilter", pairs_in=40, pairs_out=31)
    """
    logger.log(level, message, extra={"event": event, "extra": extra}, exc_info=exc_info)
