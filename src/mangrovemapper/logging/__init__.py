"""Logging setup shared by the workflows and the CLI."""

from __future__ import annotations

import json
import logging
from logging import Logger
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Optional

# Attributes present on every LogRecord; anything else arrived through ``extra=``.
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

# Client libraries that log every HTTP round trip at INFO.
QUIET_LOGGERS = ("ee", "googleapiclient", "google.auth", "urllib3")

DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class WorkflowFilter(logging.Filter):
    """Stamp the active workflow name onto every record."""

    def __init__(self, workflow: Optional[str] = None) -> None:
        super().__init__()
        self.workflow = workflow or "-"

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "workflow"):
            record.workflow = self.workflow
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, including any ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(
    *,
    level: str = "INFO",
    json_logs: bool = False,
    log_file: Optional[str] = None,
    workflow: Optional[str] = None,
    quiet: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """Install console (and optional file) handlers on the root logger.

    Loggers named in ``quiet`` are raised to WARNING so Earth Engine request
    chatter does not drown workflow messages.
    """

    formatter = "json" if json_logs else "text"
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": formatter,
            "filters": ["workflow"],
        }
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": log_file,
            "encoding": "utf-8",
            "formatter": formatter,
            "filters": ["workflow"],
        }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"workflow": {"()": WorkflowFilter, "workflow": workflow}},
            "formatters": {
                "text": {
                    "format": "%(asctime)s | %(levelname)s | %(workflow)s | %(name)s | %(message)s",
                    "datefmt": DATE_FORMAT,
                },
                "json": {"()": JSONFormatter, "datefmt": DATE_FORMAT},
            },
            "handlers": handlers,
            "loggers": {name: {"level": "WARNING"} for name in quiet},
            "root": {"handlers": list(handlers), "level": level.upper()},
        }
    )


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)
