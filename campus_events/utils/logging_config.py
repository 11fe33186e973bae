"""
Logging configuration for the API, the sweep worker and the business log.

Everything goes through ``logging.config.dictConfig``. Records carry the
request id and caller id of the HTTP request that produced them, or ``-``
when they come from the worker.
"""

import json
import logging
import logging.config
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import get_settings

BUSINESS_LOGGER = "campus_events.business"

# Third-party loggers and the level they are capped at.
LIBRARY_LEVELS = {
    "uvicorn": "INFO",
    "uvicorn.access": "WARNING",
    "sqlalchemy.engine": "WARNING",
    "redis": "WARNING",
    "celery": "INFO",
}

ROTATE_BYTES = 10 * 1024 * 1024


def _file_handler(filename: str, level: str, formatter: str, backups: int) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filename": filename,
        "maxBytes": ROTATE_BYTES,
        "backupCount": backups,
        "filters": ["context"],
    }


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_json_logging: bool = False,
) -> None:
    """
    Configure the ``campus_events`` logger tree and the libraries it talks to.

    Args:
        log_level: Level for engine loggers and the root logger
        log_file: Optional rotating log file, created with its directory
        enable_json_logging: Emit one JSON object per record instead of text
    """
    formatter = "json" if enable_json_logging else "text"
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": formatter,
            "stream": sys.stdout,
            "filters": ["context"],
        }
    }
    engine_handlers: List[str] = ["console"]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = _file_handler(log_file, log_level, formatter, backups=5)
        engine_handlers.append("file")

        if get_settings().environment == "production":
            error_file = str(Path(log_file).with_name(f"{Path(log_file).stem}_errors.log"))
            handlers["error_file"] = _file_handler(error_file, "ERROR", formatter, backups=10)
            engine_handlers.append("error_file")

    loggers: Dict[str, Dict[str, Any]] = {
        "campus_events": {"level": log_level, "handlers": engine_handlers, "propagate": False},
    }
    for name, level in LIBRARY_LEVELS.items():
        loggers[name] = {"level": level, "handlers": ["console"], "propagate": False}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "text": {
                "format": "%(asctime)s %(levelname)-7s %(name)s [req=%(request_id)s user=%(caller_id)s] %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            },
            "json": {"()": "campus_events.utils.logging_config.JSONFormatter"},
        },
        "filters": {
            "context": {"()": "campus_events.utils.logging_config.RequestContextFilter"},
        },
        "handlers": handlers,
        "loggers": loggers,
        "root": {"level": log_level, "handlers": ["console"]},
    })


class RequestContextFilter(logging.Filter):
    """Stamp records with the current request id and caller id."""

    def filter(self, record):
        from ..middleware.logging import caller_id_var, request_id_var

        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get()
        if not getattr(record, "caller_id", None):
            record.caller_id = caller_id_var.get()
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``extra`` fields are kept under ``context``."""

    STANDARD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "request_id", "caller_id"}

    def format(self, record):
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
            "caller_id": getattr(record, "caller_id", "-"),
        }
        context = {k: v for k, v in record.__dict__.items() if k not in self.STANDARD_ATTRS}
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def log_business_event(event_type: str, details: Dict[str, Any], user_id: Optional[str] = None) -> None:
    """Record a scheduling outcome (event created, seat booked, volunteer accepted...)."""
    message = f"{event_type} by {user_id or '-'}"
    if details:
        message += ": " + " ".join(f"{key}={value}" for key, value in details.items())
    logging.getLogger(BUSINESS_LOGGER).info(
        message,
        extra={"event_type": event_type, "actor_id": user_id, "details": details},
    )
