"""
Structured logging for the FactoryOps backend.

Usage:
    from factoryops.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Receipt created", extra={"po_number": "PO-2026-001"})

Anything passed through ``extra=`` ends up as a top-level key of the JSON
record.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from factoryops.core.config import settings

# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime", "taskName"}

_configured = False


class StructuredFormatter(logging.Formatter):
    """Formats log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_obj[key] = value

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    Configure the root logger once for the process.

    Args:
        level: Log level name (defaults to settings.LOG_LEVEL)
        fmt: 'json' or 'text' (defaults to settings.LOG_FORMAT)
    """
    global _configured

    level = (level or settings.LOG_LEVEL).upper()
    fmt = (fmt or settings.LOG_FORMAT).lower()

    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    if _configured:
        for existing in list(root.handlers):
            if getattr(existing, "_factoryops", False):
                root.removeHandler(existing)
    handler._factoryops = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level)

    # SQL echo is controlled by the engine, keep the driver loggers quiet
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a module logger."""
    return logging.getLogger(name)
