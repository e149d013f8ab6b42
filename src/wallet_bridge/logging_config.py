"""Logging configuration for Wallet Bridge tools."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

DEFAULT_LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"

LOG_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


class BridgeJSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and key not in log_entry:
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(log_level: str = "INFO", log_format: str = "text") -> None:
    """
    Configure root logging for command line use.

    Args:
        log_level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: ``text`` for human-readable lines, ``json`` for one JSON object per line
    """
    root_logger = logging.getLogger()

    # Remove any existing handlers to prevent duplicate messages
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(LOG_LEVELS.get(log_level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    if log_format == "json":
        handler.setFormatter(BridgeJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
    root_logger.addHandler(handler)

    # httpx logs every request at INFO; keep that out of polling output
    logging.getLogger("httpx").setLevel(logging.WARNING)
