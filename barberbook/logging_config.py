# barberbook/logging_config.py

"""Structured JSON logging configuration."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from barberbook.config import get_settings

# Context keys copied from `extra={...}` into the JSON line
CONTEXT_FIELDS = (
    "reservation_id",
    "blocked_slot_id",
    "personnel_id",
    "client_id",
    "barbershop_id",
    "user_id",
    "job",
    "request_path",
)


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Every line carries timestamp, level, logger and message, plus any of
    CONTEXT_FIELDS passed through `extra`.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging() -> None:
    """
    Configure root logging with the JSON formatter.

    Reads LOG_LEVEL from settings (default: INFO) and writes to stderr.
    """
    settings = get_settings()
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(console_handler)

    root_logger.info(f"Logging configured: level={settings.LOG_LEVEL}, format=JSON")
