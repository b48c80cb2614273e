"""
Logging configuration.

Text lines in development, one JSON object per line in production so the
platform log collector can index fields.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from wellio.core.config import settings

_NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "openai", "urllib3")


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        # Context passed through `extra={"context": {...}}`
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            log_data.update(context)
        return json.dumps(log_data, default=str)


def setup_logging() -> logging.Logger:
    """Configure the root logger. Safe to call more than once."""
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    if settings.LOG_FORMAT == "json" or settings.is_production:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
