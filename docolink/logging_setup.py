"""Logging configuration for applications embedding Doc-O-Link.

The library itself only creates module loggers and logs at DEBUG. Call
``setup_logging()`` once at application start to get console output shaped by
``LOG_LEVEL`` and ``LOG_FORMAT``.
"""

import json
import logging
import logging.config
from datetime import datetime, timezone

from docolink.config import Settings, get_settings


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(settings: Settings | None = None) -> logging.Logger:
    """
    Configure the root logger from settings.

    Args:
        settings: Settings to read LOG_LEVEL and LOG_FORMAT from. Defaults to
                  the cached application settings.

    Returns:
        The ``docolink`` package logger
    """
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else settings.log_level.upper()
    formatter = "json" if settings.log_format.lower() == "json" else "standard"

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": JsonFormatter,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "level": level,
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "handlers": ["console"],
            "level": level,
        },
    }
    logging.config.dictConfig(logging_config)

    # SQL echo is controlled separately by SQL_ECHO
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)

    return logging.getLogger("docolink")
