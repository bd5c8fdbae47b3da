"""
Logging configuration for the Lead Engine.

Called once from create_app(). Supports text (human-readable) and JSON
formats; level and format come from Settings (LOG_LEVEL / LOG_FORMAT).
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from config.settings import Settings, get_settings


class JSONFormatter(logging.Formatter):
    """Single-line JSON log formatter for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


# Third-party loggers that are noisy at INFO
_NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "sqlalchemy.engine",
    "aiosqlite",
]


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Set up the root logger from settings."""
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # Remove any existing handlers to avoid duplicates on re-init
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if settings.log_format.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "[%(asctime)s] %(levelname)s %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))

    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
