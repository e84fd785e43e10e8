"""Logging setup.

- Development: human-readable lines on stderr
- Production: one JSON object per line (log aggregator compatible)
- Level: TRACKER_LOG_LEVEL, defaulting to DEBUG in dev and INFO in prod
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from .config import TrackerSettings, settings as default_settings

SERVICE_NAME = "services-opportunity-tracker"

_EXTRA_FIELDS = ("opportunity_id", "user_id", "version", "status_code")


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "severity": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = str(value)
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class ReadableFormatter(logging.Formatter):
    """Plain formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now().strftime("%H:%M:%S")
        line = f"{ts} {record.levelname:<8} {record.name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(settings: TrackerSettings | None = None) -> None:
    """Install a single stderr handler on the root logger."""
    settings = settings or default_settings
    level = getattr(logging, settings.effective_log_level, logging.INFO)
    formatter = JSONFormatter() if settings.effective_log_json else ReadableFormatter()

    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("sqlalchemy.engine", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
