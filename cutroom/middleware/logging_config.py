"""
Logging setup for the review workflow service.

Every service log line carries the tenant/project scope it acted on, and
request logs carry the timing fields stamped by the timing middleware.
Production emits one JSON object per line; development and tests get a
coloured single-line format. LOG_LEVEL overrides the default level.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

_REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr", "request_id")
_SCOPE_FIELDS = ("tenant_id", "project_id", "event_type")


def _scope_suffix(record: logging.LogRecord) -> str:
    parts = [
        f"{label}={getattr(record, key)}"
        for key, label in (("tenant_id", "tenant"), ("project_id", "project"))
        if getattr(record, key, None) is not None
    ]
    return f" [{' '.join(parts)}]" if parts else ""


class JSONFormatter(logging.Formatter):
    """One JSON object per record, scope and request fields at top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }
        for key in _SCOPE_FIELDS + _REQUEST_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Coloured single-line format for development and test runs."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        duration = getattr(record, "duration_ms", None)
        dur_str = f" [{duration:.0f}ms]" if duration is not None else ""
        line = (
            f"{color}{ts} {record.levelname:<8}{self.RESET} {record.name}: "
            f"{record.getMessage()}{_scope_suffix(record)}{dur_str}"
        )
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install a single stderr handler on the root logger.

    JSON when the app runs without DEBUG or TESTING, readable otherwise.
    Level defaults to INFO in production and DEBUG elsewhere.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG")
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if is_prod else ReadableFormatter())
    handler.setLevel(level)

    # Cleared first so repeated create_app() calls in tests do not stack handlers.
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "JSON" if is_prod else "readable")
