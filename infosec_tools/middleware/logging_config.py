"""
Logging setup for InfoSec Tools.

Every record passing through the root handler is stamped with the request
it belongs to (request id, acting user and role, method, path) by
``RequestContextFilter``.  Spreadsheet import/export and inventory services
add their own counters through ``extra=``:

    logger.info("...", extra={"resource": "servers", "rows_imported": 12})

Output format:
    LOG_FORMAT=json|text overrides the default, which is JSON when the app
    runs without DEBUG/TESTING and colored text otherwise.
    LOG_LEVEL sets the level (DEBUG in development, INFO in production).
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context, request

# Filled in by RequestContextFilter
CONTEXT_FIELDS = ("request_id", "user_id", "username", "role", "method", "path")

# Passed by callers via ``extra=``
EVENT_FIELDS = (
    "status",
    "duration_ms",
    "remote_addr",
    "resource",
    "tracker_id",
    "rows_imported",
    "rows_failed",
    "rows_exported",
)


class RequestContextFilter(logging.Filter):
    """Attach the current request and authenticated user to each record.

    Values already present on the record (from ``extra=``) win.  Outside a
    request the record passes through untouched.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        user = getattr(g, "current_user", None)
        context = {
            "request_id": getattr(g, "request_id", None),
            "user_id": user.id if user is not None else None,
            "username": user.username if user is not None else None,
            "role": getattr(g, "current_user_role", None),
            "method": request.method,
            "path": request.path,
        }
        for key, value in context.items():
            if getattr(record, key, None) is None:
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS + EVENT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.levelno >= logging.WARNING:
            entry["location"] = f"{record.module}.{record.funcName}:{record.lineno}"
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored single-line output for a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color=True):
        super().__init__()
        self.use_color = use_color

    @staticmethod
    def _context(record):
        parts = []
        request_id = getattr(record, "request_id", None)
        if request_id:
            parts.append(request_id)
        username = getattr(record, "username", None)
        if username:
            role = getattr(record, "role", None)
            parts.append(f"{username}@{role}" if role else username)
        return f" [{' '.join(parts)}]" if parts else ""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{record.levelname:<8}"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"
        line = f"{ts} {level} {record.name}{self._context(record)}: {record.getMessage()}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _use_json(app) -> bool:
    fmt = os.getenv("LOG_FORMAT", "").strip().lower()
    if fmt in ("json", "text"):
        return fmt == "json"
    return not app.config.get("DEBUG", False) and not app.config.get("TESTING", False)


def configure_logging(app):
    """Install a single stderr handler on the root logger for ``app``."""
    is_testing = app.config.get("TESTING", False)
    as_json = _use_json(app)

    default_level = "INFO" if as_json and not is_testing else "DEBUG"
    level_name = os.getenv("LOG_LEVEL", default_level).upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if as_json else ReadableFormatter(use_color=sys.stderr.isatty()))
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("werkzeug", "sqlalchemy.engine", "openpyxl"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, "json" if as_json else "text")
