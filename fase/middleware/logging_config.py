"""
Logging setup for the FASE API.

Every record emitted while a request is being served is stamped with the
request id and, once ``require_auth`` has run, the caller's user and
company ids, so service-level lines (``logger.info("BigRock %d created")``)
can be correlated without passing ids around.

    LOG_LEVEL   DEBUG / INFO / ...   (default: INFO in prod, DEBUG otherwise)
    LOG_FORMAT  json / text          (default: json in prod, text otherwise)
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Attributes copied from the record into JSON output when present
CONTEXT_FIELDS = ("request_id", "user_id", "company_id")
REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr")

QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "alembic.runtime.migration")


class RequestContextFilter(logging.Filter):
    """Attach request_id / user_id / company_id from ``flask.g``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        if getattr(record, "request_id", None) is None:
            record.request_id = getattr(g, "request_id", None)
        ctx = getattr(g, "request_context", None)
        if ctx is not None:
            if getattr(record, "user_id", None) is None:
                record.user_id = ctx.user_id
            if getattr(record, "company_id", None) is None:
                record.company_id = ctx.company_id
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in CONTEXT_FIELDS + REQUEST_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Coloured single-line output for a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        when = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        who = ""
        if getattr(record, "user_id", None) is not None:
            who = f" u={record.user_id}"
            if getattr(record, "company_id", None) is not None:
                who += f" c={record.company_id}"
        line = f"{color}{when} {record.levelname:<7}{self.RESET} {record.name}{who}: {record.getMessage()}"
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            line += f" ({duration:.0f}ms)"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install a single stderr handler on the root logger."""
    testing = app.config.get("TESTING", False)
    production = not app.config.get("DEBUG", False) and not testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if production else "DEBUG").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    fmt = os.getenv("LOG_FORMAT", "json" if production else "text").lower()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    # create_app runs once per test session and again under the CLI
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Logging ready (level=%s, format=%s)", level_name, fmt)
