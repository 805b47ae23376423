"""
FASE Platform
SQLAlchemy database instance shared by every model module.
"""

from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc)


def iso(value):
    """ISO-8601 string for a date/datetime column, None passthrough."""
    return value.isoformat() if value else None
