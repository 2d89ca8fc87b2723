from datetime import datetime, timezone

from weldtrack.extensions import db


def utcnow():
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


def isoformat(value):
    """ISO string for dates/datetimes; None and strings pass through."""
    if not value or isinstance(value, str):
        return value or None
    return value.isoformat()
