"""Helpers shared by the service modules."""
from weldtrack.extensions import db
from weldtrack.models import FieldWeldEvent

from .exceptions import NotFoundError, ValidationError


def fetch(model, ident, label=None):
    """Load ``model`` by primary key or raise NotFoundError."""
    obj = db.session.get(model, ident) if ident is not None else None
    if obj is None:
        raise NotFoundError(f'{label or model.__name__} {ident} not found')
    return obj


def require_text(data, field, label=None):
    """Return ``data[field]`` stripped, raising if it is blank."""
    value = data.get(field)
    if value is None or not str(value).strip():
        raise ValidationError(f'{label or field} is required')
    return str(value).strip()


def optional_text(data, field):
    value = data.get(field)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def log_weld_event(weld, action, user_id=None, old_values=None, new_values=None, details=None):
    """Add a FieldWeldEvent to the session."""
    event = FieldWeldEvent(field_weld=weld, action=action, user_id=user_id,
                           old_values=old_values, new_values=new_values, details=details)
    db.session.add(event)
    return event
