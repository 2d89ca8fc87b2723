"""Welder registry and welder assignment on field welds."""
import logging
import re

from weldtrack.extensions import db
from weldtrack.models import (
    FieldWeld, Welder, AuditLog,
    STENCIL_PATTERN, WELDER_STATUSES, WELDER_UNVERIFIED, WELDER_VERIFIED,
    WELD_EVENT_ASSIGN, WELD_EVENT_UPDATE, WELD_EVENT_CLEAR,
)
from weldtrack.models.audit_log import ACTION_CREATE_WELDER, ACTION_VERIFY_WELDER
from weldtrack.models.base import isoformat, utcnow

from .common import fetch, log_weld_event, require_text
from .exceptions import ConflictError, ValidationError
from .milestone_service import set_component_milestones
from .progress import COMPLETE, NOT_STARTED, validate_rollback
from .project_service import get_project, project_reference

logger = logging.getLogger(__name__)

_STENCIL_RE = re.compile(STENCIL_PATTERN)


def normalize_stencil(stencil):
    return (stencil or '').strip().upper()


def validate_stencil(stencil):
    """Return the normalized stencil or raise ValidationError."""
    norm = normalize_stencil(stencil)
    if not _STENCIL_RE.match(norm):
        raise ValidationError(
            'Welder stencil must be 2-12 characters: letters, digits or hyphens'
        )
    return norm


# ---------------------------------------------------------------------------
# Welders
# ---------------------------------------------------------------------------

def create_welder(project_id, data, user_id=None):
    get_project(project_id)
    stencil = require_text(data, 'stencil', 'Stencil')
    norm = validate_stencil(stencil)
    name = require_text(data, 'name', 'Welder name')
    status = data.get('status') or WELDER_UNVERIFIED
    if status not in WELDER_STATUSES:
        raise ValidationError(f'Invalid welder status: {status}')

    if Welder.query.filter_by(project_id=project_id, stencil_norm=norm).first():
        raise ConflictError(f'Welder stencil {norm} already exists in project')

    welder = Welder(project_id=project_id, stencil=stencil, stencil_norm=norm,
                    name=name, status=status,
                    verified_at=utcnow() if status == WELDER_VERIFIED else None)
    db.session.add(welder)
    db.session.flush()
    AuditLog.log(ACTION_CREATE_WELDER, 'welder', welder.id, norm,
                 project_id=project_id, user_id=user_id)
    db.session.commit()
    logger.info('Registered welder %s in project %s', norm, project_id)
    return welder


def verify_welder(welder_id, user_id=None):
    welder = fetch(Welder, welder_id, 'Welder')
    if welder.is_verified:
        return welder
    welder.status = WELDER_VERIFIED
    welder.verified_at = utcnow()
    AuditLog.log(ACTION_VERIFY_WELDER, 'welder', welder.id, welder.stencil_norm,
                 project_id=welder.project_id, user_id=user_id)
    db.session.commit()
    logger.info('Verified welder %s', welder.stencil_norm)
    return welder


def list_welders(project_id, status=None):
    get_project(project_id)
    query = Welder.query.filter_by(project_id=project_id)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(Welder.stencil_norm).all()


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------

def _welder_milestone(weld):
    for milestone in weld.component.milestones:
        if milestone.requires_welder:
            return milestone
    return None


def _assignment_values(weld):
    return {'welder_id': weld.welder_id, 'date_welded': isoformat(weld.date_welded)}


def _check_active(weld):
    if weld.component.is_retired:
        raise ConflictError(f'Weld {weld.weld_number} is retired')


def assign_welder(weld_id, welder_id, date_welded, user_id=None):
    """Record who made the weld and mark the weld milestone complete."""
    weld = fetch(FieldWeld, weld_id, 'Field weld')
    _check_active(weld)
    welder = project_reference(Welder, welder_id, weld.project_id, 'Welder')
    if date_welded is None:
        raise ValidationError('date_welded is required')

    old_values = _assignment_values(weld)
    weld.welder_id = welder.id
    weld.date_welded = date_welded

    milestone = _welder_milestone(weld)
    if milestone is not None:
        set_component_milestones(weld.component, {milestone.name: COMPLETE}, user_id=user_id)

    log_weld_event(weld, WELD_EVENT_ASSIGN, user_id=user_id,
                   old_values=old_values, new_values=_assignment_values(weld))
    db.session.commit()
    logger.info('Assigned welder %s to weld %s', welder.stencil_norm, weld.weld_number)
    return weld


def update_welder_assignment(weld_id, welder_id, date_welded, user_id=None):
    """Correct welder or date on an assigned weld; milestones are untouched."""
    weld = fetch(FieldWeld, weld_id, 'Field weld')
    _check_active(weld)
    if weld.welder_id is None:
        raise ConflictError('Weld has no welder assigned. Assign a welder first.')
    welder = project_reference(Welder, welder_id, weld.project_id, 'Welder')

    old_values = _assignment_values(weld)
    weld.welder_id = welder.id
    if date_welded is not None:
        weld.date_welded = date_welded

    log_weld_event(weld, WELD_EVENT_UPDATE, user_id=user_id,
                   old_values=old_values, new_values=_assignment_values(weld))
    db.session.commit()
    logger.info('Updated welder assignment on weld %s', weld.weld_number)
    return weld


def clear_welder_assignment(weld_id, rollback, user_id=None):
    """Remove the welder from a weld, rolling back its weld milestone.

    Blocked while NDE results exist. Milestones after the welder milestone
    are reset too.
    """
    weld = fetch(FieldWeld, weld_id, 'Field weld')
    _check_active(weld)
    if weld.welder_id is None:
        raise ConflictError('Weld has no welder assigned')
    if weld.has_nde:
        raise ConflictError('NDE results exist. Clear NDE first.')
    details = validate_rollback(rollback)

    old_values = _assignment_values(weld)
    weld.welder_id = None
    weld.date_welded = None

    milestone = _welder_milestone(weld)
    if milestone is not None:
        reverted = {m.name: NOT_STARTED for m in weld.component.milestones
                    if m.order >= milestone.order}
        set_component_milestones(weld.component, reverted, user_id=user_id, details=details)

    log_weld_event(weld, WELD_EVENT_CLEAR, user_id=user_id,
                   old_values=old_values, new_values=_assignment_values(weld), details=details)
    db.session.commit()
    logger.info('Cleared welder from weld %s (%s)', weld.weld_number, details['rollback_reason'])
    return weld
