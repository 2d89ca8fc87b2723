"""Field weld lifecycle: creation, specs, drawing moves, retirement and repairs."""
import logging

from flask import current_app

from weldtrack.extensions import db
from weldtrack.models import (
    Drawing, FieldWeld, AuditLog, Component,
    WELD_TYPES, STATUS_ACTIVE, STATUS_ACCEPTED, STATUS_REJECTED,
    NDE_PASS, NDE_FAIL,
)
from weldtrack.models.audit_log import (
    ACTION_CREATE_WELD, ACTION_CREATE_UNPLANNED_WELD, ACTION_CREATE_REPAIR_WELD,
    ACTION_UPDATE_WELD, ACTION_REASSIGN_WELD, ACTION_RETIRE_WELD,
)
from weldtrack.models.base import utcnow

from .common import fetch, optional_text, require_text
from .exceptions import ConflictError, NotFoundError, ValidationError
from .milestone_service import set_component_milestones
from .progress import MILESTONE_FIT_UP, COMPLETE
from .project_service import get_project, new_component
from .weld_numbering import find_next_weld_number

logger = logging.getLogger(__name__)

SPEC_FIELDS = ('weld_type', 'weld_size', 'schedule', 'base_metal', 'spec')

RETIRE_REASON_MIN_LENGTH = 10


def derive_weld_status(nde_result):
    """Weld status implied by an NDE result."""
    if nde_result == NDE_PASS:
        return STATUS_ACCEPTED
    if nde_result == NDE_FAIL:
        return STATUS_REJECTED
    return STATUS_ACTIVE


# ---------------------------------------------------------------------------
# Numbering
# ---------------------------------------------------------------------------

def project_weld_numbers(project_id):
    rows = db.session.query(FieldWeld.weld_number).filter_by(project_id=project_id).all()
    return [row.weld_number for row in rows]


def next_weld_number(project_id):
    """Next free weld number in the project's numbering style."""
    get_project(project_id)
    return find_next_weld_number(project_weld_numbers(project_id))


def _ensure_unique_number(project_id, weld_number):
    exists = FieldWeld.query.filter_by(project_id=project_id, weld_number=weld_number).first()
    if exists:
        raise ConflictError(f'Duplicate weld number: {weld_number} already exists in project')


# ---------------------------------------------------------------------------
# Spec validation
# ---------------------------------------------------------------------------

def _validate_weld_type(weld_type):
    if weld_type not in WELD_TYPES:
        raise ValidationError('Invalid weld type: Must be BW, SW, FW, or TW')
    return weld_type


def _validate_xray(value):
    if value is None:
        return current_app.config.get('DEFAULT_XRAY_PERCENTAGE', 5.0)
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValidationError('Invalid xray_percentage: Must be between 0 and 100')
    if not 0 <= value <= 100:
        raise ValidationError('Invalid xray_percentage: Must be between 0 and 100')
    return value


def _spec_values(data, defaults=None):
    """Merge spec fields from ``data`` over ``defaults``."""
    specs = dict(defaults or {})
    for field in SPEC_FIELDS:
        if field in data:
            specs[field] = optional_text(data, field)
    if specs.get('weld_type') is None:
        raise ValidationError('Weld type is required')
    _validate_weld_type(specs['weld_type'])
    return specs


def _weld_drawing(project_id, drawing_id):
    drawing = db.session.get(Drawing, drawing_id) if drawing_id is not None else None
    if drawing is None:
        raise NotFoundError(f'Drawing not found: {drawing_id}')
    if drawing.project_id != project_id:
        raise ValidationError('Drawing does not belong to project')
    if drawing.is_retired:
        raise ConflictError(f'Drawing {drawing.drawing_no_norm} is retired')
    return drawing


def _build_weld(project_id, drawing, weld_number, specs, user_id=None, **fields):
    component = new_component(project_id, 'field_weld', {'weld_number': weld_number},
                              drawing=drawing, user_id=user_id)
    weld = FieldWeld(project_id=project_id, component=component, weld_number=weld_number,
                     status=STATUS_ACTIVE, **specs, **fields)
    db.session.add(weld)
    return weld


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def create_field_weld(project_id, drawing_id, data, user_id=None):
    """Create a planned weld; the number is generated when not supplied."""
    get_project(project_id)
    drawing = _weld_drawing(project_id, drawing_id)
    weld_number = optional_text(data, 'weld_number') or next_weld_number(project_id)
    _ensure_unique_number(project_id, weld_number)

    weld = _build_weld(
        project_id, drawing, weld_number, _spec_values(data), user_id=user_id,
        xray_percentage=_validate_xray(data.get('xray_percentage')),
        nde_required=bool(data.get('nde_required', False)),
        notes=optional_text(data, 'notes'),
    )
    db.session.flush()
    AuditLog.log(ACTION_CREATE_WELD, 'field_weld', weld.id, weld_number,
                 project_id=project_id, user_id=user_id)
    db.session.commit()
    logger.info('Created weld %s on drawing %s', weld_number, drawing.drawing_no_norm)
    return weld


def create_unplanned_weld(project_id, drawing_id, data, user_id=None):
    """Create a weld discovered in the field that was not on the weld map."""
    get_project(project_id)
    _validate_weld_type(data.get('weld_type'))
    xray = _validate_xray(data.get('xray_percentage'))
    weld_number = require_text(data, 'weld_number', 'Weld number')
    require_text(data, 'weld_size', 'Weld size')
    require_text(data, 'spec', 'Spec')
    drawing = _weld_drawing(project_id, drawing_id)
    _ensure_unique_number(project_id, weld_number)

    weld = _build_weld(
        project_id, drawing, weld_number, _spec_values(data), user_id=user_id,
        xray_percentage=xray,
        is_unplanned=True,
        notes=optional_text(data, 'notes'),
    )
    db.session.flush()
    AuditLog.log(ACTION_CREATE_UNPLANNED_WELD, 'field_weld', weld.id, weld_number,
                 project_id=project_id, user_id=user_id)
    db.session.commit()
    logger.info('Created unplanned weld %s on drawing %s', weld_number, drawing.drawing_no_norm)
    return weld


# ---------------------------------------------------------------------------
# Edits
# ---------------------------------------------------------------------------

def get_field_weld(weld_id):
    return fetch(FieldWeld, weld_id, 'Field weld')


def get_active_weld(weld_id):
    weld = get_field_weld(weld_id)
    if weld.component.is_retired:
        raise ConflictError(f'Weld {weld.weld_number} is retired')
    return weld


def update_weld_specs(weld_id, data, user_id=None):
    weld = get_active_weld(weld_id)
    old = weld.spec_values()
    specs = _spec_values(data, defaults=old)
    for field, value in specs.items():
        setattr(weld, field, value)
    if 'xray_percentage' in data:
        weld.xray_percentage = _validate_xray(data['xray_percentage'])
    if 'nde_required' in data:
        weld.nde_required = bool(data['nde_required'])
    if 'notes' in data:
        weld.notes = optional_text(data, 'notes')

    AuditLog.log(ACTION_UPDATE_WELD, 'field_weld', weld.id, weld.weld_number,
                 details={'old': old, 'new': weld.spec_values()},
                 project_id=weld.project_id, user_id=user_id)
    db.session.commit()
    logger.info('Updated specs of weld %s', weld.weld_number)
    return weld


def reassign_weld_drawing(weld_id, drawing_id, user_id=None):
    """Move a weld to another drawing; it re-inherits that drawing's metadata."""
    weld = get_active_weld(weld_id)
    drawing = _weld_drawing(weld.project_id, drawing_id)
    component = weld.component
    old_drawing_id = component.drawing_id

    component.drawing_id = drawing.id
    for field, value in drawing.inherited_values().items():
        setattr(component, field, value)

    AuditLog.log(ACTION_REASSIGN_WELD, 'field_weld', weld.id, weld.weld_number,
                 details={'from_drawing_id': old_drawing_id, 'to_drawing_id': drawing.id},
                 project_id=weld.project_id, user_id=user_id)
    db.session.commit()
    logger.info('Moved weld %s to drawing %s', weld.weld_number, drawing.drawing_no_norm)
    return weld


def retire_weld(weld_id, reason, user_id=None):
    """Soft-delete a weld. Its repairs must be removed first."""
    weld = get_active_weld(weld_id)
    reason = (reason or '').strip()
    if len(reason) < RETIRE_REASON_MIN_LENGTH:
        raise ValidationError(
            f'Retire reason must be at least {RETIRE_REASON_MIN_LENGTH} characters'
        )
    if any(not r.component.is_retired for r in weld.repairs):
        raise ConflictError('Repair welds exist for this weld. Delete repairs first.')

    component = weld.component
    component.is_retired = True
    component.retire_reason = reason
    component.last_updated_at = utcnow()
    component.last_updated_by = user_id

    AuditLog.log(ACTION_RETIRE_WELD, 'field_weld', weld.id, weld.weld_number,
                 details={'reason': reason}, project_id=weld.project_id, user_id=user_id)
    db.session.commit()
    logger.info('Retired weld %s', weld.weld_number)
    return weld


def list_field_welds(project_id, filters=None):
    """Query a project's welds.

    Filters: status, drawing_id, welder_id, test_package_id, is_repair,
    is_unplanned, include_retired.
    """
    filters = filters or {}
    get_project(project_id)
    query = FieldWeld.query.join(Component, FieldWeld.component_id == Component.id)\
        .filter(FieldWeld.project_id == project_id)

    if filters.get('status'):
        query = query.filter(FieldWeld.status == filters['status'])
    if filters.get('drawing_id') is not None:
        query = query.filter(Component.drawing_id == filters['drawing_id'])
    if filters.get('welder_id') is not None:
        query = query.filter(FieldWeld.welder_id == filters['welder_id'])
    if filters.get('test_package_id') is not None:
        query = query.filter(Component.test_package_id == filters['test_package_id'])
    if filters.get('is_repair') is not None:
        column = FieldWeld.original_weld_id
        query = query.filter(column.isnot(None) if filters['is_repair'] else column.is_(None))
    if filters.get('is_unplanned') is not None:
        query = query.filter(FieldWeld.is_unplanned.is_(bool(filters['is_unplanned'])))
    if not filters.get('include_retired'):
        query = query.filter(Component.is_retired.is_(False))
    return query.order_by(FieldWeld.weld_number)


# ---------------------------------------------------------------------------
# Repairs
# ---------------------------------------------------------------------------

def create_repair_weld(weld_id, data, user_id=None):
    """Create a repair for a rejected weld.

    Specs default to the original's and may be overridden; weld_type must
    end up set. The repair sits on the original's drawing and starts with
    fit-up complete.
    """
    original = get_active_weld(weld_id)
    if original.status != STATUS_REJECTED:
        raise ConflictError('Repair welds can only be created for rejected welds')

    project_id = original.project_id
    specs = _spec_values(data, defaults=original.spec_values())
    weld_number = optional_text(data, 'weld_number') or next_weld_number(project_id)
    _ensure_unique_number(project_id, weld_number)

    drawing = original.component.drawing
    xray = data.get('xray_percentage', original.xray_percentage)
    repair = _build_weld(
        project_id, drawing, weld_number, specs, user_id=user_id,
        xray_percentage=_validate_xray(xray),
        nde_required=bool(data.get('nde_required', original.nde_required)),
        notes=optional_text(data, 'notes'),
        original_weld=original,
    )
    set_component_milestones(repair.component, {MILESTONE_FIT_UP: COMPLETE}, user_id=user_id)

    db.session.flush()
    AuditLog.log(ACTION_CREATE_REPAIR_WELD, 'field_weld', repair.id, weld_number,
                 details={'original_weld_id': original.id,
                          'original_weld_number': original.weld_number},
                 project_id=project_id, user_id=user_id)
    db.session.commit()
    logger.info('Created repair weld %s for %s', weld_number, original.weld_number)
    return repair


def root_weld(weld):
    """Follow original_weld links back to the first weld of a chain."""
    seen = {weld.id}
    while weld.original_weld is not None:
        weld = weld.original_weld
        if weld.id in seen:
            raise ConflictError('Repair chain contains a cycle')
        seen.add(weld.id)
    return weld


def get_repair_chain(weld_id):
    """Return ``{'original': weld, 'repairs': [...]}`` for any weld in a chain.

    Repairs are listed breadth-first from the original, each level in
    creation order, so repair-of-repair entries follow their parent.
    """
    weld = get_field_weld(weld_id)
    original = root_weld(weld)

    repairs = []
    frontier = list(original.repairs)
    while frontier:
        nxt = []
        for repair in frontier:
            repairs.append(repair)
            nxt.extend(repair.repairs)
        frontier = nxt
    return {'original': original, 'repairs': repairs}


def repair_chain_dict(chain):
    return {
        'original': chain['original'].to_dict(),
        'repairs': [
            dict(repair.to_dict(), repair_sequence=i)
            for i, repair in enumerate(chain['repairs'], start=1)
        ],
    }
