"""Recording, correcting and clearing NDE results on field welds.

The NDE result drives the weld status (see ``derive_weld_status``) and the
weld's milestones:

* PASS    - accepted, every milestone complete
* FAIL    - rejected, every milestone complete; the defect is repaired on a
            new repair weld, not on this one
* PENDING - active, milestones unchanged
"""
import logging
from datetime import date

from weldtrack.extensions import db
from weldtrack.models import (
    NDE_TYPES, NDE_RESULTS, NDE_PASS, NDE_FAIL, STATUS_ACTIVE,
    WELD_EVENT_NDE_RECORD, WELD_EVENT_NDE_UPDATE, WELD_EVENT_NDE_CLEAR,
)
from weldtrack.models.base import isoformat

from .common import log_weld_event, optional_text
from .exceptions import ConflictError, ValidationError
from .field_weld_service import derive_weld_status, get_active_weld
from .milestone_service import set_component_milestones
from .progress import (
    MILESTONE_FIT_UP, MILESTONE_WELD_COMPLETE, milestone_values,
    validate_rollback,
)

logger = logging.getLogger(__name__)


def _nde_values(weld):
    return {
        'nde_type': weld.nde_type,
        'nde_result': weld.nde_result,
        'nde_date': isoformat(weld.nde_date),
        'nde_notes': weld.nde_notes,
        'status': weld.status,
    }


def _parse_nde(data):
    nde_type = (data.get('nde_type') or '').strip().upper()
    if nde_type not in NDE_TYPES:
        raise ValidationError(f'Invalid NDE type: Must be one of {", ".join(NDE_TYPES)}')
    result = (data.get('nde_result') or '').strip().upper()
    if result not in NDE_RESULTS:
        raise ValidationError(f'Invalid NDE result: Must be one of {", ".join(NDE_RESULTS)}')
    nde_date = data.get('nde_date') or date.today()
    if not isinstance(nde_date, date):
        raise ValidationError('nde_date must be a date')
    return nde_type, result, nde_date, optional_text(data, 'nde_notes')


def _welded_values(component):
    """Milestones of a weld that is welded but not yet accepted (95%)."""
    return milestone_values(component.milestones,
                            completed=(MILESTONE_FIT_UP, MILESTONE_WELD_COMPLETE))


def _apply_result(weld, result, user_id):
    weld.status = derive_weld_status(result)
    if result in (NDE_PASS, NDE_FAIL):
        component = weld.component
        everything = milestone_values(component.milestones,
                                      completed=[m.name for m in component.milestones])
        set_component_milestones(component, everything, user_id=user_id)


def _has_repairs(weld):
    return any(not r.component.is_retired for r in weld.repairs)


def record_nde(weld_id, data, user_id=None):
    """Record the first NDE result of a weld."""
    weld = get_active_weld(weld_id)
    if weld.welder_id is None:
        raise ConflictError('Cannot record NDE: welder must be assigned first')
    if weld.has_nde:
        raise ConflictError('NDE result already recorded. Use the NDE update to modify it.')
    nde_type, result, nde_date, notes = _parse_nde(data)

    old_values = _nde_values(weld)
    weld.nde_type = nde_type
    weld.nde_result = result
    weld.nde_date = nde_date
    weld.nde_notes = notes
    _apply_result(weld, result, user_id)

    log_weld_event(weld, WELD_EVENT_NDE_RECORD, user_id=user_id,
                   old_values=old_values, new_values=_nde_values(weld))
    db.session.commit()
    logger.info('Recorded NDE %s %s on weld %s', nde_type, result, weld.weld_number)
    return weld


def update_nde(weld_id, data, user_id=None):
    """Correct a recorded NDE result."""
    weld = get_active_weld(weld_id)
    if not weld.has_nde:
        raise ConflictError('No NDE result to update. Record an NDE result first.')
    if weld.nde_result == NDE_FAIL and _has_repairs(weld):
        raise ConflictError(
            'Cannot change NDE result from FAIL: a repair weld already exists for this weld.'
        )
    nde_type, result, nde_date, notes = _parse_nde(data)

    old_values = _nde_values(weld)
    previous = weld.nde_result
    if previous == NDE_PASS and result != NDE_PASS:
        set_component_milestones(weld.component, _welded_values(weld.component),
                                 user_id=user_id)
    weld.nde_type = nde_type
    weld.nde_result = result
    weld.nde_date = nde_date
    weld.nde_notes = notes
    _apply_result(weld, result, user_id)

    log_weld_event(weld, WELD_EVENT_NDE_UPDATE, user_id=user_id,
                   old_values=old_values, new_values=_nde_values(weld))
    db.session.commit()
    logger.info('Updated NDE on weld %s: %s -> %s', weld.weld_number, previous, result)
    return weld


def clear_nde(weld_id, rollback, user_id=None):
    """Remove the NDE result and return the weld to its welded state."""
    weld = get_active_weld(weld_id)
    if not weld.has_nde:
        raise ConflictError('No NDE result to clear.')
    if _has_repairs(weld):
        raise ConflictError('Cannot clear NDE result: a repair weld already exists for this weld.')
    if not rollback:
        raise ValidationError('Metadata with rollback reason is required to clear NDE result.')
    details = validate_rollback(rollback)

    old_values = _nde_values(weld)
    weld.nde_type = None
    weld.nde_result = None
    weld.nde_date = None
    weld.nde_notes = None
    weld.status = STATUS_ACTIVE
    set_component_milestones(weld.component, _welded_values(weld.component),
                             user_id=user_id, details=details)

    log_weld_event(weld, WELD_EVENT_NDE_CLEAR, user_id=user_id,
                   old_values=old_values, new_values=_nde_values(weld), details=details)
    db.session.commit()
    logger.info('Cleared NDE on weld %s (%s)', weld.weld_number, details['rollback_reason'])
    return weld
