"""Milestone updates with rollback confirmation and history."""
import logging

from weldtrack.extensions import db
from weldtrack.models import (
    Component, MilestoneEvent,
    EVENT_COMPLETE, EVENT_UNCOMPLETE, EVENT_UPDATE, EVENT_ROLLBACK,
)
from weldtrack.models.base import utcnow

from .common import fetch
from .exceptions import ConflictError
from .progress import (
    calculate_percent_complete, is_rollback, normalize_milestone_value,
    validate_milestone_update, validate_rollback,
)

logger = logging.getLogger(__name__)


def _event_action(milestone, value, rolled_back):
    if rolled_back:
        return EVENT_ROLLBACK
    if milestone is not None and not milestone.is_partial:
        return EVENT_COMPLETE if value else EVENT_UNCOMPLETE
    return EVENT_UPDATE


def set_component_milestones(component, values, user_id=None, details=None):
    """Store new milestone values, recompute progress and record history.

    One MilestoneEvent is added per milestone whose value changed. Does not
    commit.
    """
    previous_values = component.current_milestones or {}
    milestones = {m.name: m for m in component.milestones}

    for name, value in values.items():
        previous = previous_values.get(name)
        if float(previous or 0) == float(value or 0):
            continue
        rolled_back = details is not None and is_rollback(previous, value)
        db.session.add(MilestoneEvent(
            component=component,
            milestone_name=name,
            action=_event_action(milestones.get(name), value, rolled_back),
            value=value,
            previous_value=previous,
            user_id=user_id,
            details=details if rolled_back else None,
        ))

    merged = dict(previous_values)
    merged.update(values)
    component.current_milestones = merged
    component.percent_complete = calculate_percent_complete(component.milestones, merged)
    component.last_updated_at = utcnow()
    component.last_updated_by = user_id
    return component


def update_milestone(component_id, milestone_name, value, user_id=None, rollback=None):
    """Apply one milestone update.

    Lowering a milestone that already has progress is a rollback and
    needs ``rollback`` confirmation (``{'reason': ..., 'details': ...}``).
    """
    component = fetch(Component, component_id, 'Component')
    if component.is_retired:
        raise ConflictError('Cannot update milestones on a retired component')

    welder_assigned = None
    field_weld = component.field_weld
    if field_weld is not None:
        welder_assigned = field_weld.welder_id is not None

    milestone = validate_milestone_update(component.milestones, milestone_name, value,
                                          welder_assigned=welder_assigned)
    new_value = normalize_milestone_value(milestone, value)
    previous = (component.current_milestones or {}).get(milestone_name)

    details = None
    if is_rollback(previous, new_value):
        details = validate_rollback(rollback)

    set_component_milestones(component, {milestone_name: new_value},
                             user_id=user_id, details=details)
    db.session.commit()

    logger.info('Component %s milestone "%s" %s -> %s (%.2f%%)',
                component.id, milestone_name, previous, new_value, component.percent_complete)
    return component


def get_milestone_history(component_id):
    component = fetch(Component, component_id, 'Component')
    return MilestoneEvent.query.filter_by(component_id=component.id)\
        .order_by(MilestoneEvent.id.desc()).all()
