"""Milestone progress model.

Every tracked component follows a progress template: an ordered list of
weighted milestones whose weights sum to 100. Discrete milestones are
either done or not (stored as 100 / 0), partial milestones hold a
percentage. A component's percent complete is the weighted sum of its
milestone values.

Lowering a milestone that already carries progress is a rollback and must
be confirmed with a reason.
"""
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .exceptions import ValidationError

WORKFLOW_DISCRETE = 'discrete'
WORKFLOW_QUANTITY = 'quantity'
WORKFLOW_HYBRID = 'hybrid'

WORKFLOW_TYPES = [WORKFLOW_DISCRETE, WORKFLOW_QUANTITY, WORKFLOW_HYBRID]

# Field weld milestone names
MILESTONE_FIT_UP = 'Fit-up'
MILESTONE_WELD_COMPLETE = 'Weld Complete'
MILESTONE_ACCEPTED = 'Accepted'

COMPLETE = 100.0
NOT_STARTED = 0.0


def _discrete(*pairs, welder_at=None):
    return [
        {'name': name, 'weight': weight, 'order': i, 'is_partial': False,
         'requires_welder': name == welder_at}
        for i, (name, weight) in enumerate(pairs, start=1)
    ]


_INSTALLED_COMMODITY = _discrete(
    ('Receive', 10), ('Install', 60), ('Punch', 10), ('Test', 15), ('Restore', 5),
)

STANDARD_TEMPLATES = {
    'spool': {
        'workflow_type': WORKFLOW_DISCRETE,
        'milestones': _discrete(
            ('Receive', 5), ('Erect', 40), ('Connect', 40),
            ('Punch', 5), ('Test', 5), ('Restore', 5),
        ),
    },
    'field_weld': {
        'workflow_type': WORKFLOW_DISCRETE,
        'milestones': _discrete(
            (MILESTONE_FIT_UP, 30), (MILESTONE_WELD_COMPLETE, 65), (MILESTONE_ACCEPTED, 5),
            welder_at=MILESTONE_WELD_COMPLETE,
        ),
    },
    'support': {'workflow_type': WORKFLOW_DISCRETE, 'milestones': _INSTALLED_COMMODITY},
    'valve': {'workflow_type': WORKFLOW_DISCRETE, 'milestones': _INSTALLED_COMMODITY},
    'fitting': {'workflow_type': WORKFLOW_DISCRETE, 'milestones': _INSTALLED_COMMODITY},
    'flange': {'workflow_type': WORKFLOW_DISCRETE, 'milestones': _INSTALLED_COMMODITY},
    'instrument': {'workflow_type': WORKFLOW_DISCRETE, 'milestones': _INSTALLED_COMMODITY},
    'tubing': {'workflow_type': WORKFLOW_DISCRETE, 'milestones': _INSTALLED_COMMODITY},
    'hose': {'workflow_type': WORKFLOW_DISCRETE, 'milestones': _INSTALLED_COMMODITY},
    'misc_component': {'workflow_type': WORKFLOW_DISCRETE, 'milestones': _INSTALLED_COMMODITY},
    'threaded_pipe': {
        'workflow_type': WORKFLOW_HYBRID,
        'milestones': [
            {'name': 'Fabricate', 'weight': 16, 'order': 1, 'is_partial': True, 'requires_welder': False},
            {'name': 'Install', 'weight': 16, 'order': 2, 'is_partial': True, 'requires_welder': False},
            {'name': 'Erect', 'weight': 16, 'order': 3, 'is_partial': True, 'requires_welder': False},
            {'name': 'Connect', 'weight': 16, 'order': 4, 'is_partial': True, 'requires_welder': False},
            {'name': 'Support', 'weight': 16, 'order': 5, 'is_partial': True, 'requires_welder': False},
            {'name': 'Punch', 'weight': 5, 'order': 6, 'is_partial': False, 'requires_welder': False},
            {'name': 'Test', 'weight': 10, 'order': 7, 'is_partial': False, 'requires_welder': False},
            {'name': 'Restore', 'weight': 5, 'order': 8, 'is_partial': False, 'requires_welder': False},
        ],
    },
}

COMPONENT_TYPES = list(STANDARD_TEMPLATES)

# Rollback reasons
REASON_DATA_ENTRY_ERROR = 'data_entry_error'
REASON_QC_REJECTION = 'qc_rejection'
REASON_INCORRECT_WELDER = 'incorrect_welder'
REASON_MATERIAL_ISSUE = 'material_issue'
REASON_OTHER = 'other'

ROLLBACK_REASONS = {
    REASON_DATA_ENTRY_ERROR: 'Data entry error',
    REASON_QC_REJECTION: 'QC/QA rejection',
    REASON_INCORRECT_WELDER: 'Incorrect welder assigned',
    REASON_MATERIAL_ISSUE: 'Material issue',
    REASON_OTHER: 'Other (specify)',
}

ROLLBACK_DETAILS_MIN_LENGTH = 10


def _config_number(value, label):
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValidationError(f'{label} must be a number')
    return value


def _config_order(value, name):
    value = _config_number(value, f'Milestone "{name}" order')
    if value != int(value):
        raise ValidationError(f'Milestone "{name}" order must be a whole number')
    return int(value)


@dataclass(frozen=True)
class Milestone:
    """One weighted step of a progress template."""
    name: str
    weight: float
    order: int
    is_partial: bool = False
    requires_welder: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> 'Milestone':
        name = data['name']
        return cls(
            name=name,
            weight=_config_number(data['weight'], f'Milestone "{name}" weight'),
            order=_config_order(data['order'], name),
            is_partial=bool(data.get('is_partial', False)),
            requires_welder=bool(data.get('requires_welder', False)),
        )

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'weight': self.weight,
            'order': self.order,
            'is_partial': self.is_partial,
            'requires_welder': self.requires_welder,
        }


def milestones_from_config(config: Iterable[dict]) -> List[Milestone]:
    """Build milestones from stored JSON config, sorted by order."""
    return sorted((Milestone.from_dict(m) for m in config or []), key=lambda m: m.order)


def validate_template(milestones: List[Milestone], workflow_type: str = WORKFLOW_DISCRETE) -> None:
    """Raise ValidationError unless ``milestones`` form a usable template."""
    errors = []
    if workflow_type not in WORKFLOW_TYPES:
        errors.append(f'Unknown workflow type: {workflow_type}')
    if not milestones:
        errors.append('Template must define at least one milestone')

    names = [m.name for m in milestones]
    orders = [m.order for m in milestones]
    if any(not (name or '').strip() for name in names):
        errors.append('Milestone names cannot be empty')
    if len(set(names)) != len(names):
        errors.append('Milestone names must be unique')
    if len(set(orders)) != len(orders):
        errors.append('Milestone orders must be unique')
    for m in milestones:
        if not 1 <= m.weight <= 100:
            errors.append(f'Milestone "{m.name}" weight must be between 1 and 100')

    total = sum(m.weight for m in milestones)
    if milestones and not math.isclose(total, 100):
        errors.append(f'Milestone weights must total 100 (got {total:g})')

    if errors:
        raise ValidationError('; '.join(errors), details=errors)


def _as_number(value) -> float:
    if value is None:
        return NOT_STARTED
    if isinstance(value, bool):
        return COMPLETE if value else NOT_STARTED
    return float(value)


def normalize_milestone_value(milestone: Milestone, value) -> float:
    """Convert an accepted update value into its stored form."""
    if milestone.is_partial:
        return float(value)
    return COMPLETE if value else NOT_STARTED


def calculate_percent_complete(milestones: List[Milestone], values: Dict[str, object]) -> float:
    """Weighted percent complete; missing milestones count as not started."""
    values = values or {}
    total = 0.0
    for m in milestones:
        total += m.weight * _as_number(values.get(m.name)) / 100.0
    return round(min(max(total, 0.0), 100.0), 2)


def find_milestone(milestones: List[Milestone], name: str) -> Optional[Milestone]:
    for m in milestones:
        if m.name == name:
            return m
    return None


def validate_milestone_update(milestones: List[Milestone], name: str, value,
                              welder_assigned: Optional[bool] = None) -> Milestone:
    """Check one milestone update against its template.

    Names are matched case-sensitively. ``welder_assigned`` is only
    consulted for milestones that require a welder; pass None for
    components that have no welder.
    """
    if not name or not name.strip():
        raise ValidationError('Milestone name cannot be empty')

    milestone = find_milestone(milestones, name)
    if milestone is None:
        raise ValidationError(f'Milestone "{name}" not found in template')

    if milestone.is_partial:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(
                f'Partial milestone "{name}" requires a number value (0-100)'
            )
        if not math.isfinite(value) or not 0 <= value <= 100:
            raise ValidationError(
                f'Partial milestone "{name}" value must be between 0-100'
            )
    elif not isinstance(value, bool):
        raise ValidationError(f'Discrete milestone "{name}" requires a boolean value')

    if milestone.requires_welder and value and welder_assigned is False:
        raise ValidationError(
            f'Cannot mark "{name}" complete: a welder must be assigned first'
        )
    return milestone


def is_rollback(previous, new) -> bool:
    """True when a milestone that had progress is lowered."""
    before = _as_number(previous)
    return before > 0 and _as_number(new) < before


def validate_rollback(rollback: Optional[dict]) -> dict:
    """Validate rollback confirmation and return the metadata to store."""
    if not rollback or not rollback.get('reason'):
        raise ValidationError('A rollback reason is required to undo recorded progress')

    reason = rollback['reason']
    if reason not in ROLLBACK_REASONS:
        raise ValidationError(f'Unknown rollback reason: {reason}')

    details = (rollback.get('details') or '').strip()
    if reason == REASON_OTHER and len(details) < ROLLBACK_DETAILS_MIN_LENGTH:
        raise ValidationError(
            f'Rollback details must be at least {ROLLBACK_DETAILS_MIN_LENGTH} characters'
        )

    return {
        'rollback_reason': reason,
        'rollback_reason_label': ROLLBACK_REASONS[reason],
        'rollback_details': details or None,
    }


def milestone_values(milestones: List[Milestone], completed: Iterable[str] = ()) -> Dict[str, float]:
    """Values with ``completed`` milestones done and every other one reset."""
    completed = set(completed)
    return {m.name: COMPLETE if m.name in completed else NOT_STARTED for m in milestones}
