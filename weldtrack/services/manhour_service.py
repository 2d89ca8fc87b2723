"""Project manhour budgets distributed over components by size weight."""
import logging

from sqlalchemy import func

from weldtrack.extensions import db
from weldtrack.models import Component, ManhourBudget, AuditLog
from weldtrack.models.audit_log import ACTION_CREATE_BUDGET

from .exceptions import ValidationError
from .manhours import BASIS_FIXED, calculate_weight, distribute_budget
from .project_service import get_project

logger = logging.getLogger(__name__)


def component_weight(component):
    """Weight of a component; field welds are sized by their weld size."""
    key = component.identity_key or {}
    if component.field_weld is not None and 'size' not in key:
        key = dict(key, size=component.field_weld.weld_size)
    return calculate_weight(key, component.component_type)


def _total_manhours(data):
    value = data.get('total_budgeted_manhours')
    if isinstance(value, bool) or value is None or value == '':
        raise ValidationError('Total budgeted manhours is required')
    try:
        total = float(value)
    except (TypeError, ValueError):
        raise ValidationError('Total budgeted manhours must be a number')
    if not total > 0:
        raise ValidationError('Total budgeted manhours must be greater than 0')
    return total


def create_budget(project_id, data, user_id=None):
    """Publish a new budget version and redistribute it over the project.

    Every non-retired component gets ``manhour_weight`` and its share as
    ``budgeted_manhours``. Components without a usable size are weighted
    with the fixed fallback and listed under the budget's warnings.
    """
    get_project(project_id)
    total = _total_manhours(data)
    reason = str(data.get('revision_reason') or '').strip()
    if not reason:
        raise ValidationError('Revision reason is required')

    components = Component.query.filter_by(project_id=project_id, is_retired=False)\
        .order_by(Component.id).all()
    if not components:
        raise ValidationError('Project has no active components to budget')

    weights, warnings = {}, []
    for component in components:
        result = component_weight(component)
        weights[component.id] = result.weight
        if result.basis == BASIS_FIXED:
            warnings.append({
                'component_id': component.id,
                'display_name': component.display_name,
                'reason': result.metadata.get('reason'),
                'weight': result.weight,
            })
    try:
        shares = distribute_budget(weights, total)
    except ValueError:
        raise ValidationError('Sum of component weights is zero, cannot distribute budget')

    for component in components:
        component.manhour_weight = weights[component.id]
        component.budgeted_manhours = shares[component.id]

    latest = db.session.query(func.max(ManhourBudget.version_number))\
        .filter_by(project_id=project_id).scalar() or 0
    ManhourBudget.query.filter_by(project_id=project_id, is_active=True)\
        .update({'is_active': False})
    budget = ManhourBudget(
        project_id=project_id,
        version_number=latest + 1,
        total_budgeted_manhours=total,
        revision_reason=reason,
        effective_date=data.get('effective_date'),
        is_active=True,
        created_by=user_id,
        distribution={
            'total_components': len(components),
            'components_with_warnings': len(warnings),
            'total_weight': round(sum(weights.values()), 4),
            'warnings': warnings,
        },
    )
    db.session.add(budget)
    db.session.flush()
    AuditLog.log(ACTION_CREATE_BUDGET, 'manhour_budget', budget.id, f'v{budget.version_number}',
                 details={'total_budgeted_manhours': total, 'components': len(components)},
                 project_id=project_id, user_id=user_id)
    db.session.commit()
    logger.info('Published manhour budget v%d for project %s: %.1f MH over %d components',
                budget.version_number, project_id, total, len(components))
    return budget


def list_budgets(project_id):
    get_project(project_id)
    return ManhourBudget.query.filter_by(project_id=project_id)\
        .order_by(ManhourBudget.version_number.desc()).all()


def active_budget(project_id):
    return ManhourBudget.query.filter_by(project_id=project_id, is_active=True).first()


def manhour_summary(project_id):
    """Budgeted against earned manhours for the active budget.

    Earned manhours are each component's budget times its percent complete.
    """
    get_project(project_id)
    budget = active_budget(project_id)
    rows = db.session.query(Component.budgeted_manhours, Component.percent_complete)\
        .filter(Component.project_id == project_id, Component.is_retired.is_(False),
                Component.budgeted_manhours.isnot(None)).all()
    budgeted = sum(row.budgeted_manhours for row in rows)
    earned = sum(row.budgeted_manhours * (row.percent_complete or 0) / 100.0 for row in rows)
    return {
        'budget': budget.to_dict() if budget else None,
        'budgeted_manhours': round(budgeted, 2),
        'earned_manhours': round(earned, 2),
        'percent_earned': round(earned / budgeted * 100, 2) if budgeted else 0.0,
    }
