"""Progress roll-ups over drawings, packages, systems, areas and projects.

Every roll-up is the plain mean of the non-retired components' percent
complete, so a small pipe support weighs the same as a spool.
"""
from sqlalchemy import func

from weldtrack.extensions import db
from weldtrack.models import (
    Component, FieldWeld,
    WELD_STATUSES, NDE_RESULTS,
)


def mean_percent(percents):
    """Mean of ``percents`` rounded to 2 decimals; 0.0 for no values."""
    percents = [float(p or 0) for p in percents]
    if not percents:
        return 0.0
    return round(sum(percents) / len(percents), 2)


def _rollup(**criteria):
    rows = db.session.query(Component.percent_complete)\
        .filter_by(is_retired=False, **criteria).all()
    return {
        'component_count': len(rows),
        'percent_complete': mean_percent(row.percent_complete for row in rows),
    }


def drawing_progress(drawing_id):
    return _rollup(drawing_id=drawing_id)


def package_progress(package_id):
    return _rollup(test_package_id=package_id)


def system_progress(system_id):
    return _rollup(system_id=system_id)


def area_progress(area_id):
    return _rollup(area_id=area_id)


def project_summary(project_id):
    """Component counts per type and overall progress of a project."""
    rows = db.session.query(Component.component_type, Component.percent_complete)\
        .filter_by(project_id=project_id, is_retired=False).all()

    by_type = {}
    for component_type, percent in rows:
        by_type.setdefault(component_type, []).append(percent)

    return {
        'component_count': len(rows),
        'percent_complete': mean_percent(p for _, p in rows),
        'by_type': {
            component_type: {'count': len(values), 'percent_complete': mean_percent(values)}
            for component_type, values in sorted(by_type.items())
        },
        'welds': weld_summary(project_id),
    }


def weld_summary(project_id):
    """Weld counts by status, NDE result and welder, plus the repair rate.

    The repair rate is repairs as a percentage of original (non-repair)
    welds.
    """
    base = db.session.query(FieldWeld)\
        .join(Component, FieldWeld.component_id == Component.id)\
        .filter(FieldWeld.project_id == project_id, Component.is_retired.is_(False))

    by_status = dict.fromkeys(WELD_STATUSES, 0)
    for status, count in base.with_entities(FieldWeld.status, func.count(FieldWeld.id))\
            .group_by(FieldWeld.status):
        by_status[status] = count

    by_nde = dict.fromkeys(NDE_RESULTS, 0)
    by_nde['none'] = 0
    for result, count in base.with_entities(FieldWeld.nde_result, func.count(FieldWeld.id))\
            .group_by(FieldWeld.nde_result):
        by_nde[result or 'none'] = count

    by_welder = {}
    for welder_id, count in base.with_entities(FieldWeld.welder_id, func.count(FieldWeld.id))\
            .filter(FieldWeld.welder_id.isnot(None)).group_by(FieldWeld.welder_id):
        by_welder[welder_id] = count

    total = sum(by_status.values())
    repairs = base.filter(FieldWeld.original_weld_id.isnot(None)).count()
    originals = total - repairs

    return {
        'total': total,
        'by_status': by_status,
        'by_nde_result': by_nde,
        'by_welder': by_welder,
        'repair_count': repairs,
        'repair_rate': round(repairs / originals * 100, 2) if originals else 0.0,
    }
