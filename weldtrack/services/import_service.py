"""Bulk component import from spreadsheet rows."""
import json
import logging

import pandas as pd

from weldtrack.extensions import db
from weldtrack.models import Area, System, Drawing, Component, TestPackage, AuditLog
from weldtrack.models.audit_log import ACTION_IMPORT_COMPONENTS

from .component_import import (
    AGGREGATE_TYPES, create_validation_summary, error_details, map_columns,
    validate_rows, valid_rows,
)
from .exceptions import ValidationError
from .project_service import get_project, new_component

logger = logging.getLogger(__name__)


def read_csv(stream):
    """Headers and rows of an uploaded CSV; every cell is read as text."""
    try:
        frame = pd.read_csv(stream, dtype=str, keep_default_na=False)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ValidationError(f'Could not read CSV file: {e}')
    return [str(c) for c in frame.columns], frame.to_dict('records')


def _columns(rows):
    columns = []
    for row in rows:
        for column in row:
            if column not in columns:
                columns.append(column)
    return columns


def _check_rows(rows):
    if not isinstance(rows, list) or not rows:
        raise ValidationError('rows must be a non-empty list')
    if not all(isinstance(row, dict) for row in rows):
        raise ValidationError('Each row must be an object of column values')


def preview_import(project_id, rows, columns=None):
    """Column mapping and row validation summary; writes nothing."""
    get_project(project_id)
    _check_rows(rows)
    mapping = map_columns(columns or _columns(rows))
    summary = None
    if mapping.has_all_required_fields:
        summary = create_validation_summary(validate_rows(rows, mapping.lookup))
    return {'columns': mapping.to_dict(), 'summary': summary}


def _named(model, project_id, name, cache):
    if not name:
        return None
    key = (model.__name__, name)
    if key not in cache:
        obj = model.query.filter_by(project_id=project_id, name=name).first()
        if obj is None:
            obj = model(project_id=project_id, name=name)
            db.session.add(obj)
            db.session.flush()
        cache[key] = obj
    return cache[key]


def _drawing(project_id, row, cache):
    key = ('Drawing', row['drawing'])
    if key in cache:
        return cache[key], False
    drawing = Drawing.query.filter_by(project_id=project_id, drawing_no_norm=row['drawing'],
                                      is_retired=False).first()
    created = drawing is None
    if created:
        area = _named(Area, project_id, row['area'], cache)
        system = _named(System, project_id, row['system'], cache)
        package = _named(TestPackage, project_id, row['test_package'], cache)
        drawing = Drawing(
            project_id=project_id,
            drawing_no_raw=row['drawing'],
            drawing_no_norm=row['drawing'],
            area_id=area.id if area else None,
            system_id=system.id if system else None,
            test_package_id=package.id if package else None,
        )
        db.session.add(drawing)
        db.session.flush()
    cache[key] = drawing
    return drawing, created


def _identity_keys(row):
    """Identity keys for the components one row stands for."""
    base = {
        'drawing_norm': row['drawing'],
        'commodity_code': row['commodity_code'],
        'size': row['size'],
    }
    if row['component_type'] in AGGREGATE_TYPES:
        return [base]
    return [dict(base, seq=seq) for seq in range(1, row['qty'] + 1)]


def _fingerprint(component_type, key):
    if component_type in AGGREGATE_TYPES:
        key = {k: v for k, v in key.items() if k != 'linear_feet'}
    return json.dumps([component_type, key], sort_keys=True)


def import_components(project_id, rows, columns=None, user_id=None):
    """Create drawings and components for every valid row.

    The import is all-or-nothing: any error row rejects it. A row with
    QTY N creates N components numbered by ``seq``; threaded pipe rows
    sharing drawing, commodity code and size become one component whose
    ``linear_feet`` is the summed quantity. Components that already exist
    with the same identity are left alone, so re-importing is harmless.
    """
    get_project(project_id)
    _check_rows(rows)
    mapping = map_columns(columns or _columns(rows))
    if not mapping.has_all_required_fields:
        raise ValidationError('Missing required columns: ' + ', '.join(mapping.missing_required_fields),
                              details=mapping.missing_required_fields)
    results = validate_rows(rows, mapping.lookup)
    summary = create_validation_summary(results)
    if not summary['can_import']:
        raise ValidationError(f'Import blocked by {summary["error_count"]} invalid rows',
                              details=error_details(results))

    existing = {
        _fingerprint(c.component_type, c.identity_key)
        for c in Component.query.filter_by(project_id=project_id, is_retired=False)
    }
    cache, pipes = {}, {}
    created = skipped_existing = drawings_created = 0

    for row in valid_rows(results):
        drawing, new_drawing = _drawing(project_id, row, cache)
        drawings_created += int(new_drawing)
        component_type = row['component_type']
        aggregate = component_type in AGGREGATE_TYPES
        for key in _identity_keys(row):
            fingerprint = _fingerprint(component_type, key)
            if fingerprint in pipes:
                pipe = pipes[fingerprint]
                pipe.identity_key = dict(pipe.identity_key,
                                         linear_feet=pipe.identity_key['linear_feet'] + row['qty'])
                continue
            if fingerprint in existing:
                skipped_existing += 1
                continue
            if aggregate:
                key = dict(key, linear_feet=row['qty'])
            component = new_component(project_id, component_type, key,
                                      drawing=drawing, user_id=user_id)
            if aggregate:
                pipes[fingerprint] = component
            created += 1

    AuditLog.log(ACTION_IMPORT_COMPONENTS, 'project', project_id,
                 details={'rows': summary['total_rows'], 'components_created': created,
                          'drawings_created': drawings_created},
                 project_id=project_id, user_id=user_id)
    db.session.commit()
    logger.info('Imported %d components (%d drawings created, %d already present) into project %s',
                created, drawings_created, skipped_existing, project_id)
    return {
        'components_created': created,
        'components_existing': skipped_existing,
        'drawings_created': drawings_created,
        'valid_count': summary['valid_count'],
        'skipped_count': summary['skipped_count'],
        'skipped': summary['results_by_status']['skipped'],
    }
