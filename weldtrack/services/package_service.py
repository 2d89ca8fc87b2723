"""Test packages, their membership and the pressure test certificate."""
import logging
import re

from weldtrack.extensions import db
from weldtrack.models import (
    TestPackage, PackageCertificate, PackageWorkflowStage, Drawing, Component, AuditLog,
    TEST_TYPES, PRESSURE_UNITS, TEMPERATURE_UNITS,
    CERTIFICATE_DRAFT, CERTIFICATE_SUBMITTED,
)
from weldtrack.models.audit_log import (
    ACTION_CREATE_PACKAGE, ACTION_UPDATE_PACKAGE, ACTION_DELETE_PACKAGE,
    ACTION_ASSIGN_PACKAGE, ACTION_SUBMIT_CERTIFICATE,
)
from weldtrack.models.base import utcnow

from .common import fetch, optional_text, require_text
from .exceptions import ConflictError, ValidationError
from .project_service import cascade_drawing_metadata, get_project, project_reference
from .rollup_service import package_progress
from .workflow import STAGE_NOT_STARTED, WORKFLOW_STAGES

logger = logging.getLogger(__name__)

CERTIFICATE_PREFIX = 'PKG-'
_CERTIFICATE_RE = re.compile(r'^PKG-(\d+)$')

CERTIFICATE_TEXT_FIELDS = ('client', 'client_spec', 'line_number', 'test_media')


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------

def _package_fields(data):
    fields = {}
    if 'description' in data:
        fields['description'] = optional_text(data, 'description')
    if 'target_date' in data:
        fields['target_date'] = data['target_date']
    if 'test_type' in data:
        test_type = data['test_type'] or None
        if test_type is not None and test_type not in TEST_TYPES:
            raise ValidationError(f'Invalid test type: {test_type}')
        fields['test_type'] = test_type
    for flag in ('requires_coating', 'requires_insulation'):
        if flag in data:
            fields[flag] = bool(data[flag])
    if 'test_pressure' in data:
        pressure = _number(data, 'test_pressure', 'Test pressure')
        if pressure is not None and pressure <= 0:
            raise ValidationError('Test pressure must be greater than 0')
        fields['test_pressure'] = pressure
    if 'test_pressure_unit' in data:
        unit = (data['test_pressure_unit'] or '').upper() or None
        if unit is not None and unit not in PRESSURE_UNITS:
            raise ValidationError(f'Invalid pressure unit: Must be one of {", ".join(PRESSURE_UNITS)}')
        fields['test_pressure_unit'] = unit
    return fields


def _ensure_unique_name(project_id, name, package_id=None):
    existing = TestPackage.query.filter_by(project_id=project_id, name=name).first()
    if existing is not None and existing.id != package_id:
        raise ConflictError(f'Test package "{name}" already exists in project')


def create_package(project_id, data, user_id=None):
    get_project(project_id)
    name = require_text(data, 'name', 'Package name')
    _ensure_unique_name(project_id, name)

    package = TestPackage(project_id=project_id, name=name, **_package_fields(data))
    db.session.add(package)
    db.session.flush()
    AuditLog.log(ACTION_CREATE_PACKAGE, 'test_package', package.id, name,
                 project_id=project_id, user_id=user_id)
    db.session.commit()
    logger.info('Created test package %s (%s)', package.id, name)
    return package


def get_package(package_id):
    return fetch(TestPackage, package_id, 'Test package')


def update_package(package_id, data, user_id=None):
    package = get_package(package_id)
    if 'name' in data:
        name = require_text(data, 'name', 'Package name')
        _ensure_unique_name(package.project_id, name, package.id)
        package.name = name
    fields = _package_fields(data)
    for field, value in fields.items():
        setattr(package, field, value)

    AuditLog.log(ACTION_UPDATE_PACKAGE, 'test_package', package.id, package.name,
                 details={'fields': sorted(fields)},
                 project_id=package.project_id, user_id=user_id)
    db.session.commit()
    logger.info('Updated test package %s', package.id)
    return package


def delete_package(package_id, user_id=None):
    """Delete a package that has nothing assigned to it."""
    package = get_package(package_id)
    if package.drawings.count() or package.components.count():
        raise ConflictError('Cannot delete a test package with assigned drawings or components')

    name = package.name
    AuditLog.log(ACTION_DELETE_PACKAGE, 'test_package', package.id, name,
                 project_id=package.project_id, user_id=user_id)
    db.session.delete(package)
    db.session.commit()
    logger.info('Deleted test package %s (%s)', package_id, name)


def package_dict(package):
    data = package.to_dict()
    data.update(package_progress(package.id))
    data['certificate_status'] = package.certificate.status if package.certificate else None
    return data


def list_packages(project_id):
    """Packages of a project with their progress roll-up."""
    get_project(project_id)
    packages = TestPackage.query.filter_by(project_id=project_id).order_by(TestPackage.name)
    return [package_dict(p) for p in packages]


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------

def assign_drawings(package_id, drawing_ids, user_id=None):
    """Put drawings in a package; inheriting components follow them."""
    package = get_package(package_id)
    drawings = [project_reference(Drawing, ident, package.project_id, 'Drawing')
                for ident in drawing_ids]

    updated = 0
    for drawing in drawings:
        updated += cascade_drawing_metadata(drawing, {'test_package_id': package.id})

    AuditLog.log(ACTION_ASSIGN_PACKAGE, 'test_package', package.id, package.name,
                 details={'drawing_ids': [d.id for d in drawings], 'components_updated': updated},
                 project_id=package.project_id, user_id=user_id)
    db.session.commit()
    logger.info('Assigned %d drawings to package %s (%d components)',
                len(drawings), package.id, updated)
    return updated


def unassign_drawing(package_id, drawing_id, user_id=None):
    package = get_package(package_id)
    drawing = project_reference(Drawing, drawing_id, package.project_id, 'Drawing')
    if drawing.test_package_id != package.id:
        raise ConflictError(f'Drawing {drawing.drawing_no_norm} is not in package {package.name}')

    updated = cascade_drawing_metadata(drawing, {'test_package_id': None})
    AuditLog.log(ACTION_ASSIGN_PACKAGE, 'test_package', package.id, package.name,
                 details={'removed_drawing_id': drawing.id, 'components_updated': updated},
                 project_id=package.project_id, user_id=user_id)
    db.session.commit()
    logger.info('Removed drawing %s from package %s', drawing.id, package.id)
    return updated


def assign_components(package_id, component_ids, user_id=None):
    """Assign components directly, overriding their drawing's package."""
    package = get_package(package_id)
    components = [project_reference(Component, ident, package.project_id, 'Component')
                  for ident in component_ids]
    for component in components:
        component.test_package_id = package.id

    AuditLog.log(ACTION_ASSIGN_PACKAGE, 'test_package', package.id, package.name,
                 details={'component_ids': [c.id for c in components]},
                 project_id=package.project_id, user_id=user_id)
    db.session.commit()
    logger.info('Assigned %d components to package %s', len(components), package.id)
    return components


def get_package_components(package_id, include_retired=False):
    package = get_package(package_id)
    query = package.components
    if not include_retired:
        query = query.filter(Component.is_retired.is_(False))
    return query.order_by(Component.id).all()


# ---------------------------------------------------------------------------
# Certificate
# ---------------------------------------------------------------------------

def next_certificate_number(project_id):
    """``PKG-###``, one past the highest number issued in the project."""
    numbers = db.session.query(PackageCertificate.certificate_number)\
        .join(TestPackage, PackageCertificate.package_id == TestPackage.id)\
        .filter(TestPackage.project_id == project_id,
                PackageCertificate.certificate_number.isnot(None)).all()
    highest = 0
    for (number,) in numbers:
        match = _CERTIFICATE_RE.match(number)
        if match:
            highest = max(highest, int(match.group(1)))
    return f'{CERTIFICATE_PREFIX}{highest + 1:03d}'


def _number(data, field, label):
    value = data.get(field)
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{label} must be a number')


def _unit(data, field, allowed, label):
    value = (data.get(field) or '').strip().upper() or None
    if value is not None and value not in allowed:
        raise ValidationError(f'Invalid {label}: Must be one of {", ".join(allowed)}')
    return value


def _validate_submission(cert):
    errors = []
    if cert.test_pressure is None:
        errors.append('Test pressure is required')
    elif cert.test_pressure <= 0:
        errors.append('Test pressure must be greater than 0')
    if not cert.pressure_unit:
        errors.append('Pressure unit is required')
    if not cert.test_media:
        errors.append('Test media is required')
    if cert.temperature is None:
        errors.append('Temperature is required')
    if not cert.temperature_unit:
        errors.append('Temperature unit is required')
    if errors:
        raise ValidationError('; '.join(errors), details=errors)


def create_workflow_stages(package):
    """Create the acceptance stages a package does not have yet."""
    existing = {s.stage_order for s in package.workflow_stages}
    created = []
    for config in WORKFLOW_STAGES:
        if config['order'] in existing:
            continue
        stage = PackageWorkflowStage(package=package, stage_name=config['name'],
                                     stage_order=config['order'], status=STAGE_NOT_STARTED)
        db.session.add(stage)
        created.append(stage)
    return created


def save_certificate(package_id, data, submit=False, user_id=None):
    """Save the package certificate as a draft, or submit it.

    Drafts accept incomplete data. Submitting validates the required
    fields, issues the certificate number and opens the workflow.
    """
    package = get_package(package_id)
    cert = package.certificate
    if cert is None:
        cert = PackageCertificate(package=package, status=CERTIFICATE_DRAFT)
        db.session.add(cert)
    elif cert.is_submitted:
        raise ConflictError(f'Certificate {cert.certificate_number} is already submitted')

    for field in CERTIFICATE_TEXT_FIELDS:
        if field in data:
            setattr(cert, field, optional_text(data, field))
    if 'test_pressure' in data:
        cert.test_pressure = _number(data, 'test_pressure', 'Test pressure')
    if 'temperature' in data:
        cert.temperature = _number(data, 'temperature', 'Temperature')
    if 'pressure_unit' in data:
        cert.pressure_unit = _unit(data, 'pressure_unit', PRESSURE_UNITS, 'pressure unit')
    if 'temperature_unit' in data:
        cert.temperature_unit = _unit(data, 'temperature_unit', TEMPERATURE_UNITS,
                                      'temperature unit')

    if not submit:
        db.session.commit()
        logger.info('Saved draft certificate for package %s', package.id)
        return cert

    _validate_submission(cert)
    cert.certificate_number = next_certificate_number(package.project_id)
    cert.status = CERTIFICATE_SUBMITTED
    cert.submitted_at = utcnow()
    stages = create_workflow_stages(package)

    AuditLog.log(ACTION_SUBMIT_CERTIFICATE, 'test_package', package.id, package.name,
                 details={'certificate_number': cert.certificate_number,
                          'stages_created': len(stages)},
                 project_id=package.project_id, user_id=user_id)
    db.session.commit()
    logger.info('Submitted certificate %s for package %s', cert.certificate_number, package.id)
    return cert
