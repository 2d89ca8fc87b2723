"""Project, area, system, drawing and component management."""
import logging

from weldtrack.extensions import db
from weldtrack.models import (
    Project, Area, System, Drawing, Component, TestPackage, AuditLog,
    normalize_drawing_number,
)
from weldtrack.models.audit_log import (
    ACTION_CREATE_PROJECT, ACTION_CREATE_DRAWING, ACTION_UPDATE_DRAWING,
    ACTION_CREATE_COMPONENT,
)

from .common import fetch, optional_text, require_text
from .exceptions import ConflictError, NotFoundError, ValidationError
from .progress import milestone_values
from .seed_data import get_template

logger = logging.getLogger(__name__)

_REFERENCE_MODELS = {
    'area_id': (Area, 'Area'),
    'system_id': (System, 'System'),
    'test_package_id': (TestPackage, 'Test package'),
}


def project_reference(model, ident, project_id, label):
    """Load a project-scoped record, rejecting ones from another project."""
    obj = db.session.get(model, ident)
    if obj is None or obj.project_id != project_id:
        raise NotFoundError(f'{label} {ident} not found in project')
    return obj


def _resolve_references(project_id, data):
    resolved = {}
    for field, (model, label) in _REFERENCE_MODELS.items():
        if field not in data:
            continue
        ident = data[field]
        if ident is not None:
            project_reference(model, ident, project_id, label)
        resolved[field] = ident
    return resolved


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

def create_project(data, user_id=None):
    name = require_text(data, 'name', 'Project name')
    if Project.query.filter_by(name=name).first():
        raise ConflictError(f'Project "{name}" already exists')

    project = Project(name=name, description=optional_text(data, 'description'))
    db.session.add(project)
    db.session.flush()
    AuditLog.log(ACTION_CREATE_PROJECT, 'project', project.id, project.name,
                 project_id=project.id, user_id=user_id)
    db.session.commit()
    logger.info('Created project %s (%s)', project.id, project.name)
    return project


def get_project(project_id):
    return fetch(Project, project_id, 'Project')


def list_projects():
    return Project.query.order_by(Project.name).all()


# ---------------------------------------------------------------------------
# Areas and systems
# ---------------------------------------------------------------------------

def _create_grouping(model, label, project_id, data):
    get_project(project_id)
    name = require_text(data, 'name', f'{label} name')
    if model.query.filter_by(project_id=project_id, name=name).first():
        raise ConflictError(f'{label} "{name}" already exists in project')
    obj = model(project_id=project_id, name=name, description=optional_text(data, 'description'))
    db.session.add(obj)
    db.session.commit()
    return obj


def create_area(project_id, data):
    return _create_grouping(Area, 'Area', project_id, data)


def create_system(project_id, data):
    return _create_grouping(System, 'System', project_id, data)


# ---------------------------------------------------------------------------
# Drawings
# ---------------------------------------------------------------------------

def _find_active_drawing(project_id, drawing_no_norm):
    return Drawing.query.filter_by(
        project_id=project_id, drawing_no_norm=drawing_no_norm, is_retired=False
    ).first()


def create_drawing(project_id, data, user_id=None):
    """Create a drawing; its number is unique per project once normalized."""
    get_project(project_id)
    raw = require_text(data, 'drawing_no', 'Drawing number')
    norm = normalize_drawing_number(raw)
    if _find_active_drawing(project_id, norm):
        raise ConflictError(f'Drawing {norm} already exists in project')

    drawing = Drawing(
        project_id=project_id,
        drawing_no_raw=raw,
        drawing_no_norm=norm,
        title=optional_text(data, 'title'),
        rev=optional_text(data, 'rev'),
        **_resolve_references(project_id, data),
    )
    db.session.add(drawing)
    db.session.flush()
    AuditLog.log(ACTION_CREATE_DRAWING, 'drawing', drawing.id, norm,
                 project_id=project_id, user_id=user_id)
    db.session.commit()
    logger.info('Created drawing %s (%s) in project %s', drawing.id, norm, project_id)
    return drawing


def cascade_drawing_metadata(drawing, changes):
    """Push changed drawing metadata to components that inherit it.

    A component inherits a field while its value is empty or still equal
    to the drawing's previous value; anything else is an override.
    Returns the number of component fields updated. Does not commit.
    """
    updated = 0
    for field, new_value in changes.items():
        old_value = getattr(drawing, field)
        if old_value == new_value:
            continue
        for component in drawing.components:
            current = getattr(component, field)
            if current is None or current == old_value:
                setattr(component, field, new_value)
                updated += 1
        setattr(drawing, field, new_value)
    return updated


def update_drawing(drawing_id, data, user_id=None):
    """Update title/rev and inherited metadata of a drawing."""
    drawing = fetch(Drawing, drawing_id, 'Drawing')
    for field in ('title', 'rev'):
        if field in data:
            setattr(drawing, field, optional_text(data, field))

    changes = _resolve_references(drawing.project_id, data)
    updated = cascade_drawing_metadata(drawing, changes)
    if changes:
        AuditLog.log(ACTION_UPDATE_DRAWING, 'drawing', drawing.id, drawing.drawing_no_norm,
                     details={'changes': changes, 'components_updated': updated},
                     project_id=drawing.project_id, user_id=user_id)
    db.session.commit()
    logger.info('Updated drawing %s (%d component fields inherited)', drawing.id, updated)
    return drawing


def get_drawing(drawing_id):
    return fetch(Drawing, drawing_id, 'Drawing')


def list_drawings(project_id, include_retired=False):
    get_project(project_id)
    query = Drawing.query.filter_by(project_id=project_id)
    if not include_retired:
        query = query.filter_by(is_retired=False)
    return query.order_by(Drawing.drawing_no_norm)


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------

def new_component(project_id, component_type, identity_key, drawing=None, user_id=None):
    """Build a component at 0% that inherits its drawing's metadata.

    Adds it to the session without committing.
    """
    template = get_template(component_type)
    inherited = drawing.inherited_values() if drawing else {}
    component = Component(
        project_id=project_id,
        drawing_id=drawing.id if drawing else None,
        component_type=component_type,
        identity_key=identity_key,
        progress_template=template,
        current_milestones=milestone_values(template.milestones),
        percent_complete=0.0,
        last_updated_by=user_id,
        **inherited,
    )
    db.session.add(component)
    return component


def create_component(project_id, data, user_id=None):
    """Create a non-weld component. Field welds go through the weld service."""
    get_project(project_id)
    component_type = require_text(data, 'component_type', 'Component type')
    if component_type == 'field_weld':
        raise ValidationError('Field welds must be created through the weld endpoints')

    identity_key = data.get('identity_key')
    if not isinstance(identity_key, dict) or not identity_key:
        raise ValidationError('identity_key must be a non-empty object')

    drawing = None
    if data.get('drawing_id') is not None:
        drawing = project_reference(Drawing, data['drawing_id'], project_id, 'Drawing')
        identity_key.setdefault('drawing_norm', drawing.drawing_no_norm)

    component = new_component(project_id, component_type, identity_key,
                              drawing=drawing, user_id=user_id)
    db.session.flush()
    AuditLog.log(ACTION_CREATE_COMPONENT, 'component', component.id, component.display_name,
                 project_id=project_id, user_id=user_id)
    db.session.commit()
    logger.info('Created %s component %s in project %s', component_type, component.id, project_id)
    return component


def get_component(component_id):
    return fetch(Component, component_id, 'Component')


def list_components(project_id, filters=None):
    """Query project components; filters: drawing_id, component_type,
    test_package_id, include_retired."""
    filters = filters or {}
    get_project(project_id)
    query = Component.query.filter_by(project_id=project_id)
    for field in ('drawing_id', 'component_type', 'test_package_id'):
        if filters.get(field) is not None:
            query = query.filter(getattr(Component, field) == filters[field])
    if not filters.get('include_retired'):
        query = query.filter(Component.is_retired.is_(False))
    return query.order_by(Component.id)
