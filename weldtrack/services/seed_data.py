"""Progress template seeding and versioning."""
import logging

from weldtrack.extensions import db
from weldtrack.models import ProgressTemplate

from .exceptions import NotFoundError, ValidationError
from .progress import STANDARD_TEMPLATES, milestones_from_config, validate_template

logger = logging.getLogger(__name__)


def _build_template(component_type, workflow_type, milestones_config, version):
    try:
        milestones = milestones_from_config(milestones_config)
    except (KeyError, TypeError) as e:
        raise ValidationError(f'Invalid milestone definition: {e}')
    validate_template(milestones, workflow_type)
    return ProgressTemplate(
        component_type=component_type,
        version=version,
        workflow_type=workflow_type,
        milestones_config=[m.to_dict() for m in milestones],
    )


def seed_progress_templates():
    """Install version 1 of every standard template that is missing.

    Returns the number of templates created.
    """
    created = 0
    for component_type, definition in STANDARD_TEMPLATES.items():
        if ProgressTemplate.query.filter_by(component_type=component_type).first():
            continue
        db.session.add(_build_template(component_type, definition['workflow_type'],
                                       definition['milestones'], version=1))
        created += 1
    db.session.commit()
    if created:
        logger.info('Seeded %d progress templates', created)
    return created


def get_template(component_type):
    """Latest template for ``component_type``, seeding the standard one on first use."""
    template = ProgressTemplate.latest_for(component_type)
    if template is not None:
        return template
    definition = STANDARD_TEMPLATES.get(component_type)
    if definition is None:
        raise NotFoundError(f'No progress template for component type "{component_type}"')
    template = _build_template(component_type, definition['workflow_type'],
                               definition['milestones'], version=1)
    db.session.add(template)
    db.session.flush()
    return template


def create_template_version(component_type, workflow_type, milestones_config):
    """Publish a new template version; existing components keep theirs."""
    current = ProgressTemplate.latest_for(component_type)
    version = current.version + 1 if current else 1
    template = _build_template(component_type, workflow_type, milestones_config, version)
    db.session.add(template)
    db.session.commit()
    logger.info('Published %s progress template v%d', component_type, version)
    return template
