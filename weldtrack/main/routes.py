"""Health check and reference data."""
from flask import jsonify, request
from sqlalchemy import text

from weldtrack.extensions import db
from weldtrack.models import (
    ProgressTemplate, WELD_TYPE_LABELS, WELD_STATUS_LABELS, NDE_TYPE_LABELS, NDE_RESULTS,
    TEST_TYPE_LABELS, PRESSURE_UNITS, TEMPERATURE_UNITS,
)
from weldtrack.services.exceptions import ValidationError
from weldtrack.services.progress import COMPONENT_TYPES, ROLLBACK_REASONS
from weldtrack.services.seed_data import create_template_version, get_template
from weldtrack.services.workflow import WORKFLOW_STAGES, SIGNOFF_LABELS
from weldtrack.utils.api import json_body

from . import main_bp


@main_bp.route('/health')
def health():
    db.session.execute(text('SELECT 1'))
    return jsonify({'status': 'ok'})


@main_bp.route('/reference')
def reference():
    """Code lists used by clients to build pickers."""
    return jsonify({
        'component_types': COMPONENT_TYPES,
        'weld_types': WELD_TYPE_LABELS,
        'weld_statuses': WELD_STATUS_LABELS,
        'nde_types': NDE_TYPE_LABELS,
        'nde_results': NDE_RESULTS,
        'rollback_reasons': ROLLBACK_REASONS,
        'test_types': TEST_TYPE_LABELS,
        'pressure_units': PRESSURE_UNITS,
        'temperature_units': TEMPERATURE_UNITS,
        'workflow_stages': WORKFLOW_STAGES,
        'signoff_types': SIGNOFF_LABELS,
    })


@main_bp.route('/templates')
def templates():
    query = ProgressTemplate.query.order_by(ProgressTemplate.component_type,
                                            ProgressTemplate.version)
    component_type = request.args.get('component_type')
    if component_type:
        query = query.filter_by(component_type=component_type)
    return jsonify([t.to_dict() for t in query])


@main_bp.route('/templates/<component_type>')
def template_detail(component_type):
    template = get_template(component_type)
    db.session.commit()
    return jsonify(template.to_dict())


@main_bp.route('/templates/<component_type>', methods=['POST'])
def template_publish(component_type):
    data = json_body()
    milestones = data.get('milestones')
    if not isinstance(milestones, list):
        raise ValidationError('milestones must be a list')
    template = create_template_version(component_type, data.get('workflow_type', 'discrete'),
                                       milestones)
    return jsonify(template.to_dict()), 201
