"""Completing and skipping package acceptance stages."""
import logging
from datetime import date

from weldtrack.extensions import db
from weldtrack.models import PackageWorkflowStage, AuditLog
from weldtrack.models.audit_log import ACTION_UPDATE_STAGE
from weldtrack.models.base import isoformat, utcnow

from .common import fetch
from .exceptions import ConflictError, NotFoundError, ValidationError
from .package_service import get_package
from .workflow import (
    STAGE_COMPLETED, STAGE_SKIPPED, STAGE_IN_PROGRESS, STAGE_STATUSES,
    get_workflow_progress, is_stage_available,
    missing_signoffs, missing_signoffs_message,
)

logger = logging.getLogger(__name__)


def get_package_workflow(package_id):
    """Stages of a package plus its progress summary."""
    package = get_package(package_id)
    stages = list(package.workflow_stages)
    return {
        'package_id': package.id,
        'stages': [s.to_dict() for s in stages],
        'progress': get_workflow_progress(stages),
    }


def _clean_signoffs(signoffs):
    """Normalise sign-offs to ``{type: {'name': ..., 'date': ...}}``."""
    cleaned = {}
    for signoff_type, entry in (signoffs or {}).items():
        if not isinstance(entry, dict):
            raise ValidationError(f'Sign-off "{signoff_type}" must have a name and date')
        name = str(entry.get('name') or '').strip()
        if not name:
            continue
        signed = entry.get('date') or date.today()
        cleaned[signoff_type] = {'name': name, 'date': isoformat(signed)}
    return cleaned


def _check_previous(stage):
    siblings = stage.package.workflow_stages
    if not is_stage_available(siblings, stage.stage_order):
        raise ConflictError('Cannot complete stage: previous stage not completed or skipped')


def update_stage(stage_id, data, user_id=None, package_id=None):
    """Move a stage to ``data['status']``.

    Skipping needs ``skip_reason``. Completing needs ``stage_data`` and the
    stage's required ``signoffs``. Both require the previous stage to be
    finished. Re-completing a completed stage keeps the earlier completion
    under ``stage_data['original_completion']``.
    """
    stage = fetch(PackageWorkflowStage, stage_id, 'Workflow stage')
    if package_id is not None and stage.package_id != package_id:
        raise NotFoundError(f'Workflow stage {stage_id} not found in package')
    status = data.get('status')
    if status not in STAGE_STATUSES:
        raise ValidationError(f'Invalid stage status: {status}')

    if status == STAGE_SKIPPED:
        reason = str(data.get('skip_reason') or '').strip()
        if not reason:
            raise ValidationError('Skip reason is required when skipping a stage')
        _check_previous(stage)
        stage.skip_reason = reason
        stage.signoffs = None
        stage.completed_by = user_id
        stage.completed_at = utcnow()

    elif status == STAGE_COMPLETED:
        stage_data = data.get('stage_data')
        if not stage_data or not isinstance(stage_data, dict):
            raise ValidationError('Stage data is required for completion')
        if not data.get('signoffs'):
            raise ValidationError('Sign-offs are required for completion')
        if not isinstance(data['signoffs'], dict):
            raise ValidationError('Sign-offs must be an object keyed by sign-off type')
        signoffs = _clean_signoffs(data['signoffs'])
        missing = missing_signoffs(stage.stage_name, signoffs)
        if missing:
            raise ValidationError(missing_signoffs_message(missing))
        _check_previous(stage)

        new_data = dict(stage_data)
        if stage.status == STAGE_COMPLETED:
            new_data['original_completion'] = {
                'stage_data': stage.stage_data,
                'signoffs': stage.signoffs,
                'completed_by': stage.completed_by,
                'completed_at': isoformat(stage.completed_at),
            }
        stage.stage_data = new_data
        stage.signoffs = signoffs
        stage.skip_reason = None
        stage.completed_by = user_id
        stage.completed_at = utcnow()

    else:
        if status == STAGE_IN_PROGRESS:
            _check_previous(stage)
        stage.skip_reason = None
        stage.completed_by = None
        stage.completed_at = None

    previous = stage.status
    stage.status = status
    package = stage.package
    AuditLog.log(ACTION_UPDATE_STAGE, 'workflow_stage', stage.id, stage.stage_name,
                 details={'package_id': package.id, 'from': previous, 'to': status},
                 project_id=package.project_id, user_id=user_id)
    db.session.commit()
    logger.info('Package %s stage %d "%s": %s -> %s',
                package.id, stage.stage_order, stage.stage_name, previous, status)
    return stage
