"""Audit log model for tracking record lifecycle actions."""
from weldtrack.extensions import db

from .base import isoformat, utcnow


# Action constants
ACTION_CREATE_PROJECT = 'create_project'
ACTION_CREATE_DRAWING = 'create_drawing'
ACTION_UPDATE_DRAWING = 'update_drawing'
ACTION_CREATE_COMPONENT = 'create_component'
ACTION_CREATE_WELD = 'create_weld'
ACTION_CREATE_UNPLANNED_WELD = 'create_unplanned_weld'
ACTION_CREATE_REPAIR_WELD = 'create_repair_weld'
ACTION_UPDATE_WELD = 'update_weld'
ACTION_REASSIGN_WELD = 'reassign_weld'
ACTION_RETIRE_WELD = 'retire_weld'
ACTION_CREATE_WELDER = 'create_welder'
ACTION_VERIFY_WELDER = 'verify_welder'
ACTION_CREATE_PACKAGE = 'create_package'
ACTION_UPDATE_PACKAGE = 'update_package'
ACTION_DELETE_PACKAGE = 'delete_package'
ACTION_ASSIGN_PACKAGE = 'assign_package'
ACTION_SUBMIT_CERTIFICATE = 'submit_certificate'
ACTION_UPDATE_STAGE = 'update_stage'
ACTION_CREATE_BUDGET = 'create_budget'
ACTION_IMPORT_COMPONENTS = 'import_components'

ACTION_LABELS = {
    ACTION_CREATE_PROJECT: 'Create Project',
    ACTION_CREATE_DRAWING: 'Create Drawing',
    ACTION_UPDATE_DRAWING: 'Update Drawing',
    ACTION_CREATE_COMPONENT: 'Create Component',
    ACTION_CREATE_WELD: 'Create Weld',
    ACTION_CREATE_UNPLANNED_WELD: 'Create Unplanned Weld',
    ACTION_CREATE_REPAIR_WELD: 'Create Repair Weld',
    ACTION_UPDATE_WELD: 'Update Weld',
    ACTION_REASSIGN_WELD: 'Reassign Weld',
    ACTION_RETIRE_WELD: 'Retire Weld',
    ACTION_CREATE_WELDER: 'Create Welder',
    ACTION_VERIFY_WELDER: 'Verify Welder',
    ACTION_CREATE_PACKAGE: 'Create Package',
    ACTION_UPDATE_PACKAGE: 'Update Package',
    ACTION_DELETE_PACKAGE: 'Delete Package',
    ACTION_ASSIGN_PACKAGE: 'Assign to Package',
    ACTION_SUBMIT_CERTIFICATE: 'Submit Certificate',
    ACTION_UPDATE_STAGE: 'Update Workflow Stage',
    ACTION_CREATE_BUDGET: 'Create Manhour Budget',
    ACTION_IMPORT_COMPONENTS: 'Import Components',
}


class AuditLog(db.Model):
    """Tracks who created, changed or retired what."""
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=True, index=True)
    user_id = db.Column(db.Integer, nullable=True)
    action = db.Column(db.String(50), nullable=False, index=True)
    resource_type = db.Column(db.String(50), nullable=True)
    resource_id = db.Column(db.Integer, nullable=True)
    resource_name = db.Column(db.String(200), nullable=True)
    details = db.Column(db.JSON, nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)
    timestamp = db.Column(db.DateTime, default=utcnow, index=True)

    @property
    def action_label(self):
        return ACTION_LABELS.get(self.action, self.action)

    @classmethod
    def log(cls, action, resource_type=None, resource_id=None,
            resource_name=None, details=None, project_id=None, user_id=None):
        """Add an audit log entry to the current session.

        The caller commits together with the change being audited. IP is
        filled from the request context when there is one.
        """
        from flask import has_request_context, request

        ip_address = request.remote_addr if has_request_context() else None

        entry = cls(
            project_id=project_id,
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            resource_name=resource_name,
            details=details or None,
            ip_address=ip_address,
        )
        db.session.add(entry)
        return entry

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'user_id': self.user_id,
            'action': self.action,
            'action_label': self.action_label,
            'resource_type': self.resource_type,
            'resource_id': self.resource_id,
            'resource_name': self.resource_name,
            'details': self.details,
            'timestamp': isoformat(self.timestamp),
        }

    def __repr__(self):
        return f'<AuditLog {self.action} {self.resource_type}:{self.resource_id}>'
