"""Tracked components, progress templates and milestone history."""
from weldtrack.extensions import db
from weldtrack.services.progress import (
    milestones_from_config, WORKFLOW_DISCRETE,
)

from .base import TimestampMixin, isoformat, utcnow

# Milestone event actions
EVENT_COMPLETE = 'complete'
EVENT_UNCOMPLETE = 'uncomplete'
EVENT_UPDATE = 'update'
EVENT_ROLLBACK = 'rollback'

MILESTONE_EVENT_ACTIONS = [EVENT_COMPLETE, EVENT_UNCOMPLETE, EVENT_UPDATE, EVENT_ROLLBACK]

MILESTONE_EVENT_LABELS = {
    EVENT_COMPLETE: 'Completed',
    EVENT_UNCOMPLETE: 'Uncompleted',
    EVENT_UPDATE: 'Updated',
    EVENT_ROLLBACK: 'Rolled back',
}


class ProgressTemplate(db.Model):
    """Versioned milestone template for one component type."""
    __tablename__ = 'progress_templates'

    id = db.Column(db.Integer, primary_key=True)
    component_type = db.Column(db.String(50), nullable=False)
    version = db.Column(db.Integer, nullable=False, default=1)
    workflow_type = db.Column(db.String(20), nullable=False, default=WORKFLOW_DISCRETE)
    milestones_config = db.Column(db.JSON, nullable=False, default=list)

    __table_args__ = (
        db.UniqueConstraint('component_type', 'version', name='uq_template_type_version'),
    )

    @property
    def milestones(self):
        return milestones_from_config(self.milestones_config)

    @classmethod
    def latest_for(cls, component_type):
        return cls.query.filter_by(component_type=component_type)\
            .order_by(cls.version.desc()).first()

    def to_dict(self):
        return {
            'id': self.id,
            'component_type': self.component_type,
            'version': self.version,
            'workflow_type': self.workflow_type,
            'milestones': [m.to_dict() for m in self.milestones],
        }

    def __repr__(self):
        return f'<ProgressTemplate {self.component_type} v{self.version}>'


class Component(TimestampMixin, db.Model):
    """A tracked item (spool, valve, field weld...) with milestone progress.

    ``current_milestones`` maps milestone name to its stored value (100/0
    for discrete milestones, a percentage for partial ones). JSON columns
    are not mutation-tracked, so callers always assign a fresh dict.
    """
    __tablename__ = 'components'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    drawing_id = db.Column(db.Integer, db.ForeignKey('drawings.id'), index=True)
    component_type = db.Column(db.String(50), nullable=False)
    identity_key = db.Column(db.JSON, nullable=False, default=dict)

    area_id = db.Column(db.Integer, db.ForeignKey('areas.id'))
    system_id = db.Column(db.Integer, db.ForeignKey('systems.id'))
    test_package_id = db.Column(db.Integer, db.ForeignKey('test_packages.id'), index=True)

    progress_template_id = db.Column(db.Integer, db.ForeignKey('progress_templates.id'), nullable=False)
    current_milestones = db.Column(db.JSON, nullable=False, default=dict)
    percent_complete = db.Column(db.Float, nullable=False, default=0.0)
    manhour_weight = db.Column(db.Float)
    budgeted_manhours = db.Column(db.Float)

    is_retired = db.Column(db.Boolean, default=False, nullable=False)
    retire_reason = db.Column(db.Text)
    last_updated_at = db.Column(db.DateTime, default=utcnow)
    last_updated_by = db.Column(db.Integer)

    progress_template = db.relationship('ProgressTemplate')
    area = db.relationship('Area')
    system = db.relationship('System')
    test_package = db.relationship('TestPackage', backref=db.backref('components', lazy='dynamic'))
    milestone_events = db.relationship('MilestoneEvent', backref='component', lazy='dynamic',
                                       cascade='all, delete-orphan',
                                       order_by='MilestoneEvent.id')

    @property
    def milestones(self):
        return self.progress_template.milestones

    @property
    def display_name(self):
        key = self.identity_key or {}
        if 'weld_number' in key:
            return key['weld_number']
        if 'spool_id' in key:
            return key['spool_id']
        parts = [key.get('commodity_code'), key.get('size')]
        return ' '.join(str(p) for p in parts if p) or f'{self.component_type} #{self.id}'

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'drawing_id': self.drawing_id,
            'component_type': self.component_type,
            'identity_key': self.identity_key,
            'display_name': self.display_name,
            'area_id': self.area_id,
            'system_id': self.system_id,
            'test_package_id': self.test_package_id,
            'progress_template_id': self.progress_template_id,
            'current_milestones': self.current_milestones,
            'percent_complete': self.percent_complete,
            'manhour_weight': self.manhour_weight,
            'budgeted_manhours': self.budgeted_manhours,
            'is_retired': self.is_retired,
            'retire_reason': self.retire_reason,
            'last_updated_at': isoformat(self.last_updated_at),
        }

    def __repr__(self):
        return f'<Component {self.id}: {self.component_type} {self.display_name}>'


class MilestoneEvent(db.Model):
    """History entry for one milestone change on a component."""
    __tablename__ = 'milestone_events'

    id = db.Column(db.Integer, primary_key=True)
    component_id = db.Column(db.Integer, db.ForeignKey('components.id'), nullable=False, index=True)
    milestone_name = db.Column(db.String(100), nullable=False)
    action = db.Column(db.String(20), nullable=False)
    value = db.Column(db.Float)
    previous_value = db.Column(db.Float)
    user_id = db.Column(db.Integer)
    details = db.Column(db.JSON)  # rollback reason metadata
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    @property
    def action_label(self):
        return MILESTONE_EVENT_LABELS.get(self.action, self.action)

    def to_dict(self):
        return {
            'id': self.id,
            'component_id': self.component_id,
            'milestone_name': self.milestone_name,
            'action': self.action,
            'action_label': self.action_label,
            'value': self.value,
            'previous_value': self.previous_value,
            'user_id': self.user_id,
            'details': self.details,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<MilestoneEvent {self.action} {self.milestone_name}>'
