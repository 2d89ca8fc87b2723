"""Field weld, welder and weld event models."""
from weldtrack.extensions import db

from .base import TimestampMixin, isoformat, utcnow

# Weld types
WELD_TYPE_BUTT = 'BW'
WELD_TYPE_SOCKET = 'SW'
WELD_TYPE_FILLET = 'FW'
WELD_TYPE_TACK = 'TW'

WELD_TYPES = [WELD_TYPE_BUTT, WELD_TYPE_SOCKET, WELD_TYPE_FILLET, WELD_TYPE_TACK]

WELD_TYPE_LABELS = {
    WELD_TYPE_BUTT: 'Butt Weld',
    WELD_TYPE_SOCKET: 'Socket Weld',
    WELD_TYPE_FILLET: 'Fillet Weld',
    WELD_TYPE_TACK: 'Tack Weld',
}

# Weld status, derived from the NDE result
STATUS_ACTIVE = 'active'
STATUS_ACCEPTED = 'accepted'
STATUS_REJECTED = 'rejected'

WELD_STATUSES = [STATUS_ACTIVE, STATUS_ACCEPTED, STATUS_REJECTED]

WELD_STATUS_LABELS = {
    STATUS_ACTIVE: 'Active',
    STATUS_ACCEPTED: 'Accepted',
    STATUS_REJECTED: 'Rejected',
}

WELD_STATUS_BADGES = {
    STATUS_ACTIVE: 'info',
    STATUS_ACCEPTED: 'success',
    STATUS_REJECTED: 'danger',
}

# NDE
NDE_TYPES = ['RT', 'UT', 'PT', 'MT', 'VT']

NDE_TYPE_LABELS = {
    'RT': 'Radiographic Testing',
    'UT': 'Ultrasonic Testing',
    'PT': 'Penetrant Testing',
    'MT': 'Magnetic Particle Testing',
    'VT': 'Visual Testing',
}

NDE_PASS = 'PASS'
NDE_FAIL = 'FAIL'
NDE_PENDING = 'PENDING'

NDE_RESULTS = [NDE_PASS, NDE_FAIL, NDE_PENDING]

# Welder qualification status
WELDER_UNVERIFIED = 'unverified'
WELDER_VERIFIED = 'verified'

WELDER_STATUSES = [WELDER_UNVERIFIED, WELDER_VERIFIED]

STENCIL_PATTERN = r'^[A-Z0-9-]{2,12}$'

# Field weld event actions
WELD_EVENT_ASSIGN = 'assign'
WELD_EVENT_UPDATE = 'update'
WELD_EVENT_CLEAR = 'clear'
WELD_EVENT_NDE_RECORD = 'nde_record'
WELD_EVENT_NDE_UPDATE = 'nde_update'
WELD_EVENT_NDE_CLEAR = 'nde_clear'

WELD_EVENT_ACTIONS = [
    WELD_EVENT_ASSIGN, WELD_EVENT_UPDATE, WELD_EVENT_CLEAR,
    WELD_EVENT_NDE_RECORD, WELD_EVENT_NDE_UPDATE, WELD_EVENT_NDE_CLEAR,
]

WELD_EVENT_LABELS = {
    WELD_EVENT_ASSIGN: 'Welder Assigned',
    WELD_EVENT_UPDATE: 'Assignment Updated',
    WELD_EVENT_CLEAR: 'Welder Cleared',
    WELD_EVENT_NDE_RECORD: 'NDE Recorded',
    WELD_EVENT_NDE_UPDATE: 'NDE Updated',
    WELD_EVENT_NDE_CLEAR: 'NDE Cleared',
}


class Welder(db.Model):
    """Welder registered on a project, identified by a stamped stencil."""
    __tablename__ = 'welders'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    stencil = db.Column(db.String(12), nullable=False)
    stencil_norm = db.Column(db.String(12), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=WELDER_UNVERIFIED)
    verified_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow)

    __table_args__ = (
        db.UniqueConstraint('project_id', 'stencil_norm', name='uq_project_welder_stencil'),
    )

    @property
    def is_verified(self):
        return self.status == WELDER_VERIFIED

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'stencil': self.stencil_norm,
            'name': self.name,
            'status': self.status,
            'verified_at': isoformat(self.verified_at),
        }

    def __repr__(self):
        return f'<Welder {self.stencil_norm}>'


class FieldWeld(TimestampMixin, db.Model):
    """Weld made in the field, backed by a ``field_weld`` component.

    A repair weld points at the weld it replaces via ``original_weld_id``;
    repairs of repairs form a chain back to the first weld.
    """
    __tablename__ = 'field_welds'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    component_id = db.Column(db.Integer, db.ForeignKey('components.id'), nullable=False, unique=True)
    weld_number = db.Column(db.String(50), nullable=False)

    # Specs
    weld_type = db.Column(db.String(2), nullable=False)
    weld_size = db.Column(db.String(20))
    schedule = db.Column(db.String(20))
    base_metal = db.Column(db.String(50))
    spec = db.Column(db.String(50))
    xray_percentage = db.Column(db.Float)
    is_unplanned = db.Column(db.Boolean, default=False, nullable=False)
    notes = db.Column(db.Text)

    # Welder assignment
    welder_id = db.Column(db.Integer, db.ForeignKey('welders.id'), index=True)
    date_welded = db.Column(db.Date)

    # NDE
    nde_required = db.Column(db.Boolean, default=False, nullable=False)
    nde_type = db.Column(db.String(2))
    nde_result = db.Column(db.String(10))
    nde_date = db.Column(db.Date)
    nde_notes = db.Column(db.Text)

    status = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE, index=True)
    original_weld_id = db.Column(db.Integer, db.ForeignKey('field_welds.id'), index=True)

    component = db.relationship('Component', backref=db.backref('field_weld', uselist=False))
    welder = db.relationship('Welder', backref=db.backref('field_welds', lazy='dynamic'))
    repairs = db.relationship('FieldWeld',
                              backref=db.backref('original_weld', remote_side=[id]),
                              order_by='FieldWeld.id')
    events = db.relationship('FieldWeldEvent', backref='field_weld', lazy='dynamic',
                             cascade='all, delete-orphan', order_by='FieldWeldEvent.id')

    __table_args__ = (
        db.UniqueConstraint('project_id', 'weld_number', name='uq_project_weld_number'),
        db.CheckConstraint('original_weld_id IS NULL OR original_weld_id != id',
                           name='ck_weld_not_own_repair'),
    )

    @property
    def is_repair(self):
        return self.original_weld_id is not None

    @property
    def has_nde(self):
        return self.nde_result is not None

    @property
    def status_label(self):
        return WELD_STATUS_LABELS.get(self.status, self.status)

    @property
    def status_badge(self):
        return WELD_STATUS_BADGES.get(self.status, 'secondary')

    @property
    def weld_type_label(self):
        return WELD_TYPE_LABELS.get(self.weld_type, self.weld_type)

    def spec_values(self):
        """Spec fields a repair weld inherits from the weld it replaces."""
        return {
            'weld_type': self.weld_type,
            'weld_size': self.weld_size,
            'schedule': self.schedule,
            'base_metal': self.base_metal,
            'spec': self.spec,
        }

    def to_dict(self):
        component = self.component
        return {
            'id': self.id,
            'project_id': self.project_id,
            'component_id': self.component_id,
            'drawing_id': component.drawing_id if component else None,
            'weld_number': self.weld_number,
            'weld_type': self.weld_type,
            'weld_size': self.weld_size,
            'schedule': self.schedule,
            'base_metal': self.base_metal,
            'spec': self.spec,
            'xray_percentage': self.xray_percentage,
            'is_unplanned': self.is_unplanned,
            'notes': self.notes,
            'welder_id': self.welder_id,
            'welder_stencil': self.welder.stencil_norm if self.welder else None,
            'date_welded': isoformat(self.date_welded),
            'nde_required': self.nde_required,
            'nde_type': self.nde_type,
            'nde_result': self.nde_result,
            'nde_date': isoformat(self.nde_date),
            'nde_notes': self.nde_notes,
            'status': self.status,
            'status_label': self.status_label,
            'is_repair': self.is_repair,
            'original_weld_id': self.original_weld_id,
            'percent_complete': component.percent_complete if component else 0.0,
            'current_milestones': component.current_milestones if component else {},
            'is_retired': component.is_retired if component else False,
        }

    def __repr__(self):
        return f'<FieldWeld {self.weld_number}>'


class FieldWeldEvent(db.Model):
    """Audit trail of welder assignment and NDE changes on a weld."""
    __tablename__ = 'field_weld_events'

    id = db.Column(db.Integer, primary_key=True)
    field_weld_id = db.Column(db.Integer, db.ForeignKey('field_welds.id'), nullable=False, index=True)
    action = db.Column(db.String(20), nullable=False, index=True)
    user_id = db.Column(db.Integer)
    old_values = db.Column(db.JSON)
    new_values = db.Column(db.JSON)
    details = db.Column(db.JSON)  # rollback reason metadata
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    @property
    def action_label(self):
        return WELD_EVENT_LABELS.get(self.action, self.action)

    def to_dict(self):
        return {
            'id': self.id,
            'field_weld_id': self.field_weld_id,
            'action': self.action,
            'action_label': self.action_label,
            'user_id': self.user_id,
            'old_values': self.old_values,
            'new_values': self.new_values,
            'details': self.details,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<FieldWeldEvent {self.action} weld:{self.field_weld_id}>'
