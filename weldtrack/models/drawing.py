"""Isometric drawing model."""
import re

from weldtrack.extensions import db

from .base import TimestampMixin, isoformat

# Metadata a drawing passes down to its components
INHERITED_FIELDS = ('area_id', 'system_id', 'test_package_id')


def normalize_drawing_number(raw):
    """Uppercase, trimmed, inner whitespace collapsed."""
    return re.sub(r'\s+', ' ', (raw or '').strip().upper())


class Drawing(TimestampMixin, db.Model):
    """Piping isometric; components and welds are located on a drawing."""
    __tablename__ = 'drawings'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    drawing_no_raw = db.Column(db.String(100), nullable=False)
    drawing_no_norm = db.Column(db.String(100), nullable=False, index=True)
    title = db.Column(db.String(200))
    rev = db.Column(db.String(20))

    area_id = db.Column(db.Integer, db.ForeignKey('areas.id'))
    system_id = db.Column(db.Integer, db.ForeignKey('systems.id'))
    test_package_id = db.Column(db.Integer, db.ForeignKey('test_packages.id'))

    is_retired = db.Column(db.Boolean, default=False, nullable=False)
    retire_reason = db.Column(db.Text)

    area = db.relationship('Area')
    system = db.relationship('System')
    test_package = db.relationship('TestPackage', backref=db.backref('drawings', lazy='dynamic'))
    components = db.relationship('Component', backref='drawing', lazy='dynamic')

    def inherited_values(self):
        return {field: getattr(self, field) for field in INHERITED_FIELDS}

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'drawing_no_raw': self.drawing_no_raw,
            'drawing_no_norm': self.drawing_no_norm,
            'title': self.title,
            'rev': self.rev,
            'area_id': self.area_id,
            'system_id': self.system_id,
            'test_package_id': self.test_package_id,
            'is_retired': self.is_retired,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Drawing {self.drawing_no_norm}>'
