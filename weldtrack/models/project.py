"""Project, area and system models."""
from weldtrack.extensions import db

from .base import TimestampMixin, isoformat


class Project(TimestampMixin, db.Model):
    """A construction project owning drawings, welds, welders and packages."""
    __tablename__ = 'projects'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, unique=True)
    description = db.Column(db.Text)

    areas = db.relationship('Area', backref='project', lazy='dynamic',
                            cascade='all, delete-orphan', order_by='Area.name')
    systems = db.relationship('System', backref='project', lazy='dynamic',
                              cascade='all, delete-orphan', order_by='System.name')
    drawings = db.relationship('Drawing', backref='project', lazy='dynamic',
                               cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Project {self.id}: {self.name}>'


class Area(db.Model):
    """Physical area of a plant, used to group drawings."""
    __tablename__ = 'areas'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)

    __table_args__ = (
        db.UniqueConstraint('project_id', 'name', name='uq_project_area'),
    )

    def to_dict(self):
        return {'id': self.id, 'project_id': self.project_id,
                'name': self.name, 'description': self.description}

    def __repr__(self):
        return f'<Area {self.name}>'


class System(db.Model):
    """Process system (e.g. cooling water) a drawing belongs to."""
    __tablename__ = 'systems'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)

    __table_args__ = (
        db.UniqueConstraint('project_id', 'name', name='uq_project_system'),
    )

    def to_dict(self):
        return {'id': self.id, 'project_id': self.project_id,
                'name': self.name, 'description': self.description}

    def __repr__(self):
        return f'<System {self.name}>'
