"""Project manhour budget model."""
from weldtrack.extensions import db

from .base import isoformat, utcnow


class ManhourBudget(db.Model):
    """One version of a project's manhour budget.

    Publishing a new version deactivates the previous one and
    redistributes the total over the project's components.
    """
    __tablename__ = 'manhour_budgets'

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False, index=True)
    version_number = db.Column(db.Integer, nullable=False)
    total_budgeted_manhours = db.Column(db.Float, nullable=False)
    revision_reason = db.Column(db.Text, nullable=False)
    effective_date = db.Column(db.Date)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    distribution = db.Column(db.JSON)  # summary and fixed-weight warnings
    created_by = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, default=utcnow)

    __table_args__ = (
        db.UniqueConstraint('project_id', 'version_number', name='uq_project_budget_version'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'project_id': self.project_id,
            'version_number': self.version_number,
            'total_budgeted_manhours': self.total_budgeted_manhours,
            'revision_reason': self.revision_reason,
            'effective_date': isoformat(self.effective_date),
            'is_active': self.is_active,
            'distribution': self.distribution,
            'created_by': self.created_by,
            'created_at': isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<ManhourBudget project={self.project_id} v{self.version_number}>'
