"""Forms for projects, drawings and components."""
from wtforms import StringField, TextAreaField, IntegerField, FloatField, DateField
from wtforms.validators import DataRequired, Optional, Length, NumberRange

from weldtrack.utils.api import JSONForm


class ProjectForm(JSONForm):
    name = StringField('Project Name', validators=[DataRequired(), Length(max=200)])
    description = TextAreaField('Description', validators=[Optional(), Length(max=2000)])


class GroupingForm(JSONForm):
    """Area or system."""
    name = StringField('Name', validators=[DataRequired(), Length(max=100)])
    description = TextAreaField('Description', validators=[Optional(), Length(max=1000)])


class DrawingUpdateForm(JSONForm):
    title = StringField('Title', validators=[Optional(), Length(max=200)])
    rev = StringField('Revision', validators=[Optional(), Length(max=20)])
    area_id = IntegerField('Area', validators=[Optional()])
    system_id = IntegerField('System', validators=[Optional()])
    test_package_id = IntegerField('Test Package', validators=[Optional()])


class DrawingForm(DrawingUpdateForm):
    drawing_no = StringField('Drawing Number', validators=[DataRequired(), Length(max=100)])


class ComponentForm(JSONForm):
    """Component; ``identity_key`` is read from the JSON body as an object."""
    component_type = StringField('Component Type', validators=[DataRequired(), Length(max=50)])
    drawing_id = IntegerField('Drawing', validators=[Optional()])


class MilestoneForm(JSONForm):
    """Milestone update; ``value`` and ``rollback`` are read from the JSON body."""
    milestone_name = StringField('Milestone', validators=[DataRequired(), Length(max=100)])


class ManhourBudgetForm(JSONForm):
    total_budgeted_manhours = FloatField('Total Budgeted Manhours',
                                         validators=[DataRequired(), NumberRange(min=0.01)])
    revision_reason = TextAreaField('Revision Reason', validators=[DataRequired(), Length(max=1000)])
    effective_date = DateField('Effective Date', validators=[Optional()])
