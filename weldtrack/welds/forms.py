"""Forms for field welds, welders and NDE."""
from wtforms import (
    StringField, TextAreaField, IntegerField, FloatField, BooleanField, DateField,
)
from wtforms.validators import AnyOf, DataRequired, Optional, Length

from weldtrack.models import WELDER_STATUSES
from weldtrack.utils.api import JSONForm


class WeldSpecForm(JSONForm):
    """Weld specs. Weld type and x-ray rules are enforced by the weld service."""
    weld_type = StringField('Weld Type', validators=[Optional(), Length(max=2)])
    weld_size = StringField('Weld Size', validators=[Optional(), Length(max=20)])
    schedule = StringField('Schedule', validators=[Optional(), Length(max=20)])
    base_metal = StringField('Base Metal', validators=[Optional(), Length(max=50)])
    spec = StringField('Spec', validators=[Optional(), Length(max=50)])
    xray_percentage = FloatField('X-ray %', validators=[Optional()])
    nde_required = BooleanField('NDE Required')
    notes = TextAreaField('Notes', validators=[Optional(), Length(max=2000)])


class RepairWeldForm(WeldSpecForm):
    weld_number = StringField('Weld Number', validators=[Optional(), Length(max=50)])


class FieldWeldForm(RepairWeldForm):
    drawing_id = IntegerField('Drawing', validators=[DataRequired()])


class ReassignDrawingForm(JSONForm):
    drawing_id = IntegerField('Drawing', validators=[DataRequired()])


class RetireForm(JSONForm):
    reason = TextAreaField('Reason', validators=[DataRequired(), Length(max=1000)])


class WelderAssignmentForm(JSONForm):
    welder_id = IntegerField('Welder', validators=[DataRequired()])
    date_welded = DateField('Date Welded', validators=[DataRequired()])


class WelderAssignmentUpdateForm(JSONForm):
    welder_id = IntegerField('Welder', validators=[DataRequired()])
    date_welded = DateField('Date Welded', validators=[Optional()])


class NDEForm(JSONForm):
    nde_type = StringField('NDE Type', validators=[DataRequired(), Length(max=2)])
    nde_result = StringField('NDE Result', validators=[DataRequired(), Length(max=10)])
    nde_date = DateField('NDE Date', validators=[Optional()])
    nde_notes = TextAreaField('Notes', validators=[Optional(), Length(max=2000)])


class WelderForm(JSONForm):
    stencil = StringField('Stencil', validators=[DataRequired(), Length(max=12)])
    name = StringField('Name', validators=[DataRequired(), Length(max=100)])
    status = StringField('Status', validators=[Optional(), AnyOf(WELDER_STATUSES)])
