"""Forms for test packages and certificates."""
from wtforms import (
    StringField, TextAreaField, IntegerField, FloatField, BooleanField, DateField, FieldList,
)
from wtforms.validators import DataRequired, Optional, Length, NumberRange, AnyOf

from weldtrack.models import TEST_TYPES, PRESSURE_UNITS, TEMPERATURE_UNITS
from weldtrack.services.workflow import STAGE_STATUSES
from weldtrack.utils.api import JSONForm


class PackageUpdateForm(JSONForm):
    name = StringField('Package Name', validators=[Optional(), Length(max=100)])
    description = TextAreaField('Description', validators=[Optional(), Length(max=2000)])
    target_date = DateField('Target Date', validators=[Optional()])
    test_type = StringField('Test Type', validators=[Optional(), AnyOf(TEST_TYPES)])
    requires_coating = BooleanField('Requires Coating')
    requires_insulation = BooleanField('Requires Insulation')
    test_pressure = FloatField('Test Pressure', validators=[Optional(), NumberRange(min=0)])
    test_pressure_unit = StringField('Pressure Unit', validators=[Optional(), AnyOf(PRESSURE_UNITS)])


class PackageForm(PackageUpdateForm):
    name = StringField('Package Name', validators=[DataRequired(), Length(max=100)])


class DrawingAssignmentForm(JSONForm):
    drawing_ids = FieldList(IntegerField('Drawing', validators=[DataRequired()]), min_entries=1)


class ComponentAssignmentForm(JSONForm):
    component_ids = FieldList(IntegerField('Component', validators=[DataRequired()]),
                              min_entries=1)


class CertificateForm(JSONForm):
    """Certificate fields; required-ness is checked by the service on submit."""
    client = StringField('Client', validators=[Optional(), Length(max=200)])
    client_spec = StringField('Client Spec', validators=[Optional(), Length(max=200)])
    line_number = StringField('Line Number', validators=[Optional(), Length(max=100)])
    test_pressure = FloatField('Test Pressure', validators=[Optional()])
    pressure_unit = StringField('Pressure Unit', validators=[Optional(), AnyOf(PRESSURE_UNITS)])
    test_media = StringField('Test Media', validators=[Optional(), Length(max=100)])
    temperature = FloatField('Temperature', validators=[Optional()])
    temperature_unit = StringField('Temperature Unit',
                                   validators=[Optional(), AnyOf(TEMPERATURE_UNITS)])
    submit = BooleanField('Submit')


class StageUpdateForm(JSONForm):
    """Stage status; ``stage_data`` and ``signoffs`` are read from the JSON body."""
    status = StringField('Status', validators=[DataRequired(), AnyOf(STAGE_STATUSES)])
    skip_reason = TextAreaField('Skip Reason', validators=[Optional(), Length(max=1000)])
