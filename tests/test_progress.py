"""Tests for milestone templates and percent complete."""
import pytest

from weldtrack.services.exceptions import ValidationError
from weldtrack.services.progress import (
    Milestone, STANDARD_TEMPLATES, COMPONENT_TYPES,
    milestones_from_config, validate_template, normalize_milestone_value,
    calculate_percent_complete, validate_milestone_update, is_rollback, validate_rollback,
    milestone_values,
)


def _weld_milestones():
    return milestones_from_config(STANDARD_TEMPLATES['field_weld']['milestones'])


def _threaded_milestones():
    return milestones_from_config(STANDARD_TEMPLATES['threaded_pipe']['milestones'])


class TestStandardTemplates:
    def test_all_types_present(self):
        assert set(COMPONENT_TYPES) == {
            'spool', 'field_weld', 'support', 'valve', 'fitting', 'flange',
            'instrument', 'tubing', 'hose', 'misc_component', 'threaded_pipe',
        }

    @pytest.mark.parametrize('component_type', sorted(STANDARD_TEMPLATES))
    def test_templates_valid(self, component_type):
        definition = STANDARD_TEMPLATES[component_type]
        validate_template(milestones_from_config(definition['milestones']),
                          definition['workflow_type'])

    def test_field_weld_weights(self):
        weights = {m.name: m.weight for m in _weld_milestones()}
        assert weights == {'Fit-up': 30, 'Weld Complete': 65, 'Accepted': 5}

    def test_weld_complete_requires_welder(self):
        needs_welder = [m.name for m in _weld_milestones() if m.requires_welder]
        assert needs_welder == ['Weld Complete']


class TestValidateTemplate:
    def test_weights_must_total_100(self):
        milestones = [Milestone('A', 50, 1), Milestone('B', 40, 2)]
        with pytest.raises(ValidationError, match='total 100'):
            validate_template(milestones)

    def test_weight_range(self):
        milestones = [Milestone('A', 0, 1), Milestone('B', 100, 2)]
        with pytest.raises(ValidationError, match='between 1 and 100'):
            validate_template(milestones)

    def test_duplicate_orders(self):
        milestones = [Milestone('A', 50, 1), Milestone('B', 50, 1)]
        with pytest.raises(ValidationError, match='orders must be unique'):
            validate_template(milestones)

    def test_duplicate_names(self):
        milestones = [Milestone('A', 50, 1), Milestone('A', 50, 2)]
        with pytest.raises(ValidationError, match='names must be unique'):
            validate_template(milestones)

    def test_empty_name(self):
        milestones = [Milestone(' ', 50, 1), Milestone('B', 50, 2)]
        with pytest.raises(ValidationError, match='cannot be empty'):
            validate_template(milestones)

    def test_errors_collected(self):
        milestones = [Milestone('A', 0, 1), Milestone('A', 10, 1)]
        with pytest.raises(ValidationError) as exc:
            validate_template(milestones)
        assert len(exc.value.details) >= 3


class TestMilestonesFromConfig:
    def test_sorted_by_order(self):
        milestones = milestones_from_config([
            {'name': 'B', 'weight': 60, 'order': 2.0},
            {'name': 'A', 'weight': 40, 'order': 1},
        ])
        assert [m.name for m in milestones] == ['A', 'B']
        assert milestones[1].order == 2

    @pytest.mark.parametrize('weight', ['lots', '40', True, None, float('nan')])
    def test_weight_must_be_number(self, weight):
        with pytest.raises(ValidationError, match='weight must be a number'):
            milestones_from_config([{'name': 'A', 'weight': weight, 'order': 1}])

    def test_order_must_be_number(self):
        with pytest.raises(ValidationError, match='order must be a number'):
            milestones_from_config([{'name': 'A', 'weight': 100, 'order': '1'}])

    def test_order_must_be_whole(self):
        with pytest.raises(ValidationError, match='whole number'):
            milestones_from_config([{'name': 'A', 'weight': 100, 'order': 1.5}])


class TestPercentComplete:
    def test_nothing_done(self):
        assert calculate_percent_complete(_weld_milestones(), {}) == 0.0

    def test_fit_up_only(self):
        assert calculate_percent_complete(_weld_milestones(), {'Fit-up': 100}) == 30.0

    def test_welded(self):
        values = {'Fit-up': 100, 'Weld Complete': 100}
        assert calculate_percent_complete(_weld_milestones(), values) == 95.0

    def test_all_done(self):
        values = milestone_values(_weld_milestones(), ['Fit-up', 'Weld Complete', 'Accepted'])
        assert calculate_percent_complete(_weld_milestones(), values) == 100.0

    def test_partial_values(self):
        values = {'Fabricate': 50, 'Install': 25.5}
        # 16 * 0.5 + 16 * 0.255
        assert calculate_percent_complete(_threaded_milestones(), values) == 12.08

    def test_boolean_values_count(self):
        assert calculate_percent_complete(_weld_milestones(), {'Fit-up': True}) == 30.0


class TestNormalize:
    def test_discrete(self):
        fit_up = _weld_milestones()[0]
        assert normalize_milestone_value(fit_up, True) == 100.0
        assert normalize_milestone_value(fit_up, False) == 0.0

    def test_partial(self):
        fabricate = _threaded_milestones()[0]
        assert normalize_milestone_value(fabricate, 42.5) == 42.5


class TestValidateMilestoneUpdate:
    def test_unknown_milestone(self):
        with pytest.raises(ValidationError, match='not found'):
            validate_milestone_update(_weld_milestones(), 'Paint', True)

    def test_discrete_needs_boolean(self):
        with pytest.raises(ValidationError, match='Fit-up.*boolean'):
            validate_milestone_update(_weld_milestones(), 'Fit-up', 100)

    def test_partial_needs_number(self):
        with pytest.raises(ValidationError, match='Fabricate.*0-100'):
            validate_milestone_update(_threaded_milestones(), 'Fabricate', True)

    def test_partial_range(self):
        with pytest.raises(ValidationError, match='0-100'):
            validate_milestone_update(_threaded_milestones(), 'Fabricate', 101)
        with pytest.raises(ValidationError, match='0-100'):
            validate_milestone_update(_threaded_milestones(), 'Fabricate', float('nan'))

    def test_welder_required(self):
        with pytest.raises(ValidationError, match='welder must be assigned'):
            validate_milestone_update(_weld_milestones(), 'Weld Complete', True,
                                      welder_assigned=False)

    def test_welder_present(self):
        milestone = validate_milestone_update(_weld_milestones(), 'Weld Complete', True,
                                              welder_assigned=True)
        assert milestone.name == 'Weld Complete'

    def test_unchecking_needs_no_welder(self):
        validate_milestone_update(_weld_milestones(), 'Weld Complete', False,
                                  welder_assigned=False)


class TestRollback:
    def test_is_rollback(self):
        assert is_rollback(100, 0) is True
        assert is_rollback(50, 25) is True
        assert is_rollback(0, 0) is False
        assert is_rollback(None, 100) is False
        assert is_rollback(25, 50) is False

    def test_reason_required(self):
        with pytest.raises(ValidationError, match='rollback reason is required'):
            validate_rollback(None)
        with pytest.raises(ValidationError, match='rollback reason is required'):
            validate_rollback({'reason': ''})

    def test_unknown_reason(self):
        with pytest.raises(ValidationError, match='Unknown rollback reason'):
            validate_rollback({'reason': 'bored'})

    def test_other_needs_details(self):
        with pytest.raises(ValidationError, match='at least 10 characters'):
            validate_rollback({'reason': 'other', 'details': '  short   '})

    def test_metadata(self):
        meta = validate_rollback({'reason': 'qc_rejection', 'details': ' see NCR-12 '})
        assert meta == {
            'rollback_reason': 'qc_rejection',
            'rollback_reason_label': 'QC/QA rejection',
            'rollback_details': 'see NCR-12',
        }

    def test_other_with_details(self):
        meta = validate_rollback({'reason': 'other', 'details': 'Wrong isometric revision'})
        assert meta['rollback_reason_label'] == 'Other (specify)'
