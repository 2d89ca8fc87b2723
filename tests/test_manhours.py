"""Tests for manhour weights and budget distribution."""
import pytest

from weldtrack.services import manhour_service, milestone_service, project_service
from weldtrack.services.exceptions import ValidationError
from weldtrack.services.manhours import (
    BASIS_DIMENSION, BASIS_FIXED, BASIS_LINEAR_FEET,
    calculate_weight, clean_size, distribute_budget, parse_size,
)


class TestParseSize:
    def test_integer(self):
        parsed = parse_size('2')
        assert parsed.diameter == 2.0
        assert parsed.is_reducer is False
        assert parsed.second_diameter is None

    def test_fraction(self):
        assert parse_size('3/4').diameter == 0.75
        assert parse_size('5/2').diameter == 2.5

    def test_reducer_averages(self):
        parsed = parse_size('2X4')
        assert parsed.diameter == 3.0
        assert parsed.is_reducer is True
        assert parsed.second_diameter == 4.0
        assert parse_size('2 x 4').diameter == 3.0
        assert parse_size('1/2X3/4').diameter == 0.625

    def test_special_words(self):
        assert parse_size('Half').diameter == 0.5
        assert parse_size('nosize').diameter is None
        assert parse_size('  ').diameter is None

    def test_decimal_accepted(self):
        assert parse_size('2.5').diameter == 2.5

    @pytest.mark.parametrize('raw', ['ABC', '2A4', '1/2/3', '2X4X6', 'AXB', '-2', '1/0'])
    def test_unparseable(self, raw):
        assert parse_size(raw).diameter is None

    def test_raw_preserved(self):
        assert parse_size(' 2X4 ').raw == ' 2X4 '


class TestCleanSize:
    def test_inch_marks_and_mixed_numbers(self):
        assert clean_size('2"') == '2'
        assert clean_size('1 1/2"') == '1.5'
        assert clean_size('1 / 2') == '1/2'
        assert clean_size('2 x 4') == '2X4'

    def test_malformed_reducer(self):
        assert clean_size('2X') is None
        assert clean_size('X4') is None


class TestCalculateWeight:
    def test_standard_component(self):
        result = calculate_weight({'size': '4"'}, 'valve')
        assert result.weight == 8.0
        assert result.basis == BASIS_DIMENSION
        assert result.metadata == {'diameter': 4.0}

    def test_numeric_size(self):
        assert calculate_weight({'size': 4}, 'valve').weight == 8.0

    def test_reducer(self):
        result = calculate_weight({'size': '2X6'}, 'fitting')
        assert result.weight == 8.0
        assert result.metadata == {'diameter1': 2.0, 'diameter2': 6.0, 'average_diameter': 4.0}

    def test_threaded_pipe_footage(self):
        result = calculate_weight({'size': '4', 'linear_feet': 50}, 'threaded_pipe')
        assert result.basis == BASIS_LINEAR_FEET
        assert result.weight == pytest.approx(40.0)

    def test_footage_ignored_for_valves(self):
        assert calculate_weight({'size': '4', 'linear_feet': 50}, 'valve').weight == 8.0

    def test_invalid_footage_falls_back_to_diameter(self):
        result = calculate_weight({'size': '4', 'linear_feet': 'lots'}, 'threaded_pipe')
        assert result.weight == 8.0
        assert result.basis == BASIS_DIMENSION
        assert result.metadata['reason'] == 'invalid_linear_feet'

    def test_mixed_number(self):
        assert calculate_weight({'size': '1 1/2"'}, 'valve').weight == pytest.approx(1.5 ** 1.5)

    def test_missing_size(self):
        result = calculate_weight({'commodity_code': 'GV-2'}, 'valve')
        assert result.weight == 0.5
        assert result.basis == BASIS_FIXED
        assert result.metadata == {'reason': 'no_size_field'}

    def test_threaded_fallback_is_heavier(self):
        assert calculate_weight({}, 'threaded_pipe').weight == 1.0

    @pytest.mark.parametrize('size, reason', [
        (None, 'null_size'),
        ('', 'empty_size'),
        (['2'], 'invalid_size_type'),
        ('ABC', 'unparseable_size'),
        ('2X', 'unparseable_size'),
        ('0', 'unparseable_size'),
    ])
    def test_fixed_reasons(self, size, reason):
        result = calculate_weight({'size': size}, 'valve')
        assert result.weight == 0.5
        assert result.metadata['reason'] == reason


class TestDistributeBudget:
    def test_proportional(self):
        assert distribute_budget({'a': 3.0, 'b': 1.0}, 100) == {'a': 75.0, 'b': 25.0}

    def test_rounded_to_four_places(self):
        shares = distribute_budget({'a': 1.0, 'b': 1.0, 'c': 1.0}, 100)
        assert shares['a'] == 33.3333

    def test_zero_weight(self):
        with pytest.raises(ValueError):
            distribute_budget({'a': 0.0}, 100)


@pytest.fixture()
def budget_components(templates, sample_project):
    """Two 4" valves (weight 8 each) and a spool without a size (0.5)."""
    return [
        project_service.create_component(sample_project.id, {
            'component_type': 'valve', 'identity_key': {'commodity_code': code, 'size': '4"'},
        })
        for code in ('GV-4', 'GV-5')
    ] + [
        project_service.create_component(sample_project.id, {
            'component_type': 'spool', 'identity_key': {'spool_id': 'SP-1'},
        })
    ]


class TestCreateBudget:
    def test_distributes_by_weight(self, sample_project, budget_components):
        budget = manhour_service.create_budget(sample_project.id, {
            'total_budgeted_manhours': 330, 'revision_reason': 'Initial estimate',
        }, user_id=3)
        first, second, spool = budget_components
        assert budget.version_number == 1
        assert budget.is_active is True
        assert first.manhour_weight == 8.0
        assert first.budgeted_manhours == 160.0
        assert second.budgeted_manhours == 160.0
        assert spool.budgeted_manhours == 10.0
        assert budget.distribution['components_with_warnings'] == 1
        assert budget.distribution['warnings'][0]['component_id'] == spool.id

    def test_new_version_replaces_active(self, sample_project, budget_components):
        manhour_service.create_budget(sample_project.id, {
            'total_budgeted_manhours': 330, 'revision_reason': 'Initial estimate',
        })
        manhour_service.create_budget(sample_project.id, {
            'total_budgeted_manhours': 660, 'revision_reason': 'Scope growth',
        })
        budgets = manhour_service.list_budgets(sample_project.id)
        assert [b.version_number for b in budgets] == [2, 1]
        assert [b.is_active for b in budgets] == [True, False]
        assert budget_components[0].budgeted_manhours == 320.0

    def test_retired_components_excluded(self, sample_project, budget_components):
        budget_components[2].is_retired = True
        manhour_service.create_budget(sample_project.id, {
            'total_budgeted_manhours': 100, 'revision_reason': 'Initial estimate',
        })
        assert budget_components[0].budgeted_manhours == 50.0
        assert budget_components[2].budgeted_manhours is None

    @pytest.mark.parametrize('total, message', [
        (0, 'greater than 0'),
        (-5, 'greater than 0'),
        ('lots', 'must be a number'),
        (None, 'is required'),
    ])
    def test_total_validated(self, sample_project, budget_components, total, message):
        with pytest.raises(ValidationError, match=message):
            manhour_service.create_budget(sample_project.id, {
                'total_budgeted_manhours': total, 'revision_reason': 'Initial estimate',
            })

    def test_reason_required(self, sample_project, budget_components):
        with pytest.raises(ValidationError, match='Revision reason is required'):
            manhour_service.create_budget(sample_project.id, {'total_budgeted_manhours': 100})

    def test_needs_components(self, sample_project):
        with pytest.raises(ValidationError, match='no active components'):
            manhour_service.create_budget(sample_project.id, {
                'total_budgeted_manhours': 100, 'revision_reason': 'Initial estimate',
            })

    def test_field_weld_sized_by_weld_size(self, sample_weld):
        result = manhour_service.component_weight(sample_weld.component)
        assert result.basis == BASIS_DIMENSION
        assert result.metadata == {'diameter': 2.0}


class TestManhourSummary:
    def test_without_budget(self, sample_project):
        summary = manhour_service.manhour_summary(sample_project.id)
        assert summary['budget'] is None
        assert summary['earned_manhours'] == 0.0
        assert summary['percent_earned'] == 0.0

    def test_earned_follows_progress(self, sample_project, budget_components):
        manhour_service.create_budget(sample_project.id, {
            'total_budgeted_manhours': 330, 'revision_reason': 'Initial estimate',
        })
        milestone_service.update_milestone(budget_components[0].id, 'Install', True)
        summary = manhour_service.manhour_summary(sample_project.id)
        assert summary['budget']['version_number'] == 1
        assert summary['budgeted_manhours'] == 330.0
        assert summary['earned_manhours'] == 96.0
        assert summary['percent_earned'] == 29.09


class TestManhourRoutes:
    def test_publish_and_read(self, client, sample_project, budget_components):
        url = f'/api/projects/{sample_project.id}/manhours'
        response = client.post(f'{url}/budgets', json={
            'total_budgeted_manhours': 330, 'revision_reason': 'Initial estimate',
            'effective_date': '2026-05-01',
        })
        assert response.status_code == 201
        assert response.get_json()['effective_date'] == '2026-05-01'

        summary = client.get(url).get_json()
        assert summary['budgeted_manhours'] == 330.0
        assert len(client.get(f'{url}/budgets').get_json()) == 1

        detail = client.get(f'/api/components/{budget_components[0].id}/manhours').get_json()
        assert detail['weight'] == 8.0
        assert detail['budgeted_manhours'] == 160.0

    def test_non_numeric_total(self, client, sample_project, budget_components):
        response = client.post(f'/api/projects/{sample_project.id}/manhours/budgets', json={
            'total_budgeted_manhours': 'lots', 'revision_reason': 'Initial estimate',
        })
        assert response.status_code == 422
        assert 'total_budgeted_manhours' in response.get_json()['errors']
