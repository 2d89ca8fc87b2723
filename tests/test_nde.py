"""Tests for recording, updating and clearing NDE results."""
from datetime import date

import pytest

from weldtrack.models import (
    STATUS_ACTIVE, STATUS_ACCEPTED, STATUS_REJECTED,
    WELD_EVENT_NDE_RECORD, WELD_EVENT_NDE_UPDATE, WELD_EVENT_NDE_CLEAR,
)
from weldtrack.services import field_weld_service, nde_service
from weldtrack.services.exceptions import ConflictError, ValidationError

ROLLBACK = {'reason': 'qc_rejection'}


def _record(weld, result, nde_type='RT', **extra):
    data = {'nde_type': nde_type, 'nde_result': result}
    data.update(extra)
    return nde_service.record_nde(weld.id, data, user_id=7)


class TestRecordNDE:
    def test_pass_accepts_weld(self, welded_weld):
        weld = _record(welded_weld, 'PASS', nde_date=date(2026, 3, 5))
        assert weld.status == STATUS_ACCEPTED
        assert weld.nde_date == date(2026, 3, 5)
        assert weld.component.percent_complete == 100.0

    def test_fail_rejects_weld(self, welded_weld):
        weld = _record(welded_weld, 'FAIL')
        assert weld.status == STATUS_REJECTED
        assert weld.component.percent_complete == 100.0

    def test_pending_leaves_progress(self, welded_weld):
        weld = _record(welded_weld, 'PENDING')
        assert weld.status == STATUS_ACTIVE
        assert weld.component.percent_complete == 65.0

    def test_normalizes_case_and_defaults_date(self, welded_weld):
        weld = _record(welded_weld, 'pass', nde_type='ut')
        assert weld.nde_type == 'UT'
        assert weld.nde_result == 'PASS'
        assert weld.nde_date == date.today()

    def test_requires_welder(self, sample_weld):
        with pytest.raises(ConflictError, match='welder must be assigned first'):
            _record(sample_weld, 'PASS')

    def test_only_once(self, welded_weld):
        _record(welded_weld, 'PENDING')
        with pytest.raises(ConflictError, match='already recorded'):
            _record(welded_weld, 'PASS')

    @pytest.mark.parametrize('nde_type,result', [('XR', 'PASS'), ('RT', 'MAYBE'), ('', 'PASS')])
    def test_invalid_values(self, welded_weld, nde_type, result):
        with pytest.raises(ValidationError):
            _record(welded_weld, result, nde_type=nde_type)

    def test_event_logged(self, welded_weld):
        _record(welded_weld, 'FAIL', nde_notes='Porosity at 3 o\'clock')
        event = welded_weld.events.all()[-1]
        assert event.action == WELD_EVENT_NDE_RECORD
        assert event.user_id == 7
        assert event.old_values['nde_result'] is None
        assert event.new_values['nde_result'] == 'FAIL'
        assert event.new_values['status'] == STATUS_REJECTED


class TestUpdateNDE:
    def test_pass_to_fail(self, welded_weld):
        _record(welded_weld, 'PASS')
        weld = nde_service.update_nde(welded_weld.id, {'nde_type': 'RT', 'nde_result': 'FAIL'})
        assert weld.status == STATUS_REJECTED
        assert weld.component.percent_complete == 100.0

    def test_pass_to_pending_reverts_acceptance(self, welded_weld):
        _record(welded_weld, 'PASS')
        weld = nde_service.update_nde(welded_weld.id, {'nde_type': 'RT', 'nde_result': 'PENDING'})
        assert weld.status == STATUS_ACTIVE
        milestones = weld.component.current_milestones
        assert milestones['Fit-up'] == 100.0
        assert milestones['Weld Complete'] == 100.0
        assert milestones['Accepted'] == 0.0
        assert weld.component.percent_complete == 95.0

    def test_pending_to_pass(self, welded_weld):
        _record(welded_weld, 'PENDING')
        weld = nde_service.update_nde(welded_weld.id, {'nde_type': 'RT', 'nde_result': 'PASS'})
        assert weld.status == STATUS_ACCEPTED
        assert weld.events.all()[-1].action == WELD_EVENT_NDE_UPDATE

    def test_nothing_recorded(self, welded_weld):
        with pytest.raises(ConflictError, match='No NDE result to update'):
            nde_service.update_nde(welded_weld.id, {'nde_type': 'RT', 'nde_result': 'PASS'})

    def test_fail_with_repair_is_locked(self, welded_weld):
        _record(welded_weld, 'FAIL')
        field_weld_service.create_repair_weld(welded_weld.id, {})
        with pytest.raises(ConflictError, match='repair weld already exists'):
            nde_service.update_nde(welded_weld.id, {'nde_type': 'RT', 'nde_result': 'PASS'})


class TestClearNDE:
    def test_clear_returns_to_welded(self, welded_weld):
        _record(welded_weld, 'PASS')
        weld = nde_service.clear_nde(welded_weld.id, ROLLBACK)
        assert weld.status == STATUS_ACTIVE
        assert weld.nde_result is None
        assert weld.nde_type is None
        assert weld.nde_date is None
        assert weld.component.percent_complete == 95.0

    def test_event_keeps_rollback_reason(self, welded_weld):
        _record(welded_weld, 'FAIL')
        nde_service.clear_nde(welded_weld.id, {'reason': 'other', 'details': 'Film was mislabelled'})
        event = welded_weld.events.all()[-1]
        assert event.action == WELD_EVENT_NDE_CLEAR
        assert event.details['rollback_reason'] == 'other'
        assert event.details['rollback_details'] == 'Film was mislabelled'
        assert event.old_values['nde_result'] == 'FAIL'

    def test_requires_rollback(self, welded_weld):
        _record(welded_weld, 'PASS')
        with pytest.raises(ValidationError, match='rollback reason is required'):
            nde_service.clear_nde(welded_weld.id, None)

    def test_unknown_reason(self, welded_weld):
        _record(welded_weld, 'PASS')
        with pytest.raises(ValidationError, match='Unknown rollback reason'):
            nde_service.clear_nde(welded_weld.id, {'reason': 'bad_luck'})

    def test_nothing_to_clear(self, welded_weld):
        with pytest.raises(ConflictError, match='No NDE result to clear'):
            nde_service.clear_nde(welded_weld.id, ROLLBACK)

    def test_blocked_by_repair(self, welded_weld):
        _record(welded_weld, 'FAIL')
        field_weld_service.create_repair_weld(welded_weld.id, {})
        with pytest.raises(ConflictError, match='repair weld already exists'):
            nde_service.clear_nde(welded_weld.id, ROLLBACK)
