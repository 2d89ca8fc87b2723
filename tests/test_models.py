"""Tests for model helpers and serialisation."""
from datetime import date, datetime

from weldtrack.models import AuditLog, Component, normalize_drawing_number
from weldtrack.models.base import isoformat


def test_normalize_drawing_number():
    assert normalize_drawing_number('  p-001 ') == 'P-001'
    assert normalize_drawing_number('iso\t 12   a') == 'ISO 12 A'
    assert normalize_drawing_number(None) == ''


def test_isoformat():
    assert isoformat(date(2026, 3, 2)) == '2026-03-02'
    assert isoformat(datetime(2026, 3, 2, 8, 30)) == '2026-03-02T08:30:00'
    assert isoformat('2026-03-02') == '2026-03-02'
    assert isoformat(None) is None


class TestComponent:
    def test_display_name(self):
        assert Component(identity_key={'weld_number': 'W-7'}).display_name == 'W-7'
        assert Component(identity_key={'spool_id': 'SP-3'}).display_name == 'SP-3'
        support = Component(identity_key={'commodity_code': 'PS-10', 'size': '2"'})
        assert support.display_name == 'PS-10 2"'
        assert Component(id=4, component_type='hose', identity_key={}).display_name == 'hose #4'

    def test_inherits_drawing_metadata(self, sample_weld, sample_drawing):
        component = sample_weld.component
        assert component.area_id == sample_drawing.area_id
        assert component.system_id == sample_drawing.system_id
        assert component.milestones[0].name == 'Fit-up'
        assert component.to_dict()['display_name'] == 'W-001'


class TestFieldWeld:
    def test_labels(self, sample_weld):
        assert sample_weld.weld_type_label == 'Butt Weld'
        assert sample_weld.status_label == 'Active'
        assert sample_weld.status_badge == 'info'

    def test_to_dict(self, welded_weld):
        data = welded_weld.to_dict()
        assert data['welder_stencil'] == 'JD-42'
        assert data['date_welded'] == '2026-03-02'
        assert data['is_repair'] is False
        assert data['current_milestones']['Weld Complete'] == 100.0


def test_audit_log_outside_request(db, sample_project):
    entry = AuditLog.log('create_project', 'project', sample_project.id, 'x')
    db.session.commit()
    assert entry.ip_address is None
    assert entry.action_label == 'Create Project'
