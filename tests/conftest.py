"""Shared test fixtures for the weld tracking service."""
from datetime import date

import pytest

from weldtrack import create_app
from weldtrack.extensions import db as _db
from weldtrack.services import project_service, welder_service, field_weld_service
from weldtrack.services.seed_data import seed_progress_templates


@pytest.fixture(scope='session')
def app():
    """Create application for the test session."""
    app = create_app('testing')
    yield app


@pytest.fixture()
def db(app):
    """Per-test database: create tables, yield, then clean up."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture()
def client(app, db):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def templates(db):
    """Standard progress templates installed."""
    seed_progress_templates()


@pytest.fixture()
def sample_project(db):
    return project_service.create_project({'name': 'Refinery Unit 200'})


@pytest.fixture()
def sample_area(sample_project):
    return project_service.create_area(sample_project.id, {'name': 'Area 51'})


@pytest.fixture()
def sample_system(sample_project):
    return project_service.create_system(sample_project.id, {'name': 'Cooling Water'})


@pytest.fixture()
def sample_drawing(sample_project, sample_area, sample_system):
    """Drawing in an area and system."""
    return project_service.create_drawing(sample_project.id, {
        'drawing_no': ' p-001 ',
        'title': 'Cooling water header',
        'area_id': sample_area.id,
        'system_id': sample_system.id,
    })


@pytest.fixture()
def sample_welder(sample_project):
    return welder_service.create_welder(sample_project.id, {
        'stencil': 'jd-42',
        'name': 'J. Doe',
    })


@pytest.fixture()
def sample_weld(templates, sample_project, sample_drawing):
    """Planned butt weld W-001 with nothing recorded."""
    return field_weld_service.create_field_weld(sample_project.id, sample_drawing.id, {
        'weld_number': 'W-001',
        'weld_type': 'BW',
        'weld_size': '2"',
        'schedule': 'SCH40',
        'base_metal': 'CS',
        'spec': 'ASME B31.3',
    })


@pytest.fixture()
def welded_weld(sample_weld, sample_welder):
    """W-001 with a welder assigned; Weld Complete counts 65%."""
    return welder_service.assign_welder(sample_weld.id, sample_welder.id, date(2026, 3, 2))
