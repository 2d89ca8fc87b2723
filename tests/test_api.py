"""Tests for the JSON API blueprints."""
import pytest
from sqlalchemy import inspect as sa_inspect

from weldtrack.services import milestone_service, project_service

STAGE_ONE_SIGNOFFS = {'qc_rep': {'name': 'Q. Inspector', 'date': '2026-04-01'}}


@pytest.fixture()
def weld_json(client, sample_project, sample_drawing):
    response = client.post(f'/api/projects/{sample_project.id}/welds', json={
        'drawing_id': sample_drawing.id,
        'weld_type': 'BW',
        'weld_size': '2"',
        'spec': 'ASME B31.3',
    })
    assert response.status_code == 201
    return response.get_json()


class TestMainRoutes:
    def test_health(self, client):
        response = client.get('/api/health')
        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok'}

    def test_reference(self, client):
        data = client.get('/api/reference').get_json()
        assert data['weld_types']['BW'] == 'Butt Weld'
        assert 'qc_rejection' in data['rollback_reasons']
        assert len(data['workflow_stages']) == 7

    def test_unknown_route(self, client):
        response = client.get('/api/nowhere')
        assert response.status_code == 404
        assert response.get_json() == {'error': 'Not found'}

    def test_method_not_allowed(self, client):
        response = client.put('/api/health')
        assert response.status_code == 405

    def test_template_seeded_on_first_read(self, client):
        data = client.get('/api/templates/field_weld').get_json()
        assert data['version'] == 1
        assert [m['name'] for m in data['milestones']] == ['Fit-up', 'Weld Complete', 'Accepted']

    def test_publish_invalid_template(self, client):
        response = client.post('/api/templates/valve', json={
            'milestones': [{'name': 'Install', 'weight': 50, 'order': 1}],
        })
        assert response.status_code == 422
        assert 'must total 100' in response.get_json()['error']

    def test_publish_non_numeric_weight(self, client):
        response = client.post('/api/templates/valve', json={
            'milestones': [{'name': 'Install', 'weight': 'lots', 'order': 1}],
        })
        assert response.status_code == 422
        assert 'weight must be a number' in response.get_json()['error']

    def test_schema_from_models(self, app, db):
        assert app.extensions['migrate'].db is db
        tables = sa_inspect(db.engine).get_table_names()
        assert {'field_welds', 'manhour_budgets', 'package_workflow_stages'} <= set(tables)


class TestProjectRoutes:
    def test_create_and_fetch(self, client):
        response = client.post('/api/projects', json={'name': 'Tank Farm'},
                               headers={'X-User-Id': '12'})
        assert response.status_code == 201
        project_id = response.get_json()['id']
        assert client.get(f'/api/projects/{project_id}').get_json()['name'] == 'Tank Farm'

    def test_form_errors(self, client):
        response = client.post('/api/projects', json={'description': 'No name'})
        assert response.status_code == 422
        body = response.get_json()
        assert body['error'] == 'Validation failed'
        assert 'name' in body['errors']

    def test_duplicate_conflict(self, client, sample_project):
        response = client.post('/api/projects', json={'name': 'Refinery Unit 200'})
        assert response.status_code == 409
        assert 'already exists' in response.get_json()['error']

    def test_missing_project(self, client, db):
        response = client.get('/api/projects/999')
        assert response.status_code == 404
        assert response.get_json() == {'error': 'Project 999 not found'}

    def test_drawing_number_normalized(self, client, sample_project):
        response = client.post(f'/api/projects/{sample_project.id}/drawings',
                               json={'drawing_no': '  iso  7001 '})
        assert response.status_code == 201
        assert response.get_json()['drawing_no_norm'] == 'ISO 7001'

    def test_drawing_list_paginated(self, client, sample_project, sample_drawing):
        data = client.get(f'/api/projects/{sample_project.id}/drawings?per_page=10').get_json()
        assert data['total'] == 1
        assert data['per_page'] == 10
        assert data['items'][0]['id'] == sample_drawing.id

    def test_areas_include_progress(self, client, sample_project, sample_area, welded_weld):
        areas = client.get(f'/api/projects/{sample_project.id}/areas').get_json()
        assert areas[0]['name'] == 'Area 51'
        assert areas[0]['percent_complete'] == 65.0

    def test_summary(self, client, sample_project, welded_weld):
        data = client.get(f'/api/projects/{sample_project.id}/summary').get_json()
        assert data['project']['name'] == 'Refinery Unit 200'
        assert data['welds']['total'] == 1


class TestMilestoneRoutes:
    @pytest.fixture()
    def valve(self, templates, sample_project, sample_drawing):
        return project_service.create_component(sample_project.id, {
            'component_type': 'valve',
            'identity_key': {'commodity_code': 'GV-2', 'size': '2"'},
            'drawing_id': sample_drawing.id,
        })

    def test_complete_milestone(self, client, valve):
        response = client.post(f'/api/components/{valve.id}/milestones',
                               json={'milestone_name': 'Install', 'value': True})
        assert response.status_code == 200
        assert response.get_json()['percent_complete'] == 60.0

    def test_rollback_needs_reason(self, client, valve):
        milestone_service.update_milestone(valve.id, 'Install', True)
        response = client.post(f'/api/components/{valve.id}/milestones',
                               json={'milestone_name': 'Install', 'value': False})
        assert response.status_code == 422
        assert 'rollback reason is required' in response.get_json()['error']

    def test_rollback_with_reason(self, client, valve):
        milestone_service.update_milestone(valve.id, 'Install', True)
        response = client.post(f'/api/components/{valve.id}/milestones', json={
            'milestone_name': 'Install', 'value': False,
            'rollback': {'reason': 'data_entry_error'},
        })
        assert response.status_code == 200
        history = client.get(f'/api/components/{valve.id}/milestones').get_json()
        assert history[0]['details']['rollback_reason'] == 'data_entry_error'

    def test_value_required(self, client, valve):
        response = client.post(f'/api/components/{valve.id}/milestones',
                               json={'milestone_name': 'Install'})
        assert response.status_code == 422


class TestWeldRoutes:
    def test_create(self, weld_json):
        assert weld_json['weld_number'] == 'W-001'
        assert weld_json['status'] == 'active'
        assert weld_json['percent_complete'] == 0.0
        assert weld_json['xray_percentage'] == 5.0

    def test_invalid_weld_type(self, client, sample_project, sample_drawing, templates):
        response = client.post(f'/api/projects/{sample_project.id}/welds', json={
            'drawing_id': sample_drawing.id, 'weld_type': 'XX',
        })
        assert response.status_code == 422
        assert response.get_json()['error'] == 'Invalid weld type: Must be BW, SW, FW, or TW'

    def test_drawing_required(self, client, sample_project):
        response = client.post(f'/api/projects/{sample_project.id}/welds',
                               json={'weld_type': 'BW'})
        assert response.status_code == 422
        assert 'drawing_id' in response.get_json()['errors']

    def test_unplanned(self, client, sample_project, sample_drawing, templates):
        response = client.post(f'/api/projects/{sample_project.id}/welds/unplanned', json={
            'drawing_id': sample_drawing.id, 'weld_number': 'W-900', 'weld_type': 'SW',
            'weld_size': '1"', 'spec': 'ASME B31.3', 'xray_percentage': 150,
        })
        assert response.status_code == 422
        assert 'Invalid xray_percentage' in response.get_json()['error']

    def test_next_number(self, client, weld_json, sample_project):
        data = client.get(f'/api/projects/{sample_project.id}/welds/next-number').get_json()
        assert data == {'weld_number': 'W-002'}

    def test_filter_list(self, client, weld_json, sample_project):
        url = f'/api/projects/{sample_project.id}/welds'
        assert client.get(url).get_json()['total'] == 1
        assert client.get(f'{url}?is_repair=true').get_json()['total'] == 0

    def test_assign_welder_and_events(self, client, weld_json, sample_welder):
        weld_id = weld_json['id']
        response = client.post(f'/api/welds/{weld_id}/welder', json={
            'welder_id': sample_welder.id, 'date_welded': '2026-03-02',
        }, headers={'X-User-Id': '5'})
        assert response.status_code == 200
        data = response.get_json()
        assert data['welder_stencil'] == 'JD-42'
        assert data['date_welded'] == '2026-03-02'
        assert data['percent_complete'] == 65.0

        events = client.get(f'/api/welds/{weld_id}/events').get_json()
        assert events[0]['action'] == 'assign'
        assert events[0]['user_id'] == 5

    def test_assign_needs_date(self, client, weld_json, sample_welder):
        response = client.post(f'/api/welds/{weld_json["id"]}/welder',
                               json={'welder_id': sample_welder.id})
        assert response.status_code == 422
        assert 'date_welded' in response.get_json()['errors']

    def test_clear_welder_requires_rollback(self, client, welded_weld):
        response = client.delete(f'/api/welds/{welded_weld.id}/welder')
        assert response.status_code == 422
        response = client.delete(f'/api/welds/{welded_weld.id}/welder',
                                 json={'rollback': {'reason': 'incorrect_welder'}})
        assert response.status_code == 200
        assert response.get_json()['welder_id'] is None

    def test_nde_and_repair_flow(self, client, welded_weld):
        response = client.post(f'/api/welds/{welded_weld.id}/nde',
                               json={'nde_type': 'rt', 'nde_result': 'fail',
                                     'nde_date': '2026-03-04'})
        assert response.status_code == 200
        assert response.get_json()['status'] == 'rejected'

        response = client.post(f'/api/welds/{welded_weld.id}/repairs', json={})
        assert response.status_code == 201
        repair = response.get_json()
        assert repair['is_repair'] is True
        assert repair['percent_complete'] == 30.0

        chain = client.get(f'/api/welds/{repair["id"]}/repair-chain').get_json()
        assert chain['original']['id'] == welded_weld.id
        assert chain['repairs'][0]['repair_sequence'] == 1

        response = client.delete(f'/api/welds/{welded_weld.id}/nde',
                                 json={'rollback': {'reason': 'qc_rejection'}})
        assert response.status_code == 409

    def test_repair_of_active_weld(self, client, weld_json):
        response = client.post(f'/api/welds/{weld_json["id"]}/repairs', json={})
        assert response.status_code == 409

    def test_retire(self, client, weld_json):
        url = f'/api/welds/{weld_json["id"]}/retire'
        assert client.post(url, json={'reason': 'short'}).status_code == 422
        response = client.post(url, json={'reason': 'Removed in revision C'})
        assert response.get_json()['is_retired'] is True

    def test_missing_weld(self, client, db):
        response = client.get('/api/welds/404')
        assert response.status_code == 404
        assert response.get_json()['error'] == 'Field weld 404 not found'

    def test_register_welder(self, client, sample_project):
        url = f'/api/projects/{sample_project.id}/welders'
        response = client.post(url, json={'stencil': 'ab-1', 'name': 'A. Brown'})
        assert response.status_code == 201
        assert response.get_json()['stencil'] == 'AB-1'
        assert client.post(url, json={'stencil': 'AB-1', 'name': 'Other'}).status_code == 409
        bad = client.post(url, json={'stencil': 'AB-2', 'name': 'X', 'status': 'retired'})
        assert bad.status_code == 422


class TestPackageRoutes:
    @pytest.fixture()
    def package_json(self, client, sample_project):
        response = client.post(f'/api/projects/{sample_project.id}/packages', json={
            'name': 'TP-100', 'test_type': 'hydrostatic', 'requires_coating': True,
        })
        assert response.status_code == 201
        return response.get_json()

    def test_create(self, package_json):
        assert package_json['requires_coating'] is True
        assert package_json['component_count'] == 0
        assert package_json['certificate_status'] is None

    def test_invalid_test_type(self, client, sample_project):
        response = client.post(f'/api/projects/{sample_project.id}/packages',
                               json={'name': 'TP-1', 'test_type': 'vacuum'})
        assert response.status_code == 422
        assert 'test_type' in response.get_json()['errors']

    def test_assign_drawings(self, client, package_json, sample_weld, sample_drawing):
        url = f'/api/packages/{package_json["id"]}/drawings'
        response = client.post(url, json={'drawing_ids': [sample_drawing.id]})
        assert response.get_json() == {'components_updated': 1}
        assert [d['id'] for d in client.get(url).get_json()] == [sample_drawing.id]
        components = client.get(f'/api/packages/{package_json["id"]}/components').get_json()
        assert components[0]['id'] == sample_weld.component_id

    def test_assign_needs_ids(self, client, package_json):
        response = client.post(f'/api/packages/{package_json["id"]}/drawings',
                               json={'drawing_ids': []})
        assert response.status_code == 422

    def test_delete(self, client, package_json):
        response = client.delete(f'/api/packages/{package_json["id"]}')
        assert response.status_code == 204
        assert client.get(f'/api/packages/{package_json["id"]}').status_code == 404

    def test_certificate_and_workflow(self, client, package_json):
        package_id = package_json['id']
        response = client.put(f'/api/packages/{package_id}/certificate',
                              json={'client': 'Acme', 'submit': True})
        assert response.status_code == 422
        assert 'Test pressure is required' in response.get_json()['details']

        response = client.put(f'/api/packages/{package_id}/certificate', json={
            'test_pressure': 150, 'pressure_unit': 'PSIG', 'test_media': 'Water',
            'temperature': 60, 'temperature_unit': 'F', 'submit': True,
        })
        assert response.status_code == 200
        assert response.get_json()['certificate_number'] == 'PKG-001'

        workflow = client.get(f'/api/packages/{package_id}/workflow').get_json()
        assert workflow['progress']['current_stage'] == 1
        first, second = workflow['stages'][0], workflow['stages'][1]

        response = client.patch(f'/api/packages/{package_id}/workflow/{second["id"]}',
                                json={'status': 'skipped', 'skip_reason': 'Vendor tested'})
        assert response.status_code == 409

        response = client.patch(f'/api/packages/{package_id}/workflow/{first["id"]}', json={
            'status': 'completed',
            'stage_data': {'inspector': 'A. Smith', 'nde_complete': True},
            'signoffs': STAGE_ONE_SIGNOFFS,
        })
        assert response.status_code == 200
        assert response.get_json()['status'] == 'completed'

    def test_stage_payload_shapes(self, client, package_json):
        package_id = package_json['id']
        client.put(f'/api/packages/{package_id}/certificate', json={
            'test_pressure': 150, 'pressure_unit': 'PSIG', 'test_media': 'Water',
            'temperature': 60, 'temperature_unit': 'F', 'submit': True,
        })
        first = client.get(f'/api/packages/{package_id}/workflow').get_json()['stages'][0]
        url = f'/api/packages/{package_id}/workflow/{first["id"]}'

        response = client.patch(url, json={
            'status': 'completed', 'stage_data': 'done', 'signoffs': STAGE_ONE_SIGNOFFS,
        })
        assert response.status_code == 422

        response = client.patch(url, json={
            'status': 'completed', 'stage_data': {'inspector': 'A. Smith'},
            'signoffs': ['qc_rep'],
        })
        assert response.status_code == 422
        assert 'keyed by sign-off type' in response.get_json()['error']

    def test_stage_status_validated(self, client, package_json):
        response = client.patch(f'/api/packages/{package_json["id"]}/workflow/1',
                                json={'status': 'finished'})
        assert response.status_code == 422
