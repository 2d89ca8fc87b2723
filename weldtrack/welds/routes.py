"""Field weld API: welds, welders, welder assignment, NDE and repairs."""
from flask import jsonify, request

from weldtrack.services import field_weld_service, nde_service, welder_service
from weldtrack.utils.api import arg_bool, current_user_id, form_error, json_body, paginate

from . import welds_bp
from .forms import (
    FieldWeldForm, WeldSpecForm, RepairWeldForm, ReassignDrawingForm, RetireForm,
    WelderAssignmentForm, WelderAssignmentUpdateForm, NDEForm, WelderForm,
)


def _weld_response(weld, status=200):
    return jsonify(weld.to_dict()), status


# ---------------------------------------------------------------------------
# Welds
# ---------------------------------------------------------------------------

@welds_bp.route('/projects/<int:project_id>/welds')
def weld_list(project_id):
    filters = {
        'status': request.args.get('status'),
        'drawing_id': request.args.get('drawing_id', type=int),
        'welder_id': request.args.get('welder_id', type=int),
        'test_package_id': request.args.get('test_package_id', type=int),
        'is_repair': arg_bool('is_repair'),
        'is_unplanned': arg_bool('is_unplanned'),
        'include_retired': arg_bool('include_retired'),
    }
    return jsonify(paginate(field_weld_service.list_field_welds(project_id, filters)))


@welds_bp.route('/projects/<int:project_id>/welds', methods=['POST'])
def weld_create(project_id):
    form = FieldWeldForm()
    if not form.validate():
        return form_error(form)
    data = form.submitted()
    weld = field_weld_service.create_field_weld(project_id, data.pop('drawing_id'), data,
                                                user_id=current_user_id())
    return _weld_response(weld, 201)


@welds_bp.route('/projects/<int:project_id>/welds/unplanned', methods=['POST'])
def weld_create_unplanned(project_id):
    form = FieldWeldForm()
    if not form.validate():
        return form_error(form)
    data = form.submitted()
    weld = field_weld_service.create_unplanned_weld(project_id, data.pop('drawing_id'), data,
                                                    user_id=current_user_id())
    return _weld_response(weld, 201)


@welds_bp.route('/projects/<int:project_id>/welds/next-number')
def weld_next_number(project_id):
    return jsonify({'weld_number': field_weld_service.next_weld_number(project_id)})


@welds_bp.route('/welds/<int:weld_id>')
def weld_detail(weld_id):
    weld = field_weld_service.get_field_weld(weld_id)
    data = weld.to_dict()
    data['repair_ids'] = [r.id for r in weld.repairs]
    return jsonify(data)


@welds_bp.route('/welds/<int:weld_id>', methods=['PATCH'])
def weld_update(weld_id):
    form = WeldSpecForm()
    if not form.validate():
        return form_error(form)
    weld = field_weld_service.update_weld_specs(weld_id, form.submitted(),
                                                user_id=current_user_id())
    return _weld_response(weld)


@welds_bp.route('/welds/<int:weld_id>/retire', methods=['POST'])
def weld_retire(weld_id):
    form = RetireForm()
    if not form.validate():
        return form_error(form)
    weld = field_weld_service.retire_weld(weld_id, form.reason.data, user_id=current_user_id())
    return _weld_response(weld)


@welds_bp.route('/welds/<int:weld_id>/drawing', methods=['PUT'])
def weld_reassign_drawing(weld_id):
    form = ReassignDrawingForm()
    if not form.validate():
        return form_error(form)
    weld = field_weld_service.reassign_weld_drawing(weld_id, form.drawing_id.data,
                                                    user_id=current_user_id())
    return _weld_response(weld)


@welds_bp.route('/welds/<int:weld_id>/events')
def weld_events(weld_id):
    weld = field_weld_service.get_field_weld(weld_id)
    return jsonify([e.to_dict() for e in weld.events])


# ---------------------------------------------------------------------------
# Welder assignment
# ---------------------------------------------------------------------------

@welds_bp.route('/welds/<int:weld_id>/welder', methods=['POST'])
def welder_assign(weld_id):
    form = WelderAssignmentForm()
    if not form.validate():
        return form_error(form)
    weld = welder_service.assign_welder(weld_id, form.welder_id.data, form.date_welded.data,
                                        user_id=current_user_id())
    return _weld_response(weld)


@welds_bp.route('/welds/<int:weld_id>/welder', methods=['PATCH'])
def welder_assignment_update(weld_id):
    form = WelderAssignmentUpdateForm()
    if not form.validate():
        return form_error(form)
    weld = welder_service.update_welder_assignment(weld_id, form.welder_id.data,
                                                   form.date_welded.data,
                                                   user_id=current_user_id())
    return _weld_response(weld)


@welds_bp.route('/welds/<int:weld_id>/welder', methods=['DELETE'])
def welder_assignment_clear(weld_id):
    weld = welder_service.clear_welder_assignment(weld_id, json_body().get('rollback'),
                                                  user_id=current_user_id())
    return _weld_response(weld)


# ---------------------------------------------------------------------------
# NDE
# ---------------------------------------------------------------------------

@welds_bp.route('/welds/<int:weld_id>/nde', methods=['POST'])
def nde_record(weld_id):
    form = NDEForm()
    if not form.validate():
        return form_error(form)
    weld = nde_service.record_nde(weld_id, form.data, user_id=current_user_id())
    return _weld_response(weld)


@welds_bp.route('/welds/<int:weld_id>/nde', methods=['PATCH'])
def nde_update(weld_id):
    form = NDEForm()
    if not form.validate():
        return form_error(form)
    weld = nde_service.update_nde(weld_id, form.data, user_id=current_user_id())
    return _weld_response(weld)


@welds_bp.route('/welds/<int:weld_id>/nde', methods=['DELETE'])
def nde_clear(weld_id):
    weld = nde_service.clear_nde(weld_id, json_body().get('rollback'),
                                 user_id=current_user_id())
    return _weld_response(weld)


# ---------------------------------------------------------------------------
# Repairs
# ---------------------------------------------------------------------------

@welds_bp.route('/welds/<int:weld_id>/repairs')
def repair_list(weld_id):
    weld = field_weld_service.get_field_weld(weld_id)
    return jsonify([r.to_dict() for r in weld.repairs])


@welds_bp.route('/welds/<int:weld_id>/repairs', methods=['POST'])
def repair_create(weld_id):
    form = RepairWeldForm()
    if not form.validate():
        return form_error(form)
    repair = field_weld_service.create_repair_weld(weld_id, form.submitted(),
                                                   user_id=current_user_id())
    return _weld_response(repair, 201)


@welds_bp.route('/welds/<int:weld_id>/repair-chain')
def repair_chain(weld_id):
    chain = field_weld_service.get_repair_chain(weld_id)
    return jsonify(field_weld_service.repair_chain_dict(chain))


# ---------------------------------------------------------------------------
# Welders
# ---------------------------------------------------------------------------

@welds_bp.route('/projects/<int:project_id>/welders')
def welder_list(project_id):
    welders = welder_service.list_welders(project_id, status=request.args.get('status'))
    return jsonify([w.to_dict() for w in welders])


@welds_bp.route('/projects/<int:project_id>/welders', methods=['POST'])
def welder_create(project_id):
    form = WelderForm()
    if not form.validate():
        return form_error(form)
    welder = welder_service.create_welder(project_id, form.submitted(),
                                          user_id=current_user_id())
    return jsonify(welder.to_dict()), 201


@welds_bp.route('/welders/<int:welder_id>/verify', methods=['POST'])
def welder_verify(welder_id):
    welder = welder_service.verify_welder(welder_id, user_id=current_user_id())
    return jsonify(welder.to_dict())
