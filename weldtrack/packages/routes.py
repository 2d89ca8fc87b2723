"""Test package API: packages, membership, certificate and workflow."""
from flask import jsonify

from weldtrack.services import package_service, workflow_service
from weldtrack.utils.api import current_user_id, form_error

from . import packages_bp
from .forms import (
    PackageForm, PackageUpdateForm, DrawingAssignmentForm, ComponentAssignmentForm,
    CertificateForm, StageUpdateForm,
)


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------

@packages_bp.route('/projects/<int:project_id>/packages')
def package_list(project_id):
    return jsonify(package_service.list_packages(project_id))


@packages_bp.route('/projects/<int:project_id>/packages', methods=['POST'])
def package_create(project_id):
    form = PackageForm()
    if not form.validate():
        return form_error(form)
    package = package_service.create_package(project_id, form.submitted(),
                                             user_id=current_user_id())
    return jsonify(package_service.package_dict(package)), 201


@packages_bp.route('/packages/<int:package_id>')
def package_detail(package_id):
    package = package_service.get_package(package_id)
    return jsonify(package_service.package_dict(package))


@packages_bp.route('/packages/<int:package_id>', methods=['PATCH'])
def package_update(package_id):
    form = PackageUpdateForm()
    if not form.validate():
        return form_error(form)
    package = package_service.update_package(package_id, form.submitted(),
                                             user_id=current_user_id())
    return jsonify(package_service.package_dict(package))


@packages_bp.route('/packages/<int:package_id>', methods=['DELETE'])
def package_delete(package_id):
    package_service.delete_package(package_id, user_id=current_user_id())
    return '', 204


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------

@packages_bp.route('/packages/<int:package_id>/drawings')
def package_drawings(package_id):
    package = package_service.get_package(package_id)
    return jsonify([d.to_dict() for d in package.drawings])


@packages_bp.route('/packages/<int:package_id>/drawings', methods=['POST'])
def package_assign_drawings(package_id):
    form = DrawingAssignmentForm()
    if not form.validate():
        return form_error(form)
    updated = package_service.assign_drawings(package_id, form.drawing_ids.data,
                                              user_id=current_user_id())
    return jsonify({'components_updated': updated})


@packages_bp.route('/packages/<int:package_id>/drawings/<int:drawing_id>', methods=['DELETE'])
def package_unassign_drawing(package_id, drawing_id):
    updated = package_service.unassign_drawing(package_id, drawing_id,
                                               user_id=current_user_id())
    return jsonify({'components_updated': updated})


@packages_bp.route('/packages/<int:package_id>/components')
def package_components(package_id):
    components = package_service.get_package_components(package_id)
    return jsonify([c.to_dict() for c in components])


@packages_bp.route('/packages/<int:package_id>/components', methods=['POST'])
def package_assign_components(package_id):
    form = ComponentAssignmentForm()
    if not form.validate():
        return form_error(form)
    components = package_service.assign_components(package_id, form.component_ids.data,
                                                   user_id=current_user_id())
    return jsonify([c.to_dict() for c in components])


# ---------------------------------------------------------------------------
# Certificate and workflow
# ---------------------------------------------------------------------------

@packages_bp.route('/packages/<int:package_id>/certificate')
def certificate_detail(package_id):
    package = package_service.get_package(package_id)
    return jsonify(package.certificate.to_dict() if package.certificate else None)


@packages_bp.route('/packages/<int:package_id>/certificate', methods=['PUT'])
def certificate_save(package_id):
    form = CertificateForm()
    if not form.validate():
        return form_error(form)
    data = form.submitted()
    submit = bool(data.pop('submit', False))
    cert = package_service.save_certificate(package_id, data, submit=submit,
                                            user_id=current_user_id())
    return jsonify(cert.to_dict())


@packages_bp.route('/packages/<int:package_id>/workflow')
def workflow_detail(package_id):
    return jsonify(workflow_service.get_package_workflow(package_id))


@packages_bp.route('/packages/<int:package_id>/workflow/<int:stage_id>', methods=['PATCH'])
def workflow_stage_update(package_id, stage_id):
    form = StageUpdateForm()
    if not form.validate():
        return form_error(form)
    data = form.submitted()
    data['stage_data'] = form.payload.get('stage_data')
    data['signoffs'] = form.payload.get('signoffs')
    stage = workflow_service.update_stage(stage_id, data, package_id=package_id,
                                          user_id=current_user_id())
    return jsonify(stage.to_dict())
