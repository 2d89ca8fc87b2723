"""Project structure API: projects, drawings, components, imports and manhours."""
from flask import jsonify, request

from weldtrack.models import Area, System
from weldtrack.services import import_service, manhour_service, project_service, rollup_service
from weldtrack.services.milestone_service import get_milestone_history, update_milestone
from weldtrack.services.exceptions import ValidationError
from weldtrack.utils.api import arg_bool, current_user_id, form_error, json_body, paginate

from . import projects_bp
from .forms import (
    ProjectForm, GroupingForm, DrawingForm, DrawingUpdateForm, ComponentForm, MilestoneForm,
    ManhourBudgetForm,
)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

@projects_bp.route('/projects')
def project_list():
    return jsonify([p.to_dict() for p in project_service.list_projects()])


@projects_bp.route('/projects', methods=['POST'])
def project_create():
    form = ProjectForm()
    if not form.validate():
        return form_error(form)
    project = project_service.create_project(form.submitted(), user_id=current_user_id())
    return jsonify(project.to_dict()), 201


@projects_bp.route('/projects/<int:project_id>')
def project_detail(project_id):
    return jsonify(project_service.get_project(project_id).to_dict())


@projects_bp.route('/projects/<int:project_id>/summary')
def project_summary(project_id):
    project = project_service.get_project(project_id)
    summary = rollup_service.project_summary(project.id)
    summary['project'] = project.to_dict()
    return jsonify(summary)


# ---------------------------------------------------------------------------
# Areas and systems
# ---------------------------------------------------------------------------

def _grouping_list(model, project_id, progress):
    project_service.get_project(project_id)
    items = model.query.filter_by(project_id=project_id).order_by(model.name)
    return jsonify([dict(item.to_dict(), **progress(item.id)) for item in items])


@projects_bp.route('/projects/<int:project_id>/areas')
def area_list(project_id):
    return _grouping_list(Area, project_id, rollup_service.area_progress)


@projects_bp.route('/projects/<int:project_id>/areas', methods=['POST'])
def area_create(project_id):
    form = GroupingForm()
    if not form.validate():
        return form_error(form)
    area = project_service.create_area(project_id, form.submitted())
    return jsonify(area.to_dict()), 201


@projects_bp.route('/projects/<int:project_id>/systems')
def system_list(project_id):
    return _grouping_list(System, project_id, rollup_service.system_progress)


@projects_bp.route('/projects/<int:project_id>/systems', methods=['POST'])
def system_create(project_id):
    form = GroupingForm()
    if not form.validate():
        return form_error(form)
    system = project_service.create_system(project_id, form.submitted())
    return jsonify(system.to_dict()), 201


# ---------------------------------------------------------------------------
# Drawings
# ---------------------------------------------------------------------------

@projects_bp.route('/projects/<int:project_id>/drawings')
def drawing_list(project_id):
    query = project_service.list_drawings(project_id,
                                          include_retired=bool(arg_bool('include_retired')))
    return jsonify(paginate(query))


@projects_bp.route('/projects/<int:project_id>/drawings', methods=['POST'])
def drawing_create(project_id):
    form = DrawingForm()
    if not form.validate():
        return form_error(form)
    drawing = project_service.create_drawing(project_id, form.submitted(),
                                             user_id=current_user_id())
    return jsonify(drawing.to_dict()), 201


@projects_bp.route('/drawings/<int:drawing_id>')
def drawing_detail(drawing_id):
    drawing = project_service.get_drawing(drawing_id)
    data = drawing.to_dict()
    data.update(rollup_service.drawing_progress(drawing.id))
    return jsonify(data)


@projects_bp.route('/drawings/<int:drawing_id>', methods=['PATCH'])
def drawing_update(drawing_id):
    form = DrawingUpdateForm()
    if not form.validate():
        return form_error(form)
    drawing = project_service.update_drawing(drawing_id, form.submitted(),
                                             user_id=current_user_id())
    return jsonify(drawing.to_dict())


# ---------------------------------------------------------------------------
# Components and milestones
# ---------------------------------------------------------------------------

@projects_bp.route('/projects/<int:project_id>/components')
def component_list(project_id):
    filters = {
        'drawing_id': request.args.get('drawing_id', type=int),
        'component_type': request.args.get('component_type'),
        'test_package_id': request.args.get('test_package_id', type=int),
        'include_retired': arg_bool('include_retired'),
    }
    return jsonify(paginate(project_service.list_components(project_id, filters)))


@projects_bp.route('/projects/<int:project_id>/components', methods=['POST'])
def component_create(project_id):
    form = ComponentForm()
    if not form.validate():
        return form_error(form)
    data = form.submitted()
    data['identity_key'] = form.payload.get('identity_key')
    component = project_service.create_component(project_id, data, user_id=current_user_id())
    return jsonify(component.to_dict()), 201


@projects_bp.route('/components/<int:component_id>')
def component_detail(component_id):
    component = project_service.get_component(component_id)
    data = component.to_dict()
    data['milestones'] = [m.to_dict() for m in component.milestones]
    return jsonify(data)


@projects_bp.route('/components/<int:component_id>/milestones')
def milestone_history(component_id):
    return jsonify([e.to_dict() for e in get_milestone_history(component_id)])


@projects_bp.route('/components/<int:component_id>/milestones', methods=['POST'])
def milestone_update(component_id):
    form = MilestoneForm()
    if not form.validate():
        return form_error(form)
    if 'value' not in form.payload:
        raise ValidationError('value is required')
    component = update_milestone(
        component_id,
        form.milestone_name.data,
        form.payload['value'],
        user_id=current_user_id(),
        rollback=form.payload.get('rollback'),
    )
    return jsonify(component.to_dict())


# ---------------------------------------------------------------------------
# Component import
# ---------------------------------------------------------------------------

def _import_rows():
    """Rows and headers from an uploaded ``file`` or a JSON ``rows`` list."""
    upload = request.files.get('file')
    if upload is not None:
        return import_service.read_csv(upload.stream)
    return None, json_body().get('rows')


@projects_bp.route('/projects/<int:project_id>/components/import/validate', methods=['POST'])
def component_import_validate(project_id):
    columns, rows = _import_rows()
    return jsonify(import_service.preview_import(project_id, rows, columns=columns))


@projects_bp.route('/projects/<int:project_id>/components/import', methods=['POST'])
def component_import(project_id):
    columns, rows = _import_rows()
    result = import_service.import_components(project_id, rows, columns=columns,
                                              user_id=current_user_id())
    return jsonify(result), 201


# ---------------------------------------------------------------------------
# Manhours
# ---------------------------------------------------------------------------

@projects_bp.route('/projects/<int:project_id>/manhours')
def manhour_summary(project_id):
    return jsonify(manhour_service.manhour_summary(project_id))


@projects_bp.route('/projects/<int:project_id>/manhours/budgets')
def manhour_budget_list(project_id):
    return jsonify([b.to_dict() for b in manhour_service.list_budgets(project_id)])


@projects_bp.route('/projects/<int:project_id>/manhours/budgets', methods=['POST'])
def manhour_budget_create(project_id):
    form = ManhourBudgetForm()
    if not form.validate():
        return form_error(form)
    budget = manhour_service.create_budget(project_id, form.submitted(), user_id=current_user_id())
    return jsonify(budget.to_dict()), 201


@projects_bp.route('/components/<int:component_id>/manhours')
def component_manhours(component_id):
    component = project_service.get_component(component_id)
    data = manhour_service.component_weight(component).to_dict()
    data['budgeted_manhours'] = component.budgeted_manhours
    return jsonify(data)
