"""Helpers shared by the API blueprints."""
from flask import current_app, jsonify, request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict


def _form_value(value):
    if isinstance(value, bool):
        return 'y' if value else ''
    return str(value)


class JSONForm(FlaskForm):
    """FlaskForm populated from the JSON request body.

    Scalars are posted as strings the way a browser form would send them.
    Nulls and nested objects are left out of the form data; nested objects
    stay reachable through ``payload``. Lists are posted as indexed keys
    (``name-0``, ``name-1``...) so they bind to a FieldList.
    """

    class Meta:
        csrf = False

    def __init__(self, payload=None, **kwargs):
        if payload is None:
            payload = json_body()
        self.payload = payload
        formdata = MultiDict()
        for key, value in payload.items():
            if value is None or isinstance(value, dict):
                continue
            if isinstance(value, list):
                for index, item in enumerate(value):
                    formdata.add(f'{key}-{index}', _form_value(item))
            else:
                formdata.add(key, _form_value(value))
        super().__init__(formdata=formdata, **kwargs)

    def submitted(self):
        """Field data for the keys the client actually sent."""
        return {name: field.data for name, field in self._fields.items()
                if name in self.payload}


def form_error(form):
    return jsonify({'error': 'Validation failed', 'errors': form.errors}), 422


def json_body():
    """Request body as a dict; anything else reads as empty."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def current_user_id():
    """Acting user from the ``X-User-Id`` header, if any."""
    return request.headers.get('X-User-Id', type=int)


def arg_bool(name):
    value = request.args.get(name)
    if value is None:
        return None
    return value.lower() in ('1', 'true', 'yes')


def paginate(query, default_per_page=None):
    """Apply pagination to a query. Returns dict with items + metadata."""
    default_per_page = default_per_page or current_app.config['API_DEFAULT_PAGE_SIZE']
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', default_per_page, type=int)
    per_page = min(per_page, current_app.config['API_MAX_PAGE_SIZE'])

    pagination = query.paginate(page=page, per_page=per_page, error_out=False)
    return {
        'items': [item.to_dict() for item in pagination.items],
        'total': pagination.total,
        'page': pagination.page,
        'per_page': pagination.per_page,
        'pages': pagination.pages,
    }
