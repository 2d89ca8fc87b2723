"""Field welds, welders, NDE and repairs blueprint."""
from flask import Blueprint

welds_bp = Blueprint('welds', __name__)

from . import routes  # noqa: F401, E402
