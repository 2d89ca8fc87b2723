"""Test packages, certificates and acceptance workflow blueprint."""
from flask import Blueprint

packages_bp = Blueprint('packages', __name__)

from . import routes  # noqa: F401, E402
