from flask import Blueprint

bp = Blueprint('study', __name__)

from qbank.study import routes  # noqa: E402,F401
