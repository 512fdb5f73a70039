from flask import Blueprint

bp = Blueprint('admin', __name__)

from qbank.admin import question_import  # noqa: E402,F401
