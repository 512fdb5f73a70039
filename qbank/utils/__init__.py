from .decorators import login_required, role_required, admin_required
from .validators import validate_required_fields, sanitize_string, validate_upload
from .init_db import initialize_database

__all__ = [
    'login_required',
    'role_required',
    'admin_required',
    'validate_required_fields',
    'sanitize_string',
    'validate_upload',
    'initialize_database'
]
