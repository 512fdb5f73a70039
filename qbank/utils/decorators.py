from functools import wraps
from flask import jsonify
from flask_jwt_extended import jwt_required, get_jwt


def login_required(f):
    """Any valid token"""
    @wraps(f)
    @jwt_required()
    def decorated_function(*args, **kwargs):
        return f(*args, **kwargs)
    return decorated_function


def role_required(*allowed_roles, message='Access denied. Insufficient permissions.'):
    """Token whose ``user_type`` claim is one of ``allowed_roles``"""
    def decorator(f):
        @wraps(f)
        @jwt_required()
        def decorated_function(*args, **kwargs):
            if get_jwt().get('user_type') not in allowed_roles:
                return jsonify({'error': message}), 403
            return f(*args, **kwargs)

        return decorated_function
    return decorator


admin_required = role_required('admin', message='Access denied. Admin privileges required.')
