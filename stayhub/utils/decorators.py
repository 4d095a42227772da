from functools import wraps
from flask import request
from flask_jwt_extended import jwt_required, get_jwt_identity
from stayhub import db
from stayhub.models.user import User
from stayhub.utils.helpers import create_error_response


def current_user_id():
    """Integer id of the user behind the current JWT"""
    return int(get_jwt_identity())


def get_current_user():
    """Load the active user behind the current JWT, or None"""
    user = db.session.get(User, current_user_id())
    if not user or not user.is_active:
        return None
    return user


def roles_required(*roles):
    """Decorator to require one of the given roles"""
    def decorator(f):
        @wraps(f)
        @jwt_required()
        def decorated_function(*args, **kwargs):
            user = get_current_user()

            if not user:
                return create_error_response('Authentication required', 401)

            if user.role not in roles:
                return create_error_response(
                    f'{" or ".join(role.capitalize() for role in roles)} privileges required', 403
                )

            return f(*args, **kwargs)
        return decorated_function
    return decorator


admin_required = roles_required('admin')
host_required = roles_required('host', 'admin')
guest_required = roles_required('guest')


def json_required(f):
    """Decorator to require JSON content type"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not request.is_json:
            return create_error_response('Content-Type must be application/json', 400)
        if not isinstance(request.get_json(silent=True), dict):
            return create_error_response('Request body must be a JSON object', 400)
        return f(*args, **kwargs)
    return decorated_function


def validate_json_fields(required_fields):
    """Decorator to validate required JSON fields"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return create_error_response('No JSON data provided', 400)

            missing_fields = [
                field for field in required_fields
                if field not in data or data[field] is None
            ]

            if missing_fields:
                return create_error_response(
                    f'Missing required fields: {", ".join(missing_fields)}', 400
                )

            return f(*args, **kwargs)
        return decorated_function
    return decorator
