from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, create_access_token
from stayhub import db, limiter
from stayhub.models.user import User
from stayhub.utils.decorators import json_required, validate_json_fields, get_current_user
from stayhub.utils.validators import validate_email_format, validate_password_strength, validate_phone_number
from stayhub.utils.helpers import create_response, create_error_response, sanitize_input
from stayhub.services.email_service import send_welcome_email

auth_bp = Blueprint('auth', __name__)

SELF_REGISTER_ROLES = ('guest', 'host')


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("5 per minute")
@json_required
@validate_json_fields(['email', 'password', 'name'])
def register():
    """Register a new guest or host"""
    data = request.get_json()

    email = str(data['email']).lower().strip()
    password = str(data['password'])
    name = sanitize_input(data['name'])
    phone = sanitize_input(data.get('phone'), 20)
    role = data.get('role', 'guest')

    if not validate_email_format(email):
        return create_error_response('Invalid email format', 400)

    is_valid, message = validate_password_strength(password)
    if not is_valid:
        return create_error_response(message, 400)

    if len(name) < 2 or len(name) > 100:
        return create_error_response('Name must be between 2 and 100 characters', 400)

    if phone and not validate_phone_number(phone):
        return create_error_response('Invalid phone number format', 400)

    if role not in SELF_REGISTER_ROLES:
        return create_error_response('Role must be guest or host', 400)

    if User.query.filter_by(email=email).first():
        return create_error_response('User with this email already exists', 409)

    user = User(
        email=email,
        name=name,
        phone=phone or None,
        role=role
    )
    user.set_password(password)

    db.session.add(user)
    db.session.commit()

    current_app.logger.info(f"Registered {role} {user.id}")
    send_welcome_email(user)

    return create_response({
        'user': user.to_dict(include_private=True)
    }, 'User registered successfully', 201)


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
@json_required
@validate_json_fields(['email', 'password'])
def login():
    """Login user"""
    data = request.get_json()

    email = str(data['email']).lower().strip()
    password = str(data['password'])

    user = User.query.filter_by(email=email).first()

    if not user or not user.check_password(password):
        return create_error_response('Invalid email or password', 401)

    if not user.is_active:
        return create_error_response('Account has been deactivated', 401)

    access_token, refresh_token = user.generate_tokens()

    return create_response({
        'access_token': access_token,
        'refresh_token': refresh_token,
        'user': user.to_dict(include_private=True)
    })


@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    """Refresh access token"""
    user = get_current_user()

    if not user:
        return create_error_response('Invalid user', 401)

    access_token = create_access_token(identity=str(user.id), additional_claims={'role': user.role})

    return create_response({
        'access_token': access_token
    })


@auth_bp.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    """Logout user (client-side token invalidation)"""
    return create_response(message='Logged out successfully')


@auth_bp.route('/change-password', methods=['POST'])
@jwt_required()
@json_required
@validate_json_fields(['current_password', 'new_password'])
def change_password():
    """Change password for authenticated user"""
    data = request.get_json()

    user = get_current_user()
    if not user:
        return create_error_response('User not found', 404)

    if not user.check_password(str(data['current_password'])):
        return create_error_response('Current password is incorrect', 400)

    is_valid, message = validate_password_strength(str(data['new_password']))
    if not is_valid:
        return create_error_response(message, 400)

    user.set_password(str(data['new_password']))
    db.session.commit()

    return create_response(message='Password changed successfully')


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_me():
    """Get current user profile"""
    user = get_current_user()

    if not user:
        return create_error_response('User not found', 404)

    return create_response({
        'user': user.to_dict(include_private=True)
    })
