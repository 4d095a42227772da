from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required
from stayhub import db
from stayhub.models.user import User
from stayhub.services.notification_service import notification_service
from stayhub.utils.decorators import json_required, validate_json_fields, admin_required, get_current_user, current_user_id
from stayhub.utils.validators import validate_phone_number, validate_user_role
from stayhub.utils.helpers import (
    create_response, create_error_response, paginate_query, pagination_meta, sanitize_input
)

users_bp = Blueprint('users', __name__)


@users_bp.route('/profile', methods=['GET'])
@jwt_required()
def get_profile():
    """Get current user profile"""
    user = get_current_user()

    if not user:
        return create_error_response('User not found', 404)

    return create_response({
        'user': user.to_dict(include_private=True)
    })


@users_bp.route('/profile', methods=['PUT'])
@jwt_required()
@json_required
def update_profile():
    """Update current user profile"""
    user = get_current_user()

    if not user:
        return create_error_response('User not found', 404)

    data = request.get_json()

    if 'name' in data:
        name = sanitize_input(data['name'], 100)
        if len(name) < 2:
            return create_error_response('Name must be at least 2 characters', 400)
        user.name = name

    if 'phone' in data:
        phone = sanitize_input(data['phone'], 20)
        if phone and not validate_phone_number(phone):
            return create_error_response('Invalid phone number format', 400)
        user.phone = phone or None

    if 'bio' in data:
        user.bio = sanitize_input(data['bio'], 1000)

    db.session.commit()

    return create_response({
        'user': user.to_dict(include_private=True)
    }, 'Profile updated successfully')


@users_bp.route('/<int:user_id>', methods=['GET'])
def get_user(user_id):
    """Public profile of a user"""
    user = db.session.get(User, user_id)

    if not user or not user.is_active:
        return create_error_response('User not found', 404)

    data = user.to_dict()
    if user.role == 'host':
        data['properties'] = [p.to_dict() for p in user.properties if p.is_active]

    return create_response({'user': data})


@users_bp.route('/notifications', methods=['GET'])
@jwt_required()
def get_notifications():
    """Get the current user's notification feed"""
    limit = min(max(request.args.get('limit', 20, type=int), 1), 100)
    user_id = current_user_id()

    return create_response({
        'notifications': notification_service.get_user_notifications(user_id, limit),
        'unread_count': notification_service.get_unread_count(user_id)
    })


@users_bp.route('/notifications/<notification_id>/read', methods=['POST'])
@jwt_required()
def mark_notification_read(notification_id):
    if not notification_service.mark_notification_read(current_user_id(), notification_id):
        return create_error_response('Notification not found', 404)

    return create_response(message='Notification marked as read')


@users_bp.route('/notifications/read-all', methods=['POST'])
@jwt_required()
def mark_all_notifications_read():
    count = notification_service.mark_all_notifications_read(current_user_id())

    return create_response({'updated': count})


# Admin

@users_bp.route('', methods=['GET'])
@admin_required
def list_users():
    """List users, optionally filtered by role"""
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 20, type=int)
    role = request.args.get('role')

    query = User.query
    if role:
        if not validate_user_role(role):
            return create_error_response('Invalid role', 400)
        query = query.filter_by(role=role)

    search = request.args.get('query', '').strip()
    if search:
        query = query.filter(
            User.name.ilike(f'%{search}%') | User.email.ilike(f'%{search}%')
        )

    pagination = paginate_query(query.order_by(User.created_at.desc()), page, per_page)

    return create_response({
        'users': [user.to_dict(include_private=True) for user in pagination['items']],
        'pagination': pagination_meta(pagination)
    })


@users_bp.route('/<int:user_id>/role', methods=['PUT'])
@admin_required
@json_required
@validate_json_fields(['role'])
def set_user_role(user_id):
    """Change a user's role"""
    user = db.session.get(User, user_id)
    if not user:
        return create_error_response('User not found', 404)

    role = request.get_json()['role']
    if not validate_user_role(role):
        return create_error_response('Invalid role', 400)

    if user.id == current_user_id() and role != 'admin':
        return create_error_response('Admins cannot demote themselves', 400)

    user.role = role
    db.session.commit()
    current_app.logger.info(f"User {user.id} role set to {role} by admin {current_user_id()}")

    return create_response({'user': user.to_dict(include_private=True)}, 'Role updated successfully')


@users_bp.route('/<int:user_id>/status', methods=['PUT'])
@admin_required
@json_required
@validate_json_fields(['is_active'])
def set_user_status(user_id):
    """Activate or deactivate a user"""
    user = db.session.get(User, user_id)
    if not user:
        return create_error_response('User not found', 404)

    if user.id == current_user_id():
        return create_error_response('Admins cannot deactivate themselves', 400)

    user.is_active = bool(request.get_json()['is_active'])
    db.session.commit()
    current_app.logger.info(f"User {user.id} is_active={user.is_active} set by admin {current_user_id()}")

    return create_response({'user': user.to_dict(include_private=True)}, 'Status updated successfully')
