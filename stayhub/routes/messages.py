from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from sqlalchemy import or_, and_, func, case
from datetime import datetime
from stayhub import db, limiter
from stayhub.models.message import Message
from stayhub.models.user import User
from stayhub.services.notification_service import notification_service
from stayhub.socket_events import push_message
from stayhub.utils.decorators import json_required, validate_json_fields, get_current_user
from stayhub.utils.helpers import (
    create_response, create_error_response, paginate_query, pagination_meta,
    sanitize_input, truncate_text
)

messages_bp = Blueprint('messages', __name__)

MAX_MESSAGE_LENGTH = 5000


def _between(user_a, user_b):
    return or_(
        and_(Message.sender_id == user_a, Message.recipient_id == user_b),
        and_(Message.sender_id == user_b, Message.recipient_id == user_a)
    )


@messages_bp.route('', methods=['POST'])
@jwt_required()
@limiter.limit("30 per minute")
@json_required
@validate_json_fields(['recipient_id', 'message_body'])
def send_message():
    """Send a direct message to another user"""
    user = get_current_user()
    if not user:
        return create_error_response('User not found', 404)

    data = request.get_json()

    recipient_id = data['recipient_id']
    if isinstance(recipient_id, bool) or not isinstance(recipient_id, int):
        return create_error_response('recipient_id must be an integer', 400)

    if recipient_id == user.id:
        return create_error_response('Cannot send a message to yourself', 400)

    recipient = db.session.get(User, recipient_id)
    if not recipient or not recipient.is_active:
        return create_error_response('Recipient not found', 404)

    body = sanitize_input(data['message_body'])
    if not body:
        return create_error_response('Message cannot be empty', 400)
    if len(body) > MAX_MESSAGE_LENGTH:
        return create_error_response(f'Message cannot exceed {MAX_MESSAGE_LENGTH} characters', 400)

    message = Message(sender_id=user.id, recipient_id=recipient.id, message_body=body)
    db.session.add(message)
    db.session.commit()

    push_message(message)
    notification_service.notify_new_message(message)

    return create_response({
        'message': message.to_dict(include_users=True)
    }, 'Message sent', 201)


@messages_bp.route('/conversations', methods=['GET'])
@jwt_required()
def get_conversations():
    """Latest message and unread count per counterpart"""
    user = get_current_user()
    if not user:
        return create_error_response('User not found', 404)

    counterpart = case(
        (Message.sender_id == user.id, Message.recipient_id),
        else_=Message.sender_id
    ).label('counterpart_id')

    latest = db.session.query(
        counterpart,
        func.max(Message.id).label('last_message_id')
    ).filter(
        or_(Message.sender_id == user.id, Message.recipient_id == user.id)
    ).group_by(counterpart).subquery()

    rows = db.session.query(Message, latest.c.counterpart_id).join(
        latest, Message.id == latest.c.last_message_id
    ).order_by(Message.id.desc()).all()

    unread = dict(
        db.session.query(Message.sender_id, func.count(Message.id)).filter(
            Message.recipient_id == user.id,
            Message.read_at.is_(None)
        ).group_by(Message.sender_id).all()
    )

    conversations = []
    for message, counterpart_id in rows:
        other = db.session.get(User, counterpart_id)
        conversations.append({
            'user': {'id': other.id, 'name': other.name},
            'last_message': {
                'id': message.id,
                'sender_id': message.sender_id,
                'preview': truncate_text(message.message_body, 100),
                'sent_at': message.sent_at.isoformat()
            },
            'unread_count': unread.get(counterpart_id, 0)
        })

    return create_response({'conversations': conversations})


@messages_bp.route('/conversations/<int:other_user_id>', methods=['GET'])
@jwt_required()
def get_conversation(other_user_id):
    """Messages exchanged with one user, newest first; marks incoming as read"""
    user = get_current_user()
    if not user:
        return create_error_response('User not found', 404)

    other = db.session.get(User, other_user_id)
    if not other:
        return create_error_response('User not found', 404)

    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 50, type=int)

    query = Message.query.filter(_between(user.id, other.id)).order_by(
        Message.sent_at.desc(), Message.id.desc()
    )
    pagination = paginate_query(query, page, per_page)

    Message.query.filter(
        Message.sender_id == other.id,
        Message.recipient_id == user.id,
        Message.read_at.is_(None)
    ).update({Message.read_at: datetime.utcnow()}, synchronize_session='fetch')
    db.session.commit()

    return create_response({
        'user': {'id': other.id, 'name': other.name},
        'messages': [message.to_dict() for message in pagination['items']],
        'pagination': pagination_meta(pagination)
    })


@messages_bp.route('/unread-count', methods=['GET'])
@jwt_required()
def get_unread_count():
    user = get_current_user()
    if not user:
        return create_error_response('User not found', 404)

    count = Message.query.filter(
        Message.recipient_id == user.id,
        Message.read_at.is_(None)
    ).count()

    return create_response({'unread_count': count})
