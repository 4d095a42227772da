from flask_socketio import emit, join_room, disconnect
from flask_jwt_extended import decode_token
from jwt.exceptions import PyJWTError
from stayhub import socketio, db
from stayhub.models import User


def user_room(user_id):
    return f'user_{user_id}'


@socketio.on('connect')
def handle_connect(auth):
    """Authenticate the socket with a JWT and join the user's private room"""
    token = auth.get('token') if auth else None
    if not token:
        disconnect()
        return

    try:
        decoded_token = decode_token(token)
    except PyJWTError:
        disconnect()
        return

    user = db.session.get(User, int(decoded_token['sub']))
    if not user or not user.is_active:
        disconnect()
        return

    join_room(user_room(user.id))
    emit('connected', {'message': 'Connected successfully', 'user_id': user.id})


def push_message(message):
    """Deliver a new direct message to the recipient's open sockets"""
    socketio.emit('new_message', message.to_dict(), to=user_room(message.recipient_id))
