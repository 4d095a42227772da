from flask import current_app
from redis.exceptions import RedisError
from datetime import datetime
import json
import uuid

from stayhub import redis_client, socketio

MAX_NOTIFICATIONS = 100
NOTIFICATION_TTL = 30 * 24 * 60 * 60  # 30 days


class NotificationService:
    def __init__(self, client=None):
        self.redis_client = client or redis_client

    @staticmethod
    def _key(user_id):
        return f"notifications:{user_id}"

    def _enabled(self):
        return current_app.config.get('NOTIFICATIONS_ENABLED', False)

    def send_notification(self, user_id, title, body, data=None):
        """Store a notification in the user's feed and push it over Socket.IO"""
        notification = {
            'id': f"notif_{uuid.uuid4().hex}",
            'user_id': user_id,
            'title': title,
            'body': body,
            'data': data or {},
            'timestamp': datetime.utcnow().isoformat(),
            'read': False
        }

        if not self._enabled():
            return notification

        key = self._key(user_id)
        try:
            pipe = self.redis_client.pipeline()
            pipe.lpush(key, json.dumps(notification))
            pipe.ltrim(key, 0, MAX_NOTIFICATIONS - 1)
            pipe.expire(key, NOTIFICATION_TTL)
            pipe.execute()
        except RedisError as e:
            current_app.logger.warning(f"Failed to store notification for user {user_id}: {e}")

        socketio.emit('notification', notification, to=f'user_{user_id}')
        return notification

    def get_user_notifications(self, user_id, limit=20):
        """Get user's notifications"""
        if not self._enabled():
            return []
        try:
            notifications = self.redis_client.lrange(self._key(user_id), 0, limit - 1)
        except RedisError as e:
            current_app.logger.warning(f"Failed to read notifications for user {user_id}: {e}")
            return []
        return [json.loads(notif) for notif in notifications]

    def mark_notification_read(self, user_id, notification_id):
        """Mark notification as read"""
        if not self._enabled():
            return False
        key = self._key(user_id)
        try:
            notifications = self.redis_client.lrange(key, 0, -1)
            for i, notif_data in enumerate(notifications):
                notif = json.loads(notif_data)
                if notif['id'] == notification_id:
                    notif['read'] = True
                    self.redis_client.lset(key, i, json.dumps(notif))
                    return True
        except RedisError as e:
            current_app.logger.warning(f"Failed to update notification for user {user_id}: {e}")
        return False

    def mark_all_notifications_read(self, user_id):
        """Mark all notifications as read"""
        if not self._enabled():
            return 0
        key = self._key(user_id)
        try:
            notifications = self.redis_client.lrange(key, 0, -1)
            for i, notif_data in enumerate(notifications):
                notif = json.loads(notif_data)
                notif['read'] = True
                self.redis_client.lset(key, i, json.dumps(notif))
        except RedisError as e:
            current_app.logger.warning(f"Failed to update notifications for user {user_id}: {e}")
            return 0
        return len(notifications)

    def get_unread_count(self, user_id):
        """Get count of unread notifications"""
        notifications = self.get_user_notifications(user_id, limit=MAX_NOTIFICATIONS)
        return sum(1 for notif in notifications if not notif['read'])

    def notify_new_booking(self, booking):
        """Notify the host of a new booking request"""
        self.send_notification(
            user_id=booking.property.host_id,
            title="New Booking Request",
            body=f"{booking.user.name} requested {booking.property.title} "
                 f"from {booking.start_date.isoformat()} to {booking.end_date.isoformat()}",
            data={
                'type': 'new_booking',
                'booking_id': booking.id,
                'property_id': booking.property_id,
                'user_id': booking.user_id
            }
        )

    def notify_booking_confirmed(self, booking):
        """Notify guest and host that a booking was paid and confirmed"""
        data = {
            'type': 'booking_confirmed',
            'booking_id': booking.id,
            'property_id': booking.property_id
        }
        self.send_notification(
            user_id=booking.user_id,
            title="Booking Confirmed",
            body=f"Your stay at {booking.property.title} is confirmed",
            data=data
        )
        self.send_notification(
            user_id=booking.property.host_id,
            title="Booking Confirmed",
            body=f"{booking.user.name}'s booking of {booking.property.title} is confirmed",
            data=data
        )

    def notify_booking_cancelled(self, booking):
        """Notify the other party of a cancelled booking"""
        data = {
            'type': 'booking_canceled',
            'booking_id': booking.id,
            'property_id': booking.property_id
        }
        for user_id in {booking.user_id, booking.property.host_id}:
            self.send_notification(
                user_id=user_id,
                title="Booking Cancelled",
                body=f"Booking for {booking.property.title} has been cancelled",
                data=data
            )

    def notify_payment_failed(self, booking):
        """Notify guest of a failed payment"""
        self.send_notification(
            user_id=booking.user_id,
            title="Payment Failed",
            body=f"Payment for {booking.property.title} could not be completed",
            data={
                'type': 'payment_failed',
                'booking_id': booking.id
            }
        )

    def notify_new_review(self, review):
        """Notify host of a new review"""
        self.send_notification(
            user_id=review.property.host_id,
            title="New Review",
            body=f"{review.user.name} rated {review.property.title} {review.rating}/5",
            data={
                'type': 'new_review',
                'review_id': review.id,
                'property_id': review.property_id
            }
        )

    def notify_new_message(self, message):
        """Notify recipient of a direct message"""
        self.send_notification(
            user_id=message.recipient_id,
            title="New Message",
            body=f"New message from {message.sender.name}",
            data={
                'type': 'new_message',
                'message_id': message.id,
                'sender_id': message.sender_id
            }
        )


notification_service = NotificationService()
