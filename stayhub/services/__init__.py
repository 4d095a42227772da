from .email_service import send_email, send_booking_confirmation_email, send_booking_cancellation_email
from .notification_service import notification_service
from . import cache_service, payment_service, booking_service

__all__ = [
    'send_email', 'send_booking_confirmation_email', 'send_booking_cancellation_email',
    'notification_service', 'cache_service', 'payment_service', 'booking_service'
]
