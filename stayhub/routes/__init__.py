from .auth import auth_bp
from .users import users_bp
from .properties import properties_bp
from .bookings import bookings_bp
from .payments import payments_bp
from .reviews import reviews_bp
from .messages import messages_bp

__all__ = ['auth_bp', 'users_bp', 'properties_bp', 'bookings_bp', 'payments_bp', 'reviews_bp', 'messages_bp']
