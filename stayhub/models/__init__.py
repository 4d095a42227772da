from .user import User
from .property import Property
from .booking import Booking
from .payment import Payment
from .review import Review
from .message import Message

__all__ = ['User', 'Property', 'Booking', 'Payment', 'Review', 'Message']
