import re
from decimal import Decimal, InvalidOperation
from email_validator import validate_email, EmailNotValidError
import phonenumbers
from phonenumbers import NumberParseException

from stayhub.models.user import ROLES
from stayhub.models.booking import BOOKING_STATUSES
from stayhub.models.payment import PAYMENT_METHODS


def validate_email_format(email):
    """Validate email format"""
    try:
        validate_email(email, check_deliverability=False)
        return True
    except EmailNotValidError:
        return False


def validate_phone_number(phone, country_code='US'):
    """Validate phone number format"""
    try:
        parsed = phonenumbers.parse(phone, country_code)
        return phonenumbers.is_valid_number(parsed)
    except NumberParseException:
        return False


def validate_password_strength(password):
    """Validate password strength"""
    if len(password) < 8:
        return False, "Password must be at least 8 characters long"

    if not re.search(r'[A-Z]', password):
        return False, "Password must contain at least one uppercase letter"

    if not re.search(r'[a-z]', password):
        return False, "Password must contain at least one lowercase letter"

    if not re.search(r'\d', password):
        return False, "Password must contain at least one number"

    return True, "Password is valid"


def validate_rating(rating):
    """Validate rating value (integer 1-5)"""
    if isinstance(rating, bool) or not isinstance(rating, int):
        return False
    return 1 <= rating <= 5


def validate_price(price):
    """Return the price as a Decimal if it is a positive amount, else None"""
    if isinstance(price, bool):
        return None
    try:
        value = Decimal(str(price))
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


def validate_user_role(role):
    return role in ROLES


def validate_booking_status(status):
    return status in BOOKING_STATUSES


def validate_payment_method(method):
    return method in PAYMENT_METHODS
