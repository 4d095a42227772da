from .decorators import (
    admin_required, host_required, guest_required, roles_required,
    json_required, validate_json_fields, current_user_id, get_current_user
)
from .validators import *
from .helpers import *

__all__ = [
    'admin_required', 'host_required', 'guest_required', 'roles_required',
    'json_required', 'validate_json_fields', 'current_user_id', 'get_current_user',
    'validate_email_format', 'validate_phone_number', 'validate_password_strength',
    'validate_rating', 'validate_price', 'validate_user_role',
    'validate_booking_status', 'validate_payment_method',
    'paginate_query', 'pagination_meta', 'to_money', 'format_currency',
    'parse_date_from_string', 'create_response', 'create_error_response',
    'truncate_text', 'sanitize_input'
]
