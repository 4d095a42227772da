import re
from datetime import datetime, date
from decimal import Decimal, ROUND_HALF_UP

_TAG_RE = re.compile(r'<[^>]+>')


def paginate_query(query, page, per_page, max_per_page=100):
    """Paginate a SQLAlchemy query"""
    page = max(1, page)
    per_page = min(max_per_page, max(1, per_page))

    pagination = query.paginate(
        page=page,
        per_page=per_page,
        error_out=False
    )

    return {
        'items': pagination.items,
        'total': pagination.total,
        'page': page,
        'per_page': per_page,
        'pages': pagination.pages,
        'has_prev': pagination.has_prev,
        'has_next': pagination.has_next,
        'prev_page': pagination.prev_num if pagination.has_prev else None,
        'next_page': pagination.next_num if pagination.has_next else None
    }


def pagination_meta(pagination):
    """Pagination block for list responses"""
    return {key: value for key, value in pagination.items() if key != 'items'}


def to_money(amount):
    """Quantize an amount to cents"""
    return Decimal(str(amount)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def format_currency(amount, currency='USD'):
    """Format currency amount"""
    if currency == 'USD':
        return f"${amount:.2f}"
    else:
        return f"{amount:.2f} {currency}"


def parse_date_from_string(date_string):
    """Parse a YYYY-MM-DD date, returning None when invalid"""
    if isinstance(date_string, date) and not isinstance(date_string, datetime):
        return date_string
    if not isinstance(date_string, str):
        return None
    try:
        return date.fromisoformat(date_string.strip())
    except ValueError:
        return None


def create_response(data=None, message=None, status_code=200):
    """Create standardized API response"""
    response = {}

    if data is not None:
        response['data'] = data

    if message:
        response['message'] = message

    response['status'] = 'success' if status_code < 400 else 'error'
    response['timestamp'] = datetime.utcnow().isoformat()

    return response, status_code


def create_error_response(message, status_code=400, errors=None):
    """Create standardized error response"""
    response = {
        'message': message,
        'status': 'error',
        'timestamp': datetime.utcnow().isoformat()
    }

    if errors:
        response['errors'] = errors

    return response, status_code


def truncate_text(text, max_length, suffix='...'):
    """Truncate text to max length with suffix"""
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix


def sanitize_input(text, max_length=None):
    """Sanitize text input"""
    if not text:
        return ''

    # Remove any HTML tags
    text = _TAG_RE.sub('', str(text))

    text = text.strip()

    if max_length and len(text) > max_length:
        text = text[:max_length]

    return text
