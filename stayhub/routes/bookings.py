from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required
from datetime import date
from stayhub import db
from stayhub.models.booking import Booking
from stayhub.models.property import Property
from stayhub.services import booking_service
from stayhub.utils.decorators import (
    json_required, validate_json_fields, guest_required, host_required, get_current_user
)
from stayhub.utils.validators import validate_booking_status
from stayhub.utils.helpers import (
    create_response, create_error_response, paginate_query, pagination_meta,
    parse_date_from_string, sanitize_input
)

bookings_bp = Blueprint('bookings', __name__)


def _parse_stay(data, require_both=True, current=None):
    """Request-level date checks; returns (start, end, error)"""
    start_date = parse_date_from_string(data['start_date']) if data.get('start_date') is not None else None
    end_date = parse_date_from_string(data['end_date']) if data.get('end_date') is not None else None

    if (data.get('start_date') is not None and not start_date) or \
            (data.get('end_date') is not None and not end_date):
        return None, None, 'Invalid date format, expected YYYY-MM-DD'

    if current is not None:
        start_date = start_date or current.start_date
        end_date = end_date or current.end_date

    if require_both and (not start_date or not end_date):
        return None, None, 'start_date and end_date are required'

    if end_date <= start_date:
        return None, None, 'end_date must be after start_date'

    if start_date < date.today():
        return None, None, 'Cannot book in the past'

    max_nights = current_app.config['BOOKING_MAX_NIGHTS']
    if (end_date - start_date).days > max_nights:
        return None, None, f'Maximum stay is {max_nights} nights'

    return start_date, end_date, None


def _can_view(user, booking):
    return user.is_admin or booking.user_id == user.id or booking.property.host_id == user.id


@bookings_bp.route('', methods=['GET'])
@jwt_required()
def get_bookings():
    """Get the current user's bookings"""
    user = get_current_user()
    if not user:
        return create_error_response('User not found', 404)

    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 10, type=int)
    status = request.args.get('status')

    query = Booking.query.filter_by(user_id=user.id)

    if status:
        if not validate_booking_status(status):
            return create_error_response('Invalid booking status', 400)
        query = query.filter_by(status=status)

    pagination = paginate_query(query.order_by(Booking.start_date.desc()), page, per_page)

    return create_response({
        'bookings': [booking.to_dict(include_property=True) for booking in pagination['items']],
        'pagination': pagination_meta(pagination)
    })


@bookings_bp.route('/hosting', methods=['GET'])
@host_required
def get_hosting_bookings():
    """Bookings made on the current host's properties"""
    user = get_current_user()

    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 10, type=int)
    status = request.args.get('status')

    query = Booking.query.join(Property).filter(Property.host_id == user.id)

    property_id = request.args.get('property_id', type=int)
    if property_id:
        query = query.filter(Booking.property_id == property_id)

    if status:
        if not validate_booking_status(status):
            return create_error_response('Invalid booking status', 400)
        query = query.filter(Booking.status == status)

    pagination = paginate_query(query.order_by(Booking.start_date.asc()), page, per_page)

    return create_response({
        'bookings': [booking.to_dict(include_property=True, include_user=True) for booking in pagination['items']],
        'pagination': pagination_meta(pagination)
    })


@bookings_bp.route('/<int:booking_id>', methods=['GET'])
@jwt_required()
def get_booking(booking_id):
    """Get booking details"""
    user = get_current_user()
    booking = db.session.get(Booking, booking_id)

    if not booking:
        return create_error_response('Booking not found', 404)

    if not user or not _can_view(user, booking):
        return create_error_response('Permission denied', 403)

    return create_response({
        'booking': booking.to_dict(include_property=True, include_user=True)
    })


@bookings_bp.route('', methods=['POST'])
@guest_required
@json_required
@validate_json_fields(['property_id', 'start_date', 'end_date'])
def create_booking():
    """Request a stay; the booking stays pending until paid"""
    user = get_current_user()
    data = request.get_json()

    property_id = data['property_id']
    if isinstance(property_id, bool) or not isinstance(property_id, int):
        return create_error_response('property_id must be an integer', 400)

    start_date, end_date, error = _parse_stay(data)
    if error:
        return create_error_response(error, 400)

    booking = booking_service.create_booking(
        guest=user,
        property_id=property_id,
        start_date=start_date,
        end_date=end_date,
        guests=data.get('guests', 1)
    )

    return create_response({
        'booking': booking.to_dict(include_property=True)
    }, 'Booking created successfully. Complete payment to confirm.', 201)


@bookings_bp.route('/<int:booking_id>', methods=['PUT'])
@jwt_required()
@json_required
def update_booking(booking_id):
    """Change the dates of a pending booking (booking guest only)"""
    user = get_current_user()
    booking = db.session.get(Booking, booking_id)

    if not booking:
        return create_error_response('Booking not found', 404)

    if not user or booking.user_id != user.id:
        return create_error_response('Permission denied', 403)

    data = request.get_json()
    start_date, end_date, error = _parse_stay(data, require_both=False, current=booking)
    if error:
        return create_error_response(error, 400)

    booking = booking_service.change_booking_dates(booking, start_date, end_date)

    return create_response({
        'booking': booking.to_dict(include_property=True)
    }, 'Booking updated successfully')


@bookings_bp.route('/<int:booking_id>/cancel', methods=['POST'])
@jwt_required()
def cancel_booking(booking_id):
    """Cancel a booking (guest, property host, or admin)"""
    user = get_current_user()
    booking = db.session.get(Booking, booking_id)

    if not booking:
        return create_error_response('Booking not found', 404)

    if not user or not _can_view(user, booking):
        return create_error_response('Permission denied', 403)

    if not booking.is_active:
        return create_error_response('Booking cannot be cancelled', 400)

    if not user.is_admin and not booking.can_be_cancelled():
        return create_error_response('Bookings can only be cancelled before the check-in date', 400)

    data = request.get_json(silent=True) or {}
    reason = sanitize_input(data.get('reason', ''), 500)

    booking = booking_service.cancel_booking(booking, reason)

    return create_response({
        'booking': booking.to_dict(include_property=True)
    }, 'Booking cancelled successfully')
