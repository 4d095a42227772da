from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required
from sqlalchemy import or_, select
from datetime import date
from stayhub import db
from stayhub.models.property import Property
from stayhub.models.booking import Booking, ACTIVE_STATUSES
from stayhub.services import booking_service, cache_service
from stayhub.utils.decorators import json_required, validate_json_fields, host_required, get_current_user
from stayhub.utils.validators import validate_price
from stayhub.utils.helpers import (
    create_response, create_error_response, paginate_query, pagination_meta,
    sanitize_input, parse_date_from_string
)

properties_bp = Blueprint('properties', __name__)

SORT_COLUMNS = {
    'price': Property.price_per_night,
    'rating': Property.rating_avg,
    'created_at': Property.created_at,
}


def _parse_max_guests(value):
    if isinstance(value, bool):
        return None
    try:
        value = int(value)
    except (ValueError, TypeError):
        return None
    return value if value >= 1 else None


def _can_manage(user, property):
    return user is not None and (user.is_admin or property.host_id == user.id)


def _parse_window(args):
    """Optional start_date/end_date query window; returns (start, end, error)"""
    start_raw = args.get('start_date')
    end_raw = args.get('end_date')
    if not start_raw and not end_raw:
        return None, None, None

    start_date = parse_date_from_string(start_raw)
    end_date = parse_date_from_string(end_raw)
    if not start_date or not end_date:
        return None, None, 'start_date and end_date must both be valid dates (YYYY-MM-DD)'
    if end_date <= start_date:
        return None, None, 'end_date must be after start_date'
    return start_date, end_date, None


def _search_properties(args):
    page = args.get('page', 1, type=int)
    per_page = args.get('per_page', 12, type=int)

    query = Property.query.filter_by(is_active=True)

    search_query = args.get('query', '').strip()
    if search_query:
        query = query.filter(
            or_(
                Property.title.ilike(f'%{search_query}%'),
                Property.description.ilike(f'%{search_query}%'),
                Property.location.ilike(f'%{search_query}%')
            )
        )

    location = args.get('location', '').strip()
    if location:
        query = query.filter(Property.location.ilike(f'%{location}%'))

    min_price = args.get('min_price', type=float)
    max_price = args.get('max_price', type=float)
    if min_price is not None:
        query = query.filter(Property.price_per_night >= min_price)
    if max_price is not None:
        query = query.filter(Property.price_per_night <= max_price)

    guests = args.get('guests', type=int)
    if guests:
        query = query.filter(Property.max_guests >= guests)

    start_date, end_date, _ = _parse_window(args)
    if start_date and end_date:
        busy = select(Booking.property_id).where(
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.start_date < end_date,
            Booking.end_date > start_date
        )
        query = query.filter(Property.id.not_in(busy))

    order_column = SORT_COLUMNS.get(args.get('sort', 'created_at'), Property.created_at)
    if args.get('order', 'desc') == 'asc':
        query = query.order_by(order_column.asc(), Property.id.asc())
    else:
        query = query.order_by(order_column.desc(), Property.id.desc())

    pagination = paginate_query(query, page, per_page)

    return {
        'properties': [p.to_dict() for p in pagination['items']],
        'pagination': pagination_meta(pagination)
    }


@properties_bp.route('', methods=['GET'])
def get_properties():
    """List active properties with search, filters and pagination"""
    _, _, error = _parse_window(request.args)
    if error:
        return create_error_response(error, 400)

    params = request.args.to_dict()
    data = cache_service.cached(
        cache_service.property_list_key(params),
        lambda: _search_properties(request.args)
    )

    return create_response(data)


@properties_bp.route('/mine', methods=['GET'])
@host_required
def get_my_properties():
    """Properties owned by the current host, including inactive ones"""
    user = get_current_user()
    properties = Property.query.filter_by(host_id=user.id).order_by(Property.created_at.desc()).all()

    return create_response({
        'properties': [p.to_dict() for p in properties]
    })


@properties_bp.route('/<int:property_id>', methods=['GET'])
def get_property(property_id):
    """Get property details"""
    def load():
        property = db.session.get(Property, property_id)
        if not property or not property.is_active:
            return None
        return property.to_dict(include_host=True)

    data = cache_service.get_json(cache_service.property_key(property_id))
    if data is None:
        data = load()
        if data is None:
            return create_error_response('Property not found', 404)
        cache_service.set_json(cache_service.property_key(property_id), data)

    return create_response({'property': data})


@properties_bp.route('', methods=['POST'])
@host_required
@json_required
@validate_json_fields(['title', 'description', 'location', 'price_per_night'])
def create_property():
    """Create a new listing"""
    user = get_current_user()
    data = request.get_json()

    title = sanitize_input(data['title'], 200)
    description = sanitize_input(data['description'], 5000)
    location = sanitize_input(data['location'], 255)

    if not title or not description or not location:
        return create_error_response('title, description and location cannot be empty', 400)

    price_per_night = validate_price(data['price_per_night'])
    if price_per_night is None:
        return create_error_response('price_per_night must be a positive number', 400)

    max_guests = _parse_max_guests(data.get('max_guests', 1))
    if max_guests is None:
        return create_error_response('max_guests must be a positive integer', 400)

    property = Property(
        host_id=user.id,
        title=title,
        description=description,
        location=location,
        price_per_night=price_per_night,
        max_guests=max_guests
    )

    db.session.add(property)
    db.session.commit()
    cache_service.invalidate_property()

    current_app.logger.info(f"Property {property.id} listed by host {user.id}")

    return create_response({
        'property': property.to_dict()
    }, 'Property created successfully', 201)


@properties_bp.route('/<int:property_id>', methods=['PUT'])
@jwt_required()
@json_required
def update_property(property_id):
    """Update a listing (owning host or admin)"""
    user = get_current_user()
    property = db.session.get(Property, property_id)

    if not property or not property.is_active:
        return create_error_response('Property not found', 404)

    if not _can_manage(user, property):
        return create_error_response('Permission denied', 403)

    data = request.get_json()

    for field, max_length in (('title', 200), ('description', 5000), ('location', 255)):
        if field in data:
            value = sanitize_input(data[field], max_length)
            if not value:
                return create_error_response(f'{field} cannot be empty', 400)
            setattr(property, field, value)

    if 'price_per_night' in data:
        price_per_night = validate_price(data['price_per_night'])
        if price_per_night is None:
            return create_error_response('price_per_night must be a positive number', 400)
        property.price_per_night = price_per_night

    if 'max_guests' in data:
        max_guests = _parse_max_guests(data['max_guests'])
        if max_guests is None:
            return create_error_response('max_guests must be a positive integer', 400)
        property.max_guests = max_guests

    db.session.commit()
    cache_service.invalidate_property(property.id)

    return create_response({
        'property': property.to_dict()
    }, 'Property updated successfully')


@properties_bp.route('/<int:property_id>', methods=['DELETE'])
@jwt_required()
def delete_property(property_id):
    """Delete property (soft delete)"""
    user = get_current_user()
    property = db.session.get(Property, property_id)

    if not property or not property.is_active:
        return create_error_response('Property not found', 404)

    if not _can_manage(user, property):
        return create_error_response('Permission denied', 403)

    upcoming = Booking.query.filter(
        Booking.property_id == property.id,
        Booking.status.in_(ACTIVE_STATUSES),
        Booking.end_date > date.today()
    ).count()

    if upcoming > 0:
        return create_error_response('Cannot delete a property with upcoming bookings', 400)

    property.is_active = False
    db.session.commit()
    cache_service.invalidate_property(property.id)

    current_app.logger.info(f"Property {property.id} deactivated by user {user.id}")

    return create_response(message='Property deleted successfully')


@properties_bp.route('/<int:property_id>/availability', methods=['GET'])
def get_property_availability(property_id):
    """Check whether a property is free for a date range and quote the price"""
    property = db.session.get(Property, property_id)
    if not property or not property.is_active:
        return create_error_response('Property not found', 404)

    start_date, end_date, error = _parse_window(request.args)
    if error or not start_date:
        return create_error_response(error or 'start_date and end_date are required', 400)

    conflict = booking_service.find_conflicting_booking(property.id, start_date, end_date)

    return create_response({
        'available': conflict is None,
        'nights': booking_service.nights_between(start_date, end_date),
        'price_per_night': float(property.price_per_night),
        'total_price': float(booking_service.calculate_total_price(property, start_date, end_date))
    })


@properties_bp.route('/<int:property_id>/calendar', methods=['GET'])
def get_property_calendar(property_id):
    """Booked (non-canceled) ranges of a property"""
    property = db.session.get(Property, property_id)
    if not property or not property.is_active:
        return create_error_response('Property not found', 404)

    start_date, end_date, error = _parse_window(request.args)
    if error:
        return create_error_response(error, 400)

    return create_response({
        'property_id': property.id,
        'booked': booking_service.booked_ranges(property.id, start_date, end_date)
    })
