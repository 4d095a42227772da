"""Booking lifecycle: availability, pricing, creation, changes and cancellation.

Date ranges are half-open ``[start_date, end_date)``: the checkout day of one
stay may be the check-in day of the next. Two bookings of the same property
conflict when neither is canceled and ``a.start < b.end and a.end > b.start``.
"""
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError

from stayhub import db
from stayhub.exceptions import ValidationError, NotFoundError, PermissionDeniedError, ConflictError, PaymentGatewayError
from stayhub.models.booking import Booking, ACTIVE_STATUSES
from stayhub.models.property import Property
from stayhub.services import payment_service, cache_service
from stayhub.services.notification_service import notification_service
from stayhub.services.email_service import send_booking_cancellation_email
from stayhub.utils.helpers import to_money


def nights_between(start_date, end_date):
    return (end_date - start_date).days


def validate_date_range(start_date, end_date):
    if start_date is None or end_date is None:
        raise ValidationError('start_date and end_date are required (YYYY-MM-DD)')
    if end_date <= start_date:
        raise ValidationError('end_date must be after start_date')


def calculate_total_price(property, start_date, end_date):
    """Nights times the nightly price, in cents precision"""
    validate_date_range(start_date, end_date)
    return to_money(property.price_per_night) * nights_between(start_date, end_date)


def find_conflicting_booking(property_id, start_date, end_date, exclude_booking_id=None):
    """First non-canceled booking of the property overlapping the range"""
    query = Booking.query.filter(
        and_(
            Booking.property_id == property_id,
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.start_date < end_date,
            Booking.end_date > start_date
        )
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)
    return query.order_by(Booking.start_date).first()


def is_available(property_id, start_date, end_date):
    validate_date_range(start_date, end_date)
    return find_conflicting_booking(property_id, start_date, end_date) is None


def booked_ranges(property_id, start_date=None, end_date=None):
    """Non-canceled stays of a property, optionally limited to a window"""
    query = Booking.query.filter(
        Booking.property_id == property_id,
        Booking.status.in_(ACTIVE_STATUSES)
    )
    if start_date is not None:
        query = query.filter(Booking.end_date > start_date)
    if end_date is not None:
        query = query.filter(Booking.start_date < end_date)

    return [
        {
            'start_date': booking.start_date.isoformat(),
            'end_date': booking.end_date.isoformat(),
            'status': booking.status
        }
        for booking in query.order_by(Booking.start_date).all()
    ]


def _lock_property(property_id):
    """Load the property with a row lock so overlap checks on it serialize"""
    return db.session.query(Property).filter(Property.id == property_id).with_for_update().first()


def _raise_conflict(conflict):
    raise ConflictError(
        'Property is already booked for the selected dates',
        errors={'conflicting_range': {
            'start_date': conflict.start_date.isoformat(),
            'end_date': conflict.end_date.isoformat()
        }}
    )


def _commit_booking():
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        current_app.logger.info(f"Booking rejected by database constraint: {e.orig}")
        raise ConflictError('Property is already booked for the selected dates')


def create_booking(guest, property_id, start_date, end_date, guests=1):
    """Create a pending booking after checking the range is free"""
    validate_date_range(start_date, end_date)

    if isinstance(guests, bool) or not isinstance(guests, int) or guests < 1:
        raise ValidationError('guests must be a positive integer')

    property = _lock_property(property_id)
    if not property or not property.is_active:
        db.session.rollback()
        raise NotFoundError('Property not found or not available')

    if property.host_id == guest.id:
        db.session.rollback()
        raise PermissionDeniedError('Hosts cannot book their own property')

    if guests > property.max_guests:
        db.session.rollback()
        raise ValidationError(f'This property accommodates at most {property.max_guests} guests')

    conflict = find_conflicting_booking(property.id, start_date, end_date)
    if conflict:
        db.session.rollback()
        _raise_conflict(conflict)

    booking = Booking(
        property_id=property.id,
        user_id=guest.id,
        start_date=start_date,
        end_date=end_date,
        guests=guests,
        total_price=calculate_total_price(property, start_date, end_date),
        status='pending'
    )
    db.session.add(booking)
    _commit_booking()
    # Listing pages filtered by date window depend on availability
    cache_service.invalidate_property()

    current_app.logger.info(
        f"Booking {booking.id} created for property {property.id} "
        f"{start_date.isoformat()}..{end_date.isoformat()} by user {guest.id}"
    )
    notification_service.notify_new_booking(booking)

    return booking


def change_booking_dates(booking, start_date, end_date):
    """Move a pending booking to new dates and re-price it"""
    if booking.status != 'pending':
        raise ValidationError('Only pending bookings can be changed')

    validate_date_range(start_date, end_date)

    property = _lock_property(booking.property_id)

    conflict = find_conflicting_booking(property.id, start_date, end_date, exclude_booking_id=booking.id)
    if conflict:
        db.session.rollback()
        _raise_conflict(conflict)

    booking.start_date = start_date
    booking.end_date = end_date
    booking.total_price = calculate_total_price(property, start_date, end_date)

    # An outstanding payment intent was created for the old amount
    payment = booking.payment
    if payment and payment.status != 'completed':
        payment.amount = booking.total_price
        payment.transaction_id = None
        payment.status = 'pending'

    _commit_booking()
    cache_service.invalidate_property()
    current_app.logger.info(f"Booking {booking.id} moved to {start_date.isoformat()}..{end_date.isoformat()}")

    return booking


def cancel_booking(booking, reason=None):
    """Cancel an active booking, refunding a completed payment"""
    if not booking.is_active:
        raise ValidationError('Booking is already canceled')

    booking.status = 'canceled'
    booking.cancellation_reason = reason or None
    booking.canceled_at = datetime.utcnow()

    payment = booking.payment
    if payment:
        if payment.status == 'completed':
            try:
                payment_service.refund_payment(payment)
            except PaymentGatewayError as e:
                # Picked up again by the refund retry task
                current_app.logger.error(f"Refund for booking {booking.id} failed: {e.message}")
        elif payment.status == 'pending':
            payment.status = 'failed'

    db.session.commit()
    cache_service.invalidate_property()
    current_app.logger.info(f"Booking {booking.id} canceled")

    notification_service.notify_booking_cancelled(booking)
    send_booking_cancellation_email(booking)

    return booking


def expire_stale_bookings(max_age_hours=None, now=None):
    """Cancel pending bookings whose payment did not complete in time"""
    if max_age_hours is None:
        max_age_hours = current_app.config['BOOKING_PENDING_TTL_HOURS']
    now = now or datetime.utcnow()
    cutoff = now - timedelta(hours=max_age_hours)

    stale = Booking.query.filter(
        Booking.status == 'pending',
        Booking.created_at < cutoff
    ).all()

    expired = 0
    for booking in stale:
        if booking.payment and booking.payment.status == 'completed':
            continue
        cancel_booking(booking, reason='Payment was not completed in time')
        expired += 1

    if expired:
        current_app.logger.info(f"Expired {expired} unpaid bookings")
    return expired


def get_booking_or_404(booking_id):
    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFoundError('Booking not found')
    return booking
