from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from stayhub.services import booking_service, payment_service
from stayhub.utils.decorators import json_required, validate_json_fields, get_current_user
from stayhub.utils.helpers import create_response, create_error_response

payments_bp = Blueprint('payments', __name__)


def _own_booking(booking_id):
    """The current user's booking, or an error response"""
    user = get_current_user()
    booking = booking_service.get_booking_or_404(booking_id)

    if not user or booking.user_id != user.id:
        return None, create_error_response('Permission denied', 403)
    return booking, None


@payments_bp.route('/intent', methods=['POST'])
@jwt_required()
@json_required
@validate_json_fields(['booking_id', 'payment_method'])
def create_intent():
    """Open a gateway payment for a pending booking"""
    data = request.get_json()

    booking, error = _own_booking(data['booking_id'])
    if error:
        return error

    payment, intent = payment_service.create_payment_intent_for_booking(booking, data['payment_method'])

    return create_response({
        'payment': payment.to_dict(),
        'payment_intent': {
            'id': intent['id'],
            'client_secret': intent['client_secret']
        }
    }, 'Payment intent created', 201)


@payments_bp.route('/confirm', methods=['POST'])
@jwt_required()
@json_required
@validate_json_fields(['booking_id', 'payment_method', 'transaction_id'])
def confirm():
    """Settle a booking once the client has completed the gateway flow"""
    data = request.get_json()

    booking, error = _own_booking(data['booking_id'])
    if error:
        return error

    payment = payment_service.process_booking_payment(
        booking, data['payment_method'], str(data['transaction_id'])
    )

    if payment.status != 'completed':
        return create_error_response('Payment failed', 402, errors={
            'payment': payment.to_dict(),
            'booking_status': booking.status
        })

    return create_response({
        'payment': payment.to_dict(),
        'booking': booking.to_dict(include_property=True)
    }, 'Payment processed successfully. Booking confirmed.')


@payments_bp.route('/booking/<int:booking_id>', methods=['GET'])
@jwt_required()
def get_booking_payment(booking_id):
    """Payment record of a booking (guest, host, or admin)"""
    user = get_current_user()
    booking = booking_service.get_booking_or_404(booking_id)

    if not user or not (user.is_admin or booking.user_id == user.id or booking.property.host_id == user.id):
        return create_error_response('Permission denied', 403)

    if not booking.payment:
        return create_error_response('No payment for this booking', 404)

    return create_response({'payment': booking.payment.to_dict()})


@payments_bp.route('/webhook', methods=['POST'])
def stripe_webhook():
    """Stripe event callback"""
    event = payment_service.handle_webhook(
        request.get_data(), request.headers.get('Stripe-Signature', '')
    )

    return create_response({'received': True, 'type': event['type']})
