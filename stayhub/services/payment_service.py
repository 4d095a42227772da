import stripe
from flask import current_app
from datetime import datetime

from stayhub import db
from stayhub.exceptions import ValidationError, ConflictError, NotFoundError, PaymentGatewayError
from stayhub.models.payment import Payment, PAYMENT_METHODS
from stayhub.utils.validators import validate_payment_method
from stayhub.services.notification_service import notification_service
from stayhub.services.email_service import send_booking_confirmation_email, send_new_booking_notification
from stayhub.utils.helpers import to_money

# Every supported method is settled through Stripe PaymentIntents
STRIPE_METHOD_TYPES = {
    'credit_card': 'card',
    'stripe': 'card',
    'paypal': 'paypal',
}


def init_stripe():
    """Initialize Stripe with secret key"""
    stripe.api_key = current_app.config.get('STRIPE_SECRET_KEY')


def to_cents(amount):
    return int(to_money(amount) * 100)


def _field(obj, name, default=None):
    try:
        return obj[name]
    except (KeyError, TypeError):
        return default


def create_payment_intent(amount, currency='usd', payment_method_types=None, metadata=None):
    """Create a Stripe payment intent"""
    init_stripe()

    try:
        return stripe.PaymentIntent.create(
            amount=amount,  # Amount in cents
            currency=currency,
            payment_method_types=payment_method_types or ['card'],
            metadata=metadata or {},
        )
    except stripe.StripeError as e:
        current_app.logger.error(f"Stripe error: {e}")
        raise PaymentGatewayError(f"Payment intent creation failed: {e.user_message or e}")


def retrieve_payment_intent(payment_intent_id):
    """Get payment intent details"""
    init_stripe()

    try:
        return stripe.PaymentIntent.retrieve(payment_intent_id)
    except stripe.StripeError as e:
        current_app.logger.error(f"Stripe error: {e}")
        raise PaymentGatewayError(f"Payment intent retrieval failed: {e.user_message or e}")


def create_refund(payment_intent_id, amount=None, reason=None):
    """Create a refund for a payment"""
    init_stripe()

    refund_data = {'payment_intent': payment_intent_id}
    if amount:
        refund_data['amount'] = amount
    if reason:
        refund_data['reason'] = reason

    try:
        return stripe.Refund.create(**refund_data)
    except stripe.StripeError as e:
        current_app.logger.error(f"Stripe error: {e}")
        raise PaymentGatewayError(f"Refund creation failed: {e.user_message or e}")


def _ensure_payable(booking, payment_method):
    if not validate_payment_method(payment_method):
        raise ValidationError(f'payment_method must be one of: {", ".join(PAYMENT_METHODS)}')
    if booking.payment and booking.payment.status == 'completed':
        raise ConflictError('Booking is already paid')
    if booking.status != 'pending':
        raise ValidationError('Only pending bookings can be paid')


def get_or_create_payment(booking, payment_method):
    """The booking's single payment record, reset for a new attempt"""
    payment = booking.payment
    if payment is None:
        payment = Payment(
            booking_id=booking.id,
            amount=booking.total_price,
            payment_method=payment_method,
            status='pending'
        )
        db.session.add(payment)
        booking.payment = payment
    else:
        payment.payment_method = payment_method
        payment.amount = booking.total_price
        payment.status = 'pending'
    return payment


def create_payment_intent_for_booking(booking, payment_method):
    """Open a gateway payment for the booking's total price"""
    _ensure_payable(booking, payment_method)

    payment = get_or_create_payment(booking, payment_method)
    try:
        intent = create_payment_intent(
            amount=to_cents(booking.total_price),
            currency=current_app.config.get('PAYMENT_CURRENCY', 'usd'),
            payment_method_types=[STRIPE_METHOD_TYPES[payment_method]],
            metadata={
                'booking_id': str(booking.id),
                'user_id': str(booking.user_id),
                'property_id': str(booking.property_id)
            }
        )
    except PaymentGatewayError:
        payment.status = 'failed'
        db.session.commit()
        raise

    payment.transaction_id = intent['id']
    db.session.commit()

    current_app.logger.info(f"Payment intent {payment.transaction_id} opened for booking {booking.id}")
    return payment, intent


def process_booking_payment(booking, payment_method, transaction_id):
    """Settle a booking against a gateway payment intent"""
    _ensure_payable(booking, payment_method)

    payment = get_or_create_payment(booking, payment_method)
    payment.transaction_id = transaction_id

    try:
        intent = retrieve_payment_intent(transaction_id)
    except PaymentGatewayError:
        fail_payment(payment)
        raise

    intent_booking_id = _field(_field(intent, 'metadata', {}), 'booking_id')
    if intent_booking_id is not None and str(intent_booking_id) != str(booking.id):
        db.session.rollback()
        raise ValidationError('Payment does not belong to this booking')

    if _field(intent, 'status') == 'succeeded' and _field(intent, 'amount') == to_cents(booking.total_price):
        complete_payment(payment)
    else:
        current_app.logger.warning(
            f"Payment {transaction_id} for booking {booking.id} not settled "
            f"(status={_field(intent, 'status')}, amount={_field(intent, 'amount')})"
        )
        fail_payment(payment)

    return payment


def complete_payment(payment):
    """Mark a payment completed and confirm its booking"""
    booking = payment.booking

    payment.status = 'completed'
    payment.amount = booking.total_price
    payment.payment_date = datetime.utcnow()

    if booking.status == 'canceled':
        # Money arrived after the booking expired; give it back
        current_app.logger.warning(f"Payment {payment.id} completed for canceled booking {booking.id}")
        try:
            refund_payment(payment)
        except PaymentGatewayError as e:
            current_app.logger.error(f"Refund for booking {booking.id} failed: {e.message}")
        db.session.commit()
        return payment

    booking.status = 'confirmed'
    db.session.commit()

    current_app.logger.info(f"Payment {payment.id} completed; booking {booking.id} confirmed")
    notification_service.notify_booking_confirmed(booking)
    send_booking_confirmation_email(booking)
    send_new_booking_notification(booking)

    return payment


def fail_payment(payment):
    """Mark a payment failed; the booking stays pending for a retry"""
    payment.status = 'failed'
    db.session.commit()

    current_app.logger.info(f"Payment {payment.id} for booking {payment.booking_id} failed")
    notification_service.notify_payment_failed(payment.booking)

    return payment


def refund_payment(payment):
    """Refund a completed payment once; the caller commits"""
    if payment.status != 'completed' or payment.refund_id or not payment.transaction_id:
        return None

    refund = create_refund(payment.transaction_id, reason='requested_by_customer')
    payment.refund_id = refund['id']
    current_app.logger.info(f"Refund {payment.refund_id} issued for payment {payment.id}")
    return refund


def retry_missing_refunds():
    """Refund completed payments of canceled bookings that have no refund yet"""
    from stayhub.models.booking import Booking

    payments = Payment.query.join(Booking).filter(
        Booking.status == 'canceled',
        Payment.status == 'completed',
        Payment.refund_id.is_(None)
    ).all()

    refunded = 0
    for payment in payments:
        try:
            refund_payment(payment)
            refunded += 1
        except PaymentGatewayError as e:
            current_app.logger.error(f"Refund retry for payment {payment.id} failed: {e.message}")
    db.session.commit()
    return refunded


def _payment_for_intent(payment_intent):
    payment = Payment.query.filter_by(transaction_id=_field(payment_intent, 'id')).first()
    if payment:
        return payment

    booking_id = _field(_field(payment_intent, 'metadata', {}), 'booking_id')
    if booking_id:
        return Payment.query.filter_by(booking_id=int(booking_id)).first()
    return None


def _settle_succeeded_intent(payment, payment_intent):
    """Complete the payment only for its current intent at the booking's price.

    Any other charge is refunded and the booking stays pending.
    """
    intent_id = _field(payment_intent, 'id')
    amount = _field(payment_intent, 'amount')
    booking = payment.booking

    if payment.transaction_id and intent_id != payment.transaction_id:
        current_app.logger.warning(
            f"Intent {intent_id} succeeded but payment {payment.id} expects {payment.transaction_id}; refunding"
        )
        create_refund(intent_id, reason='duplicate')
        return payment

    if amount != to_cents(booking.total_price):
        current_app.logger.warning(
            f"Intent {intent_id} charged {amount} cents but booking {booking.id} "
            f"costs {to_cents(booking.total_price)}; refunding"
        )
        create_refund(intent_id, reason='requested_by_customer')
        if payment.status == 'pending':
            fail_payment(payment)
        return payment

    payment.transaction_id = intent_id
    return complete_payment(payment)


def handle_webhook(payload, signature):
    """Handle Stripe webhook events"""
    init_stripe()

    webhook_secret = current_app.config.get('STRIPE_WEBHOOK_SECRET')

    try:
        event = stripe.Webhook.construct_event(payload, signature, webhook_secret)
    except ValueError as e:
        current_app.logger.error(f"Invalid payload: {e}")
        raise ValidationError('Invalid payload')
    except stripe.SignatureVerificationError as e:
        current_app.logger.error(f"Invalid signature: {e}")
        raise ValidationError('Invalid signature')

    event_type = event['type']
    payment_intent = event['data']['object']

    if event_type in ('payment_intent.succeeded', 'payment_intent.payment_failed'):
        payment = _payment_for_intent(payment_intent)
        if not payment:
            raise NotFoundError('No payment matches this event')

        if event_type == 'payment_intent.succeeded' and payment.status != 'completed':
            _settle_succeeded_intent(payment, payment_intent)
        elif event_type == 'payment_intent.payment_failed' and payment.status == 'pending':
            fail_payment(payment)

    return event
