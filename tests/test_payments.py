import pytest
import stripe
from stayhub import db
from stayhub.exceptions import PaymentGatewayError
from stayhub.models.booking import Booking
from stayhub.models.payment import Payment
from stayhub.services import payment_service
from conftest import future


@pytest.fixture
def gateway(monkeypatch):
    """Stand-in for the Stripe calls; tests set the intent the gateway reports"""
    state = {'intent': None, 'refunds': [], 'created': []}

    def create_payment_intent(amount, currency='usd', payment_method_types=None, metadata=None):
        intent = {
            'id': f"pi_test_{len(state['created']) + 1}",
            'client_secret': 'secret_test',
            'amount': amount,
            'currency': currency,
            'payment_method_types': payment_method_types,
            'metadata': metadata,
            'status': 'requires_payment_method'
        }
        state['created'].append(intent)
        return intent

    def retrieve_payment_intent(payment_intent_id):
        if state['intent'] is None:
            raise PaymentGatewayError('Payment intent retrieval failed: No such payment_intent')
        return state['intent']

    def create_refund(payment_intent_id, amount=None, reason=None):
        refund = {'id': f're_test_{len(state["refunds"]) + 1}', 'payment_intent': payment_intent_id}
        state['refunds'].append(refund)
        return refund

    monkeypatch.setattr(payment_service, 'create_payment_intent', create_payment_intent)
    monkeypatch.setattr(payment_service, 'retrieve_payment_intent', retrieve_payment_intent)
    monkeypatch.setattr(payment_service, 'create_refund', create_refund)
    return state


@pytest.fixture
def booking(sample_property, guest, make_booking):
    """Pending two-night stay, 200 total"""
    return make_booking(sample_property, guest, future(10), future(12))


def _succeeded(booking, intent_id='pi_test_1', amount=20000):
    return {
        'id': intent_id,
        'status': 'succeeded',
        'amount': amount,
        'metadata': {'booking_id': str(booking.id)}
    }


def test_create_payment_intent(client, guest_headers, booking, gateway):
    response = client.post('/api/payments/intent', headers=guest_headers, json={
        'booking_id': booking.id,
        'payment_method': 'credit_card'
    })

    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['payment_intent']['id'] == 'pi_test_1'
    assert data['payment']['status'] == 'pending'
    assert data['payment']['amount'] == 200.0
    assert gateway['created'][0]['amount'] == 20000
    assert gateway['created'][0]['payment_method_types'] == ['card']


def test_paypal_intent_uses_paypal_type(client, guest_headers, booking, gateway):
    client.post('/api/payments/intent', headers=guest_headers, json={
        'booking_id': booking.id,
        'payment_method': 'paypal'
    })

    assert gateway['created'][0]['payment_method_types'] == ['paypal']


def test_invalid_payment_method(client, guest_headers, booking, gateway):
    response = client.post('/api/payments/intent', headers=guest_headers, json={
        'booking_id': booking.id,
        'payment_method': 'cash'
    })

    assert response.status_code == 400
    assert Payment.query.count() == 0


def test_only_booking_guest_can_pay(client, other_guest_headers, booking, gateway):
    response = client.post('/api/payments/intent', headers=other_guest_headers, json={
        'booking_id': booking.id,
        'payment_method': 'credit_card'
    })

    assert response.status_code == 403


def test_confirm_payment_confirms_booking(client, guest_headers, booking, gateway):
    """Completed payment confirms the booking and records the full amount"""
    gateway['intent'] = _succeeded(booking)

    response = client.post('/api/payments/confirm', headers=guest_headers, json={
        'booking_id': booking.id,
        'payment_method': 'credit_card',
        'transaction_id': 'pi_test_1'
    })

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['payment']['status'] == 'completed'
    assert data['payment']['amount'] == 200.0
    assert data['payment']['payment_date'] is not None
    assert data['booking']['status'] == 'confirmed'


def test_failed_payment_leaves_booking_pending(client, guest_headers, booking, gateway):
    gateway['intent'] = dict(_succeeded(booking), status='requires_payment_method')

    response = client.post('/api/payments/confirm', headers=guest_headers, json={
        'booking_id': booking.id,
        'payment_method': 'credit_card',
        'transaction_id': 'pi_test_1'
    })

    assert response.status_code == 402
    data = response.get_json()
    assert data['errors']['payment']['status'] == 'failed'
    assert data['errors']['booking_status'] == 'pending'
    assert db.session.get(Booking, booking.id).status == 'pending'


def test_amount_mismatch_fails_payment(client, guest_headers, booking, gateway):
    gateway['intent'] = _succeeded(booking, amount=100)

    response = client.post('/api/payments/confirm', headers=guest_headers, json={
        'booking_id': booking.id,
        'payment_method': 'credit_card',
        'transaction_id': 'pi_test_1'
    })

    assert response.status_code == 402


def test_gateway_error_fails_payment(client, guest_headers, booking, gateway):
    response = client.post('/api/payments/confirm', headers=guest_headers, json={
        'booking_id': booking.id,
        'payment_method': 'credit_card',
        'transaction_id': 'pi_missing'
    })

    assert response.status_code == 502
    assert Payment.query.filter_by(booking_id=booking.id).one().status == 'failed'


def test_retry_reuses_single_payment(client, guest_headers, booking, gateway):
    """A booking never holds more than one payment record"""
    gateway['intent'] = dict(_succeeded(booking), status='requires_payment_method')
    client.post('/api/payments/confirm', headers=guest_headers, json={
        'booking_id': booking.id, 'payment_method': 'credit_card', 'transaction_id': 'pi_test_1'
    })

    gateway['intent'] = _succeeded(booking, intent_id='pi_test_2')
    response = client.post('/api/payments/confirm', headers=guest_headers, json={
        'booking_id': booking.id, 'payment_method': 'credit_card', 'transaction_id': 'pi_test_2'
    })

    assert response.status_code == 200
    assert Payment.query.filter_by(booking_id=booking.id).count() == 1
    assert Payment.query.one().transaction_id == 'pi_test_2'


def test_cannot_pay_twice(client, guest_headers, booking, gateway):
    gateway['intent'] = _succeeded(booking)
    payload = {'booking_id': booking.id, 'payment_method': 'credit_card', 'transaction_id': 'pi_test_1'}
    client.post('/api/payments/confirm', headers=guest_headers, json=payload)

    response = client.post('/api/payments/confirm', headers=guest_headers, json=payload)

    assert response.status_code == 409


def test_intent_for_other_booking_rejected(client, guest_headers, booking, gateway):
    gateway['intent'] = dict(_succeeded(booking), metadata={'booking_id': str(booking.id + 100)})

    response = client.post('/api/payments/confirm', headers=guest_headers, json={
        'booking_id': booking.id,
        'payment_method': 'credit_card',
        'transaction_id': 'pi_test_1'
    })

    assert response.status_code == 400
    assert Payment.query.count() == 0


def test_get_booking_payment(client, guest_headers, host_headers, other_guest_headers, booking, gateway):
    client.post('/api/payments/intent', headers=guest_headers, json={
        'booking_id': booking.id, 'payment_method': 'stripe'
    })

    assert client.get(f'/api/payments/booking/{booking.id}', headers=guest_headers).status_code == 200
    assert client.get(f'/api/payments/booking/{booking.id}', headers=host_headers).status_code == 200
    assert client.get(f'/api/payments/booking/{booking.id}', headers=other_guest_headers).status_code == 403


def test_cancel_paid_booking_refunds(client, guest_headers, booking, gateway):
    gateway['intent'] = _succeeded(booking)
    client.post('/api/payments/confirm', headers=guest_headers, json={
        'booking_id': booking.id, 'payment_method': 'credit_card', 'transaction_id': 'pi_test_1'
    })

    response = client.post(f'/api/bookings/{booking.id}/cancel', headers=guest_headers)

    assert response.status_code == 200
    payment = response.get_json()['data']['booking']['payment']
    assert payment['refund_id'] == 're_test_1'
    assert gateway['refunds'][0]['payment_intent'] == 'pi_test_1'


def test_failed_refund_is_retried(app, guest_headers, client, booking, gateway, monkeypatch):
    gateway['intent'] = _succeeded(booking)
    client.post('/api/payments/confirm', headers=guest_headers, json={
        'booking_id': booking.id, 'payment_method': 'credit_card', 'transaction_id': 'pi_test_1'
    })

    def refund_down(payment_intent_id, amount=None, reason=None):
        raise PaymentGatewayError('Refund creation failed: gateway unavailable')

    with monkeypatch.context() as m:
        m.setattr(payment_service, 'create_refund', refund_down)
        response = client.post(f'/api/bookings/{booking.id}/cancel', headers=guest_headers)

    assert response.status_code == 200
    assert Payment.query.one().refund_id is None

    assert payment_service.retry_missing_refunds() == 1
    assert Payment.query.one().refund_id == 're_test_1'


def test_webhook_completes_payment(client, guest_headers, booking, gateway, monkeypatch):
    client.post('/api/payments/intent', headers=guest_headers, json={
        'booking_id': booking.id, 'payment_method': 'credit_card'
    })
    event = {'type': 'payment_intent.succeeded', 'data': {'object': _succeeded(booking)}}
    monkeypatch.setattr(stripe.Webhook, 'construct_event', lambda payload, sig, secret: event)

    response = client.post('/api/payments/webhook', data='{}', headers={'Stripe-Signature': 't=1,v1=abc'})

    assert response.status_code == 200
    assert db.session.get(Booking, booking.id).status == 'confirmed'


def test_webhook_for_canceled_booking_refunds(client, guest_headers, booking, gateway, monkeypatch):
    client.post('/api/payments/intent', headers=guest_headers, json={
        'booking_id': booking.id, 'payment_method': 'credit_card'
    })
    client.post(f'/api/bookings/{booking.id}/cancel', headers=guest_headers)
    event = {'type': 'payment_intent.succeeded', 'data': {'object': _succeeded(booking)}}
    monkeypatch.setattr(stripe.Webhook, 'construct_event', lambda payload, sig, secret: event)

    client.post('/api/payments/webhook', data='{}', headers={'Stripe-Signature': 't=1,v1=abc'})

    assert db.session.get(Booking, booking.id).status == 'canceled'
    assert Payment.query.one().refund_id == 're_test_1'


def test_webhook_bad_signature(client, monkeypatch):
    def reject(payload, sig, secret):
        raise stripe.SignatureVerificationError('No signatures found', sig)

    monkeypatch.setattr(stripe.Webhook, 'construct_event', reject)

    response = client.post('/api/payments/webhook', data='{}', headers={'Stripe-Signature': 'bogus'})

    assert response.status_code == 400
    assert response.get_json()['message'] == 'Invalid signature'


def test_webhook_for_stale_amount_refunds(client, guest_headers, booking, gateway, monkeypatch):
    """Intent opened before the stay was extended does not confirm it"""
    client.post('/api/payments/intent', headers=guest_headers, json={
        'booking_id': booking.id, 'payment_method': 'credit_card'
    })
    response = client.put(f'/api/bookings/{booking.id}', headers=guest_headers, json={
        'end_date': future(15).isoformat()
    })
    assert response.get_json()['data']['booking']['total_price'] == 500.0

    event = {'type': 'payment_intent.succeeded', 'data': {'object': _succeeded(booking, amount=20000)}}
    monkeypatch.setattr(stripe.Webhook, 'construct_event', lambda payload, sig, secret: event)

    response = client.post('/api/payments/webhook', data='{}', headers={'Stripe-Signature': 't=1,v1=abc'})

    assert response.status_code == 200
    assert db.session.get(Booking, booking.id).status == 'pending'
    payment = Payment.query.one()
    assert payment.status == 'failed'
    assert payment.payment_date is None
    assert gateway['refunds'][0]['payment_intent'] == 'pi_test_1'


def test_webhook_for_superseded_intent_refunds(client, guest_headers, booking, gateway, monkeypatch):
    """Only the payment's current intent can complete it"""
    for _ in range(2):
        client.post('/api/payments/intent', headers=guest_headers, json={
            'booking_id': booking.id, 'payment_method': 'credit_card'
        })
    assert Payment.query.one().transaction_id == 'pi_test_2'

    event = {'type': 'payment_intent.succeeded', 'data': {'object': _succeeded(booking, intent_id='pi_test_1')}}
    monkeypatch.setattr(stripe.Webhook, 'construct_event', lambda payload, sig, secret: event)

    client.post('/api/payments/webhook', data='{}', headers={'Stripe-Signature': 't=1,v1=abc'})

    assert db.session.get(Booking, booking.id).status == 'pending'
    payment = Payment.query.one()
    assert payment.status == 'pending'
    assert payment.transaction_id == 'pi_test_2'
    assert [refund['payment_intent'] for refund in gateway['refunds']] == ['pi_test_1']
