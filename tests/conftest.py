import pytest
from datetime import date, timedelta
from decimal import Decimal
from stayhub import create_app, db
from stayhub.models.user import User
from stayhub.models.property import Property
from stayhub.models.booking import Booking

PASSWORD = 'Password123'


@pytest.fixture
def app():
    """Create application for testing"""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Factory for persisted users"""
    def _make_user(email, role='guest', name=None, is_active=True):
        user = User(email=email, name=name or email.split('@')[0].title(), role=role, is_active=is_active)
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def login(client):
    """Return auth headers for a user"""
    def _login(user):
        response = client.post('/api/auth/login', json={'email': user.email, 'password': PASSWORD})
        token = response.get_json()['data']['access_token']
        return {'Authorization': f'Bearer {token}'}
    return _login


@pytest.fixture
def guest(make_user):
    return make_user('guest@example.com', role='guest', name='Gina Guest')


@pytest.fixture
def other_guest(make_user):
    return make_user('other.guest@example.com', role='guest', name='Oscar Guest')


@pytest.fixture
def host(make_user):
    return make_user('host@example.com', role='host', name='Hana Host')


@pytest.fixture
def admin(make_user):
    return make_user('admin@example.com', role='admin', name='Ada Admin')


@pytest.fixture
def guest_headers(login, guest):
    return login(guest)


@pytest.fixture
def other_guest_headers(login, other_guest):
    return login(other_guest)


@pytest.fixture
def host_headers(login, host):
    return login(host)


@pytest.fixture
def admin_headers(login, admin):
    return login(admin)


@pytest.fixture
def sample_property(app, host):
    """Property at 100 per night"""
    property = Property(
        host_id=host.id,
        title='Seaside Cottage',
        description='A cosy cottage by the sea',
        location='Brighton, UK',
        price_per_night=Decimal('100.00'),
        max_guests=4
    )
    db.session.add(property)
    db.session.commit()
    return property


@pytest.fixture
def make_booking(app):
    """Insert a booking directly, bypassing request-level date checks"""
    def _make_booking(property, user, start_date, end_date, status='pending'):
        booking = Booking(
            property_id=property.id,
            user_id=user.id,
            start_date=start_date,
            end_date=end_date,
            total_price=property.price_per_night * (end_date - start_date).days,
            status=status
        )
        db.session.add(booking)
        db.session.commit()
        return booking
    return _make_booking


def future(days):
    return date.today() + timedelta(days=days)


def past(days):
    return date.today() - timedelta(days=days)
