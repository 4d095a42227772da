"""Sample users, listings, stays and reviews for local development"""
from datetime import date, datetime, timedelta
from decimal import Decimal
import random

from flask import current_app

from stayhub import db
from stayhub.models import User, Property, Booking, Payment, Review, Message

SAMPLE_PROPERTIES = [
    ('Sunny Loft Downtown', 'Bright open-plan loft a short walk from the old town.', 'Lisbon, Portugal', '95.00', 2),
    ('Cabin by the Lake', 'Quiet wooden cabin with a private dock and fireplace.', 'Lake Tahoe, USA', '180.00', 6),
    ('Canal House Studio', 'Compact studio overlooking the canals.', 'Amsterdam, Netherlands', '120.00', 2),
    ('Hillside Villa', 'Four-bedroom villa with pool and sea views.', 'Crete, Greece', '340.00', 8),
    ('Garden Flat', 'Ground-floor flat with a private garden.', 'London, UK', '110.00', 3),
]


def create_sample_users():
    """Create an admin, hosts and guests"""
    admin = User(email='admin@stayhub.com', name='Admin User', role='admin')
    admin.set_password('Admin1234')

    hosts = []
    for name in ('Alice Host', 'Bob Host'):
        host = User(email=f"{name.split()[0].lower()}.host@example.com", name=name, role='host',
                    bio=f'{name} has been hosting travellers for years.')
        host.set_password('Password123')
        hosts.append(host)

    guests = []
    for name in ('John Doe', 'Jane Smith', 'Mike Johnson'):
        guest = User(email=f"{name.replace(' ', '.').lower()}@example.com", name=name, role='guest')
        guest.set_password('Password123')
        guests.append(guest)

    db.session.add_all([admin] + hosts + guests)
    db.session.flush()
    return admin, hosts, guests


def create_sample_properties(hosts):
    properties = []
    for i, (title, description, location, price, max_guests) in enumerate(SAMPLE_PROPERTIES):
        properties.append(Property(
            host_id=hosts[i % len(hosts)].id,
            title=title,
            description=description,
            location=location,
            price_per_night=Decimal(price),
            max_guests=max_guests
        ))
    db.session.add_all(properties)
    db.session.flush()
    return properties


def create_sample_stays(properties, guests):
    """Past confirmed stays with payments and reviews, plus upcoming bookings"""
    today = date.today()

    for i, property in enumerate(properties):
        guest = guests[i % len(guests)]

        start = today - timedelta(days=30 + i * 7)
        end = start + timedelta(days=3)
        past = Booking(property_id=property.id, user_id=guest.id, start_date=start, end_date=end,
                       total_price=property.price_per_night * 3, status='confirmed')
        db.session.add(past)
        db.session.flush()

        db.session.add(Payment(booking_id=past.id, amount=past.total_price, payment_method='credit_card',
                               status='completed', payment_date=datetime.utcnow() - timedelta(days=40)))
        db.session.add(Review(property_id=property.id, user_id=guest.id, rating=random.randint(3, 5),
                              comment='Lovely place, would stay again.'))

        start = today + timedelta(days=14 + i * 5)
        nights = random.randint(2, 6)
        db.session.add(Booking(property_id=property.id, user_id=guests[(i + 1) % len(guests)].id,
                               start_date=start, end_date=start + timedelta(days=nights),
                               total_price=property.price_per_night * nights, status='pending'))

    db.session.flush()
    for property in properties:
        property.update_rating()


def create_sample_messages(hosts, guests):
    db.session.add_all([
        Message(sender_id=guests[0].id, recipient_id=hosts[0].id,
                message_body='Hi! Is early check-in possible?'),
        Message(sender_id=hosts[0].id, recipient_id=guests[0].id,
                message_body='Sure, from 11am is fine.'),
    ])


def seed_database():
    """Populate an empty database"""
    if User.query.first():
        current_app.logger.info('Database already seeded, skipping')
        return

    admin, hosts, guests = create_sample_users()
    properties = create_sample_properties(hosts)
    create_sample_stays(properties, guests)
    create_sample_messages(hosts, guests)

    db.session.commit()
    current_app.logger.info(
        f'Seeded {len(hosts) + len(guests) + 1} users and {len(properties)} properties'
    )
