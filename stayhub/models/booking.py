from stayhub import db
from datetime import datetime, date
from sqlalchemy import DDL, event

BOOKING_STATUSES = ('pending', 'confirmed', 'canceled')
ACTIVE_STATUSES = ('pending', 'confirmed')


class Booking(db.Model):
    __tablename__ = 'bookings'

    id = db.Column(db.Integer, primary_key=True)
    property_id = db.Column(db.Integer, db.ForeignKey('properties.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    guests = db.Column(db.Integer, nullable=False, default=1)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='pending')  # pending, confirmed, canceled
    cancellation_reason = db.Column(db.Text, nullable=True)
    canceled_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    payment = db.relationship('Payment', backref='booking', uselist=False, lazy=True)

    __table_args__ = (
        db.CheckConstraint('end_date > start_date', name='booking_dates_ordered'),
        db.CheckConstraint("status IN ('pending', 'confirmed', 'canceled')", name='booking_status_valid'),
        db.Index('ix_bookings_property_dates', 'property_id', 'start_date', 'end_date'),
    )

    @property
    def nights(self):
        return (self.end_date - self.start_date).days

    @property
    def is_active(self):
        return self.status in ACTIVE_STATUSES

    def can_be_cancelled(self, today=None):
        """Active bookings can be cancelled until the check-in day"""
        today = today or date.today()
        return self.is_active and today < self.start_date

    def to_dict(self, include_property=False, include_user=False):
        data = {
            'id': self.id,
            'property_id': self.property_id,
            'user_id': self.user_id,
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'nights': self.nights,
            'guests': self.guests,
            'total_price': float(self.total_price),
            'status': self.status,
            'cancellation_reason': self.cancellation_reason,
            'canceled_at': self.canceled_at.isoformat() if self.canceled_at else None,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'can_be_cancelled': self.can_be_cancelled(),
            'payment': self.payment.to_dict() if self.payment else None
        }

        if include_property and self.property:
            data['property'] = {
                'id': self.property.id,
                'title': self.property.title,
                'location': self.property.location,
                'price_per_night': float(self.property.price_per_night)
            }

        if include_user and self.user:
            data['user'] = {
                'id': self.user.id,
                'name': self.user.name,
                'email': self.user.email
            }

        return data

    def __repr__(self):
        return f'<Booking {self.id} property={self.property_id} {self.start_date}..{self.end_date} {self.status}>'


# PostgreSQL enforces the no-overlap rule itself; other databases rely on the
# locked overlap query in booking_service.
event.listen(
    Booking.__table__,
    'after_create',
    DDL('CREATE EXTENSION IF NOT EXISTS btree_gist').execute_if(dialect='postgresql')
)
event.listen(
    Booking.__table__,
    'after_create',
    DDL(
        "ALTER TABLE bookings ADD CONSTRAINT bookings_no_overlap "
        "EXCLUDE USING gist (property_id WITH =, daterange(start_date, end_date, '[)') WITH &&) "
        "WHERE (status <> 'canceled')"
    ).execute_if(dialect='postgresql')
)
