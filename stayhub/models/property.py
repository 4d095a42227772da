from stayhub import db
from datetime import datetime
from sqlalchemy import func


class Property(db.Model):
    __tablename__ = 'properties'

    id = db.Column(db.Integer, primary_key=True)
    host_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    location = db.Column(db.String(255), nullable=False, index=True)
    price_per_night = db.Column(db.Numeric(10, 2), nullable=False)
    max_guests = db.Column(db.Integer, nullable=False, default=1)

    # Status and ratings
    is_active = db.Column(db.Boolean, default=True)
    rating_avg = db.Column(db.Float, default=0.0)
    rating_count = db.Column(db.Integer, default=0)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    bookings = db.relationship('Booking', backref='property', lazy='dynamic')
    reviews = db.relationship('Review', backref='property', lazy='dynamic')

    __table_args__ = (
        db.CheckConstraint('price_per_night > 0', name='property_price_positive'),
        db.CheckConstraint('max_guests >= 1', name='property_max_guests_positive'),
    )

    def update_rating(self):
        """Update average rating and count from reviews"""
        from stayhub.models.review import Review

        avg, count = db.session.query(
            func.avg(Review.rating), func.count(Review.id)
        ).filter(Review.property_id == self.id).one()

        self.rating_avg = round(float(avg), 2) if count else 0.0
        self.rating_count = count

    def to_dict(self, include_host=False):
        data = {
            'id': self.id,
            'host_id': self.host_id,
            'title': self.title,
            'description': self.description,
            'location': self.location,
            'price_per_night': float(self.price_per_night),
            'max_guests': self.max_guests,
            'is_active': self.is_active,
            'rating_avg': self.rating_avg,
            'rating_count': self.rating_count,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat()
        }

        if include_host and self.host:
            data['host'] = {
                'id': self.host.id,
                'name': self.host.name
            }

        return data

    def __repr__(self):
        return f'<Property {self.title}>'
