from stayhub import db
from datetime import datetime

PAYMENT_METHODS = ('credit_card', 'paypal', 'stripe')
PAYMENT_STATUSES = ('pending', 'completed', 'failed')


class Payment(db.Model):
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey('bookings.id'), nullable=False, unique=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_method = db.Column(db.String(20), nullable=False)  # credit_card, paypal, stripe
    status = db.Column(db.String(20), nullable=False, default='pending')  # pending, completed, failed
    transaction_id = db.Column(db.String(100), nullable=True, index=True)  # Stripe payment intent ID
    refund_id = db.Column(db.String(100), nullable=True)
    payment_date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint("payment_method IN ('credit_card', 'paypal', 'stripe')", name='payment_method_valid'),
        db.CheckConstraint("status IN ('pending', 'completed', 'failed')", name='payment_status_valid'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'booking_id': self.booking_id,
            'amount': float(self.amount),
            'payment_method': self.payment_method,
            'status': self.status,
            'transaction_id': self.transaction_id,
            'refund_id': self.refund_id,
            'payment_date': self.payment_date.isoformat() if self.payment_date else None,
            'created_at': self.created_at.isoformat()
        }

    def __repr__(self):
        return f'<Payment {self.id} booking={self.booking_id} {self.status}>'
