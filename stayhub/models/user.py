from stayhub import db
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from flask_jwt_extended import create_access_token, create_refresh_token

ROLES = ('guest', 'host', 'admin')


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    role = db.Column(db.String(20), nullable=False, default='guest')  # guest, host, admin
    bio = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    properties = db.relationship('Property', backref='host', lazy=True)
    bookings = db.relationship('Booking', backref='user', lazy=True)
    reviews = db.relationship('Review', backref='user', lazy=True)
    sent_messages = db.relationship('Message', foreign_keys='Message.sender_id',
                                    backref='sender', lazy='dynamic')
    received_messages = db.relationship('Message', foreign_keys='Message.recipient_id',
                                        backref='recipient', lazy='dynamic')

    __table_args__ = (
        db.CheckConstraint("role IN ('guest', 'host', 'admin')", name='user_role_valid'),
    )

    @property
    def is_admin(self):
        return self.role == 'admin'

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def generate_tokens(self):
        access_token = create_access_token(identity=str(self.id), additional_claims={'role': self.role})
        refresh_token = create_refresh_token(identity=str(self.id))
        return access_token, refresh_token

    def to_dict(self, include_private=False):
        data = {
            'id': self.id,
            'name': self.name,
            'role': self.role,
            'bio': self.bio,
            'created_at': self.created_at.isoformat()
        }

        if include_private:
            data.update({
                'email': self.email,
                'phone': self.phone,
                'is_active': self.is_active,
                'updated_at': self.updated_at.isoformat()
            })

        return data

    def __repr__(self):
        return f'<User {self.email}>'
