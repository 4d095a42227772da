from stayhub import db
from datetime import datetime


class Message(db.Model):
    __tablename__ = 'messages'

    id = db.Column(db.Integer, primary_key=True)
    sender_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    recipient_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    message_body = db.Column(db.Text, nullable=False)
    sent_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    read_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.CheckConstraint('sender_id <> recipient_id', name='message_not_to_self'),
    )

    def to_dict(self, include_users=False):
        data = {
            'id': self.id,
            'sender_id': self.sender_id,
            'recipient_id': self.recipient_id,
            'message_body': self.message_body,
            'sent_at': self.sent_at.isoformat(),
            'read_at': self.read_at.isoformat() if self.read_at else None
        }

        if include_users:
            data['sender'] = {'id': self.sender.id, 'name': self.sender.name}
            data['recipient'] = {'id': self.recipient.id, 'name': self.recipient.name}

        return data

    def __repr__(self):
        return f'<Message {self.id} {self.sender_id}->{self.recipient_id}>'
