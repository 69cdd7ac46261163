from extensions import db
from datetime import datetime, timezone
from utils.db_helpers import money

PAYMENT_METHOD_TYPES = ('credit', 'debit', 'cash')


class PaymentMethod(db.Model):
    """A card or cash wallet that expenses are paid with"""
    __tablename__ = 'payment_methods'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    method_type = db.Column('type', db.String(10), nullable=False)  # credit, debit, cash
    card_limit = db.Column(db.Numeric(10, 2), nullable=True)
    apple_pay_linked = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    __table_args__ = (
        db.UniqueConstraint('user_id', 'name', name='uq_payment_methods_user_name'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.method_type,
            'card_limit': money(self.card_limit),
            'apple_pay_linked': bool(self.apple_pay_linked),
            'is_active': bool(self.is_active),
        }

    def __repr__(self):
        return f'<PaymentMethod {self.name} ({self.method_type})>'
