from extensions import db
from datetime import datetime, timezone
from utils.db_helpers import money


class RecurringTemplate(db.Model):
    """Template for a recurring expense - posts one Transaction per month once due"""
    __tablename__ = 'recurring_templates'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)

    # Schedule
    due_day = db.Column(db.Integer, nullable=False)  # Day of month 1-31, clamped to month length when posting

    # Posting details copied onto each generated transaction
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=False)
    merchant = db.Column(db.String(255), nullable=False)
    payment_method_id = db.Column(db.Integer, db.ForeignKey('payment_methods.id'), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Informational only; idempotency is decided by the transactions table
    last_generated_month_id = db.Column(db.Integer, db.ForeignKey('months.id'), nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), onupdate=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    # Relationships
    category = db.relationship('Category', foreign_keys=[category_id])
    payment_method = db.relationship('PaymentMethod', foreign_keys=[payment_method_id])
    instances = db.relationship('Transaction', back_populates='recurring_template', lazy='dynamic')

    __table_args__ = (
        db.CheckConstraint('amount > 0', name='ck_recurring_templates_amount_positive'),
        db.CheckConstraint('due_day BETWEEN 1 AND 31', name='ck_recurring_templates_due_day_range'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'amount': money(self.amount),
            'due_day': self.due_day,
            'merchant': self.merchant,
            'category': {
                'id': self.category_id,
                'name': self.category.name if self.category else '',
            },
            'payment_method': {
                'id': self.payment_method_id,
                'name': self.payment_method.name if self.payment_method else '',
            },
            'is_active': bool(self.is_active),
            'last_generated_month_id': self.last_generated_month_id,
        }

    def __repr__(self):
        return f'<RecurringTemplate {self.name}: {self.amount} on day {self.due_day}>'
