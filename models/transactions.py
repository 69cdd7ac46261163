from datetime import datetime, timezone
from extensions import db
from utils.db_helpers import money


class Transaction(db.Model):
    __tablename__ = 'transactions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    month_id = db.Column(db.Integer, db.ForeignKey('months.id'), nullable=False, index=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=False)
    merchant = db.Column(db.String(255), nullable=False)
    payment_method_id = db.Column(db.Integer, db.ForeignKey('payment_methods.id'), nullable=False)
    note = db.Column(db.String(500))

    # Set by the recurring materializer; recurring_template_id is present iff is_recurring_instance
    is_recurring_instance = db.Column(db.Boolean, nullable=False, default=False)
    recurring_template_id = db.Column(db.Integer, db.ForeignKey('recurring_templates.id'), nullable=True)

    # Soft delete: rows are kept for audit but excluded from every total
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    deleted_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    # Relationships
    month = db.relationship('Month', back_populates='transactions')
    category = db.relationship('Category', foreign_keys=[category_id])
    payment_method = db.relationship('PaymentMethod', foreign_keys=[payment_method_id])
    recurring_template = db.relationship('RecurringTemplate', back_populates='instances')

    __table_args__ = (
        # One recurring instance per (month, template); concurrent materializers
        # lose on this index rather than posting twice.
        db.Index(
            'uq_transactions_recurring_instance',
            'month_id',
            'recurring_template_id',
            unique=True,
            sqlite_where=db.text('is_recurring_instance = 1'),
            postgresql_where=db.text('is_recurring_instance'),
        ),
        db.CheckConstraint('amount > 0', name='ck_transactions_amount_positive'),
    )

    def to_dict(self):
        pm = self.payment_method
        return {
            'id': self.id,
            'month_id': self.month_id,
            'amount': money(self.amount),
            'merchant': self.merchant,
            'note': self.note,
            'category': {
                'id': self.category_id,
                'name': self.category.name if self.category else '',
            },
            'payment_method': {
                'id': self.payment_method_id,
                'name': pm.name if pm else '',
                'type': pm.method_type if pm else 'cash',
            },
            'is_recurring_instance': bool(self.is_recurring_instance),
            'recurring_template_id': self.recurring_template_id,
            'is_deleted': bool(self.is_deleted),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Transaction {self.merchant} - {self.amount}>'
