from datetime import datetime, timezone
from extensions import db
from utils import civil_time
from utils.db_helpers import money


class Month(db.Model):
    """One budgeting period for one user.

    At most one Month per user is active.  The partial unique index below makes
    the database reject a second active row, so two racing rollovers surface as
    an IntegrityError instead of two open months.
    """
    __tablename__ = 'months'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    label = db.Column(db.String(20), nullable=False)  # "Feb 2026"
    spending_limit = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    started_at = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    closed_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship('User', back_populates='months')
    transactions = db.relationship('Transaction', back_populates='month', lazy='dynamic')

    __table_args__ = (
        db.Index(
            'uq_months_one_active_per_user',
            'user_id',
            unique=True,
            sqlite_where=db.text('is_active = 1'),
            postgresql_where=db.text('is_active'),
        ),
        db.CheckConstraint('spending_limit >= 0', name='ck_months_spending_limit_non_negative'),
    )

    @property
    def period(self):
        """Civil ``(year, month)`` in which this month started."""
        return civil_time.period_of(self.started_at)

    def to_dict(self):
        return {
            'id': self.id,
            'label': self.label,
            'spending_limit': money(self.spending_limit),
            'is_active': bool(self.is_active),
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'closed_at': self.closed_at.isoformat() if self.closed_at else None,
        }

    def __repr__(self):
        state = 'active' if self.is_active else 'closed'
        return f'<Month {self.label} ({state})>'
