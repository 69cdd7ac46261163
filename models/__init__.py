# Models package - Import all models for Flask-SQLAlchemy

from models.users import User
from models.categories import Category
from models.payment_methods import PaymentMethod
from models.months import Month
from models.recurring_templates import RecurringTemplate
from models.transactions import Transaction

__all__ = [
    'User',
    'Category',
    'PaymentMethod',
    'Month',
    'RecurringTemplate',
    'Transaction',
]
