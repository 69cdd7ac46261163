"""
Database query helpers for owner-scoped data.

Every month, transaction, recurring template, category and payment method
belongs to exactly one user.  Services take the owner's id explicitly and go
through these helpers so one user can never see another user's records.

Usage
-----
In a blueprint route::

    from utils.db_helpers import get_user_id

    result = PeriodService.get_active_month(get_user_id())

In a service::

    from utils.db_helpers import owner_query, owner_get

    months = owner_query(Month, user_id).order_by(Month.started_at.desc()).all()
    template = owner_get(RecurringTemplate, template_id, user_id)
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask_login import current_user


# ---------------------------------------------------------------------------
# Core helpers
# ---------------------------------------------------------------------------

def get_user_id():
    """Return ``current_user.id``, or ``None`` if not authenticated."""
    if current_user.is_authenticated:
        return current_user.id
    return None


def owner_query(model, user_id):
    """Return a SQLAlchemy query pre-filtered to records owned by *user_id*.

    Examples::

        owner_query(Category, uid).order_by(Category.name).all()
        owner_query(Transaction, uid).filter_by(is_deleted=False).count()
    """
    if not hasattr(model, 'user_id'):
        raise AttributeError(
            f"owner_query() called on {model.__name__} but it has no user_id column."
        )
    if user_id is None:
        # Return a query that always yields zero rows rather than leaking data
        return model.query.filter(model.id == -1)
    return model.query.filter_by(user_id=user_id)


def owner_get(model, record_id, user_id):
    """Fetch a single record by *record_id*, scoped to *user_id*.

    Returns ``None`` if the record does not exist or belongs to another user.
    """
    if user_id is None or record_id is None:
        return None
    return model.query.filter_by(id=record_id, user_id=user_id).first()


# ---------------------------------------------------------------------------
# Input coercion
# ---------------------------------------------------------------------------

def to_decimal(value):
    """Coerce *value* to a finite ``Decimal`` or return ``None``.

    Booleans are rejected; ``True`` is not an amount.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


MONEY_LIMIT = Decimal('1e8')  # Numeric(10, 2) holds at most 99,999,999.99
CENT = Decimal('0.01')


def to_money(value):
    """Coerce *value* to a 2-place ``Decimal`` that fits a Numeric(10, 2) column.

    Returns ``None`` for anything ``to_decimal`` rejects and for magnitudes the
    column cannot hold; SQLite would otherwise store them as a float infinity.
    """
    number = to_decimal(value)
    # Bound before quantizing: quantize raises once the digits exceed the context precision
    if number is None or abs(number) >= MONEY_LIMIT:
        return None
    number = number.quantize(CENT, rounding=ROUND_HALF_UP)
    if abs(number) >= MONEY_LIMIT:
        return None
    return number


def to_int(value):
    """Coerce *value* to an ``int`` or return ``None`` (``'3.5'`` is rejected)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    number = to_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)


def money(value):
    """Render a stored Numeric as a float for JSON payloads."""
    if value is None:
        return None
    return float(value)
