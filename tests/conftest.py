"""
Shared pytest fixtures for the SpendMeter test suite.

All tests run against an in-memory SQLite database (TestingConfig).
A single app context is pushed for the whole session so that SQLAlchemy
objects remain attached throughout.  After each test, clean_db wipes all
rows so tests are fully independent.

The wall clock is never read directly in tests: use the ``clock`` fixture to
pin ``utils.civil_time.utcnow`` to a known instant.
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from app import create_app
from extensions import db as _db


# ---------------------------------------------------------------------------
# Application / database lifecycle
# ---------------------------------------------------------------------------

@pytest.fixture(scope='session')
def app():
    """Create a test Flask application with an in-memory SQLite database."""
    application = create_app('testing')
    ctx = application.app_context()
    ctx.push()
    _db.create_all()
    yield application
    _db.session.remove()
    _db.drop_all()
    ctx.pop()


@pytest.fixture(autouse=True)
def clean_db(app):
    """Wipe every table after each test so tests never share state."""
    yield
    _db.session.rollback()
    for table in reversed(_db.metadata.sorted_tables):
        _db.session.execute(table.delete())
    _db.session.commit()
    _db.session.expunge_all()


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

@pytest.fixture
def clock(monkeypatch):
    """Return a setter that pins the current instant (given in UTC)."""
    def _set(*args):
        instant = datetime(*args, tzinfo=timezone.utc)
        monkeypatch.setattr('utils.civil_time.utcnow', lambda: instant)
        return instant
    return _set


# ---------------------------------------------------------------------------
# Common model helpers
# ---------------------------------------------------------------------------

def make_user(email='owner@example.com', name='Owner'):
    from models.users import User
    u = User(email=email, name=name, currency_code='AED')
    u.set_password('TestPass1!')
    _db.session.add(u)
    _db.session.commit()
    return u


@pytest.fixture
def user(app):
    return make_user()


@pytest.fixture
def other_user(app):
    return make_user(email='other@example.com', name='Other')


@pytest.fixture
def category(app, user):
    from models.categories import Category
    c = Category(user_id=user.id, name='Bills', is_default=True)
    _db.session.add(c)
    _db.session.commit()
    return c


@pytest.fixture
def card(app, user):
    from models.payment_methods import PaymentMethod
    pm = PaymentMethod(
        user_id=user.id,
        name='ENBD Visa',
        method_type='credit',
        card_limit=Decimal('10000'),
        is_active=True,
    )
    _db.session.add(pm)
    _db.session.commit()
    return pm
