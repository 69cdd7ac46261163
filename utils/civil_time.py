"""
Civil calendar helpers.

All month-boundary and due-day decisions in SpendMeter are made on the civil
calendar of one fixed timezone (``CIVIL_TIMEZONE``, ``Asia/Dubai`` by
default), not on the server's local clock and not on UTC.

The helpers here work on plain ``(year, month, day)`` integers wherever
possible so the date arithmetic stays deterministic.  ``utcnow()`` is the only
place the wall clock is read; tests patch it::

    monkeypatch.setattr('utils.civil_time.utcnow', lambda: datetime(2026, 2, 1, 6, 0, tzinfo=timezone.utc))
"""
import calendar
from datetime import datetime, timezone

from dateutil import tz

DEFAULT_TIMEZONE = 'Asia/Dubai'

# Fixed English abbreviations; strftime('%b') follows the process locale.
# 'Sep', not the en-GB 'Sept': stored labels are only ever compared with labels
# built here, never with another formatter's output.
MONTH_ABBREVIATIONS = (
    'Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
    'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec',
)


def utcnow():
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def utcnow_naive():
    """Current instant as a naive UTC datetime, the form stored in the database."""
    return utcnow().replace(tzinfo=None)


def civil_timezone_name():
    """Configured civil timezone, falling back to the default outside an app context."""
    try:
        from flask import current_app
        return current_app.config.get('CIVIL_TIMEZONE') or DEFAULT_TIMEZONE
    except RuntimeError:
        return DEFAULT_TIMEZONE  # Outside application context (CLI helpers, pure unit tests)


def civil_zone():
    name = civil_timezone_name()
    zone = tz.gettz(name)
    if zone is None:
        raise ValueError(f"Unknown civil timezone '{name}'")
    return zone


def to_civil(instant):
    """Convert *instant* to the civil timezone.  Naive datetimes are read as UTC."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(civil_zone())


def civil_today():
    """Return today's civil date as ``(year, month, day)``."""
    local = to_civil(utcnow())
    return local.year, local.month, local.day


def period_of(instant):
    """Return the civil ``(year, month)`` that *instant* falls in."""
    local = to_civil(instant)
    return local.year, local.month


def month_label(year, month):
    """Canonical label for a civil month, e.g. ``month_label(2026, 2) == 'Feb 2026'``."""
    if not 1 <= month <= 12:
        raise ValueError(f'month must be 1-12, got {month}')
    return f'{MONTH_ABBREVIATIONS[month - 1]} {year:04d}'


def current_month_label():
    """Label of the civil month containing the current instant."""
    return month_label(*period_of(utcnow()))


def last_day_of_month(year, month):
    """Number of days in *month* of *year* (28-31)."""
    return calendar.monthrange(year, month)[1]
