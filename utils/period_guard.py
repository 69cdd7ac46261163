"""
Per-request month resolution for the budgeting blueprints.

Before any budgeting route runs:

    1. resolve (or lazily open) the user's active month
    2. roll over when its label no longer matches the current civil month;
       a CONFLICT means another request rolled over first, so re-read
    3. post any recurring expenses that have come due in that month

The resolved month dict is stored on ``g.active_month``.  Nothing is cached
between requests.
"""
from flask import current_app, g

from services.period_service import PeriodService
from services.recurring_service import RecurringService
from utils.db_helpers import get_user_id
from utils.results import error_code, to_response, CONFLICT


def resolve_active_month(user_id):
    """
    Run steps 1-3 for *user_id*.

    Returns the result of the last month lookup: a success carrying the active
    month, or the failure that stopped resolution.
    """
    result = PeriodService.get_active_month(user_id)
    if not result['ok']:
        return result

    check = PeriodService.is_rollover_needed(user_id)
    if check['ok'] and check['data']['needed']:
        rolled = PeriodService.rollover(user_id, label=check['data']['suggested_label'])
        if rolled['ok']:
            result = {'ok': True, 'data': rolled['data']['new_month']}
        elif error_code(rolled) == CONFLICT:
            current_app.logger.info(f'user {user_id}: rollover already done elsewhere, re-reading')
            result = PeriodService.get_active_month(user_id)
            if not result['ok']:
                return result
        else:
            return rolled

    applied = RecurringService.ensure_applied(user_id, result['data']['id'])
    if not applied['ok']:
        # Posting is retried on the next request; the page can still render
        current_app.logger.warning(
            f"user {user_id}: recurring posting failed: {applied['error']['message']}"
        )
    return result


def require_active_month():
    """``before_request`` hook: abort with the error response if no month can be resolved."""
    result = resolve_active_month(get_user_id())
    if not result['ok']:
        return to_response(result)
    g.active_month = result['data']
    return None
