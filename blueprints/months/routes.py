from flask import g, request
from . import months_bp
from services.period_service import PeriodService
from utils.db_helpers import get_user_id
from utils.results import success, to_response


def _payload():
    return request.get_json(silent=True) or {}


@months_bp.route('', methods=['GET'])
def index():
    """List recent months, newest first"""
    return to_response(PeriodService.list_months(get_user_id(), limit=request.args.get('limit')))


@months_bp.route('/active', methods=['GET'])
def active():
    """The active month as resolved for this request"""
    return to_response(success(g.active_month))


@months_bp.route('/rollover-status', methods=['GET'])
def rollover_status():
    return to_response(PeriodService.is_rollover_needed(get_user_id()))


@months_bp.route('/rollover', methods=['POST'])
def rollover():
    """Manually start a new month; omitting spending_limit carries the current one forward"""
    data = _payload()
    result = PeriodService.rollover(
        get_user_id(),
        label=data.get('label'),
        spending_limit=data.get('spending_limit'),
    )
    return to_response(result, status=201)


@months_bp.route('/active/limit', methods=['PATCH'])
def update_limit():
    data = _payload()
    return to_response(PeriodService.set_active_month_limit(get_user_id(), data.get('spending_limit')))


@months_bp.route('/<int:month_id>/spent', methods=['GET'])
def spent(month_id):
    return to_response(PeriodService.get_month_spent(get_user_id(), month_id))
