from flask import g, request
from . import insights_bp
from services.insights_service import InsightsService
from utils.db_helpers import get_user_id
from utils.results import to_response


def _month_id():
    return request.args.get('month_id') or g.active_month['id']


@insights_bp.route('', methods=['GET'])
def index():
    """Category, merchant and payment-method breakdowns with highlights"""
    return to_response(InsightsService.insights(get_user_id(), _month_id()))


@insights_bp.route('/overview', methods=['GET'])
def overview():
    """Spent vs limit summary for the home screen"""
    return to_response(InsightsService.month_overview(get_user_id(), _month_id()))
