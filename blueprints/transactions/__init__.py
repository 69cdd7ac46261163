from flask import Blueprint
from flask_login import login_required
from utils.period_guard import require_active_month

transactions_bp = Blueprint('transactions', __name__, url_prefix='/api/transactions')

# Require authentication for all routes in this blueprint
@transactions_bp.before_request
@login_required
def require_login():
    pass

# Resolve the active month (rolling over / posting recurring expenses) first
transactions_bp.before_request(require_active_month)

from . import routes
