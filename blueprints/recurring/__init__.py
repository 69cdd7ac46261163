from flask import Blueprint
from flask_login import login_required
from utils.period_guard import require_active_month

recurring_bp = Blueprint('recurring', __name__, url_prefix='/api/recurring')

# Require authentication for all routes in this blueprint
@recurring_bp.before_request
@login_required
def require_login():
    pass

# Resolve the active month (rolling over / posting recurring expenses) first
recurring_bp.before_request(require_active_month)

from . import routes
