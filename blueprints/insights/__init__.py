from flask import Blueprint
from flask_login import login_required
from utils.period_guard import require_active_month

insights_bp = Blueprint('insights', __name__, url_prefix='/api/insights')

# Require authentication for all routes in this blueprint
@insights_bp.before_request
@login_required
def require_login():
    pass

# Resolve the active month (rolling over / posting recurring expenses) first
insights_bp.before_request(require_active_month)

from . import routes
