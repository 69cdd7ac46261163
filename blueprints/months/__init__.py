from flask import Blueprint
from flask_login import login_required
from utils.period_guard import require_active_month

months_bp = Blueprint('months', __name__, url_prefix='/api/months')

# Require authentication for all routes in this blueprint
@months_bp.before_request
@login_required
def require_login():
    pass

# Resolve the active month (rolling over / posting recurring expenses) first
months_bp.before_request(require_active_month)

from . import routes
