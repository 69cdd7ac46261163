from flask import Blueprint
from flask_login import login_required
from utils.period_guard import require_active_month

settings_bp = Blueprint('settings', __name__, url_prefix='/api/settings')

# Require authentication for all routes in this blueprint
@settings_bp.before_request
@login_required
def require_login():
    pass

# Resolve the active month (rolling over / posting recurring expenses) first
settings_bp.before_request(require_active_month)

from . import routes
