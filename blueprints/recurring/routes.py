from flask import g, request
from . import recurring_bp
from services.recurring_service import RecurringService, TEMPLATE_FIELDS
from utils.db_helpers import get_user_id
from utils.results import to_response


def _template_fields():
    data = request.get_json(silent=True) or {}
    return {key: data[key] for key in TEMPLATE_FIELDS if key in data}


@recurring_bp.route('', methods=['GET'])
def index():
    """List all recurring templates"""
    return to_response(RecurringService.list_templates(get_user_id()))


@recurring_bp.route('', methods=['POST'])
def create():
    return to_response(RecurringService.create_template(get_user_id(), _template_fields()), status=201)


@recurring_bp.route('/<int:template_id>', methods=['PATCH'])
def update(template_id):
    return to_response(RecurringService.update_template(get_user_id(), template_id, _template_fields()))


@recurring_bp.route('/<int:template_id>', methods=['DELETE'])
def delete(template_id):
    return to_response(RecurringService.delete_template(get_user_id(), template_id))


@recurring_bp.route('/apply', methods=['POST'])
def apply():
    """Post due recurring expenses into the active month (normally done on every request)"""
    return to_response(RecurringService.ensure_applied(get_user_id(), g.active_month['id']))
