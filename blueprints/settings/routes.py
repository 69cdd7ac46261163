from flask import g, request
from . import settings_bp
from services.payment_method_service import PaymentMethodService
from services.profile_service import ProfileService
from utils.db_helpers import get_user_id
from utils.results import failure, to_response, VALIDATION_ERROR

PAYMENT_METHOD_FIELDS = ('name', 'type', 'card_limit', 'apple_pay_linked', 'is_active')


def _payload():
    return request.get_json(silent=True) or {}


@settings_bp.route('/categories', methods=['GET'])
def categories():
    return to_response(PaymentMethodService.list_categories(get_user_id()))


@settings_bp.route('/payment-methods', methods=['GET'])
def payment_methods():
    return to_response(PaymentMethodService.list_payment_methods(get_user_id()))


@settings_bp.route('/payment-methods/spent', methods=['GET'])
def payment_methods_spent():
    """Card spend against card limits for a month (active month by default)"""
    month_id = request.args.get('month_id') or g.active_month['id']
    return to_response(PaymentMethodService.list_with_spent(get_user_id(), month_id))


@settings_bp.route('/payment-methods', methods=['POST'])
def create_payment_method():
    data = _payload()
    result = PaymentMethodService.create_payment_method(
        get_user_id(),
        name=data.get('name'),
        method_type=data.get('type'),
        card_limit=data.get('card_limit'),
        apple_pay_linked=data.get('apple_pay_linked', False),
    )
    return to_response(result, status=201)


@settings_bp.route('/payment-methods/<int:method_id>', methods=['PATCH'])
def update_payment_method(method_id):
    data = _payload()
    fields = {key: data[key] for key in PAYMENT_METHOD_FIELDS if key in data}
    return to_response(PaymentMethodService.update_payment_method(get_user_id(), method_id, fields))


@settings_bp.route('/payment-methods/<int:method_id>', methods=['DELETE'])
def delete_payment_method(method_id):
    return to_response(PaymentMethodService.delete_payment_method(get_user_id(), method_id))


@settings_bp.route('/profile', methods=['GET'])
def profile():
    return to_response(ProfileService.get_profile(get_user_id()))


@settings_bp.route('/profile', methods=['PATCH'])
def update_profile():
    data = _payload()
    if 'display_name' not in data:
        return to_response(failure(VALIDATION_ERROR, 'display_name required'))
    return to_response(ProfileService.update_display_name(get_user_id(), data['display_name']))
