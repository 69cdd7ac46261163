from flask import g, request
from . import transactions_bp
from services.transaction_service import TransactionService
from utils.db_helpers import get_user_id
from utils.results import to_response

EDITABLE_FIELDS = ('amount', 'category_id', 'merchant', 'payment_method_id', 'note')


def _payload():
    return request.get_json(silent=True) or {}


@transactions_bp.route('', methods=['GET'])
def index():
    """List a month's transactions (the active month unless month_id is given)"""
    args = request.args
    result = TransactionService.list_transactions(
        get_user_id(),
        args.get('month_id') or g.active_month['id'],
        query=args.get('q'),
        category_id=args.get('category_id'),
        payment_method_id=args.get('payment_method_id'),
        limit=args.get('limit'),
        offset=args.get('offset', 0),
        date_from=args.get('date_from'),
        date_to=args.get('date_to'),
    )
    return to_response(result)


@transactions_bp.route('', methods=['POST'])
def create():
    """Record an expense in the active month"""
    data = _payload()
    result = TransactionService.create_transaction(
        get_user_id(),
        data.get('month_id') or g.active_month['id'],
        amount=data.get('amount'),
        category_id=data.get('category_id'),
        merchant=data.get('merchant'),
        payment_method_id=data.get('payment_method_id'),
        note=data.get('note'),
    )
    return to_response(result, status=201)


@transactions_bp.route('/merchants', methods=['GET'])
def merchants():
    """Merchant autocomplete"""
    return to_response(TransactionService.merchant_suggestions(
        get_user_id(), q=request.args.get('q', ''), limit=request.args.get('limit', 8)
    ))


@transactions_bp.route('/<int:transaction_id>', methods=['GET'])
def detail(transaction_id):
    return to_response(TransactionService.get_transaction(get_user_id(), transaction_id))


@transactions_bp.route('/<int:transaction_id>', methods=['PATCH'])
def update(transaction_id):
    data = _payload()
    fields = {key: data[key] for key in EDITABLE_FIELDS if key in data}
    return to_response(TransactionService.update_transaction(get_user_id(), transaction_id, fields))


@transactions_bp.route('/<int:transaction_id>', methods=['DELETE'])
def delete(transaction_id):
    """Soft delete"""
    return to_response(TransactionService.delete_transaction(get_user_id(), transaction_id))
