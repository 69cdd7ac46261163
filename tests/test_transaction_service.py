"""
Tests for TransactionService: manual entry, filtered listing, edits and
soft delete.
"""
from decimal import Decimal

import pytest

from extensions import db
from models.transactions import Transaction
from services.period_service import PeriodService
from services.transaction_service import TransactionService
from utils.results import error_code, VALIDATION_ERROR, NOT_FOUND


@pytest.fixture
def month_id(app, user, clock):
    clock(2026, 2, 10, 8, 0)
    return PeriodService.get_active_month(user.id)['data']['id']


def _spend(user, month_id, category, card, merchant, amount, note=None):
    result = TransactionService.create_transaction(
        user.id, month_id, amount, category.id, merchant, card.id, note=note
    )
    assert result['ok'] is True, result
    return result['data']['id']


class TestCreateTransaction:
    def test_creates_manual_expense(self, app, user, month_id, category, card):
        txn_id = _spend(user, month_id, category, card, '  Carrefour ', '215.75', note='weekly shop')

        txn = db.session.get(Transaction, txn_id)
        assert txn.merchant == 'Carrefour'
        assert txn.amount == Decimal('215.75')
        assert txn.is_recurring_instance is False
        assert txn.recurring_template_id is None
        assert txn.note == 'weekly shop'

    @pytest.mark.parametrize('amount', [0, -10, 'abc', None, '1e400', 10 ** 9, '0.001'])
    def test_non_positive_amount_rejected(self, app, user, month_id, category, card, amount):
        result = TransactionService.create_transaction(user.id, month_id, amount, category.id, 'X', card.id)
        assert error_code(result) == VALIDATION_ERROR

    def test_merchant_required(self, app, user, month_id, category, card):
        result = TransactionService.create_transaction(user.id, month_id, 10, category.id, '   ', card.id)
        assert error_code(result) == VALIDATION_ERROR

    def test_unknown_payment_method(self, app, user, month_id, category):
        result = TransactionService.create_transaction(user.id, month_id, 10, category.id, 'X', 9999)
        assert error_code(result) == NOT_FOUND


class TestListTransactions:
    def test_newest_first_and_excludes_deleted(self, app, user, month_id, category, card, clock):
        clock(2026, 2, 10, 8, 0)
        first = _spend(user, month_id, category, card, 'ENOC', 120)
        clock(2026, 2, 11, 8, 0)
        second = _spend(user, month_id, category, card, 'Talabat', 45)
        clock(2026, 2, 12, 8, 0)
        gone = _spend(user, month_id, category, card, 'Noon', 300)
        TransactionService.delete_transaction(user.id, gone)

        data = TransactionService.list_transactions(user.id, month_id)['data']

        assert [t['id'] for t in data['transactions']] == [second, first]
        assert data['total'] == 2

    def test_search_matches_merchant_and_note(self, app, user, month_id, category, card):
        _spend(user, month_id, category, card, 'Spinneys', 80)
        _spend(user, month_id, category, card, 'ENOC', 120, note='spinneys car park')
        _spend(user, month_id, category, card, 'Talabat', 45)

        data = TransactionService.list_transactions(user.id, month_id, query='SPINNEYS')['data']

        assert data['total'] == 2

    def test_pagination(self, app, user, month_id, category, card):
        for i in range(5):
            _spend(user, month_id, category, card, f'Shop {i}', 10 + i)

        data = TransactionService.list_transactions(user.id, month_id, limit=2, offset=4)['data']

        assert data['total'] == 5
        assert len(data['transactions']) == 1

    def test_filter_by_payment_method(self, app, user, month_id, category, card):
        from models.payment_methods import PaymentMethod
        cash = PaymentMethod(user_id=user.id, name='Cash', method_type='cash')
        db.session.add(cash)
        db.session.commit()
        _spend(user, month_id, category, card, 'ENOC', 120)
        _spend(user, month_id, category, cash, 'Karak', 2)

        data = TransactionService.list_transactions(user.id, month_id, payment_method_id=cash.id)['data']

        assert [t['merchant'] for t in data['transactions']] == ['Karak']
        assert data['transactions'][0]['payment_method']['type'] == 'cash'

    def test_invalid_limit(self, app, user, month_id):
        assert error_code(TransactionService.list_transactions(user.id, month_id, limit=0)) == VALIDATION_ERROR


class TestUpdateAndDelete:
    def test_partial_update(self, app, user, month_id, category, card):
        txn_id = _spend(user, month_id, category, card, 'ENOC', 120)

        result = TransactionService.update_transaction(user.id, txn_id, {'amount': '99.5', 'note': 'top-up'})

        assert result['ok'] is True
        txn = db.session.get(Transaction, txn_id)
        assert txn.amount == Decimal('99.50')
        assert txn.note == 'top-up'
        assert txn.merchant == 'ENOC'

    def test_update_rejects_bad_amount(self, app, user, month_id, category, card):
        txn_id = _spend(user, month_id, category, card, 'ENOC', 120)
        assert error_code(TransactionService.update_transaction(user.id, txn_id, {'amount': 0})) == VALIDATION_ERROR

    def test_soft_delete_keeps_row(self, app, user, month_id, category, card):
        txn_id = _spend(user, month_id, category, card, 'ENOC', 120)

        assert TransactionService.delete_transaction(user.id, txn_id)['ok'] is True

        fetched = TransactionService.get_transaction(user.id, txn_id)['data']
        assert fetched['is_deleted'] is True
        txn = db.session.get(Transaction, txn_id)
        assert txn.deleted_at is not None

    def test_deleted_transaction_cannot_be_edited(self, app, user, month_id, category, card):
        txn_id = _spend(user, month_id, category, card, 'ENOC', 120)
        TransactionService.delete_transaction(user.id, txn_id)

        assert error_code(TransactionService.update_transaction(user.id, txn_id, {'amount': 5})) == NOT_FOUND


class TestMerchantSuggestions:
    def test_distinct_recent_merchants(self, app, user, month_id, category, card, clock):
        for day, merchant in enumerate(['ENOC', 'Talabat', 'ENOC', 'Emarat'], start=1):
            clock(2026, 2, day, 8, 0)
            _spend(user, month_id, category, card, merchant, 10)

        suggestions = TransactionService.merchant_suggestions(user.id)['data']['suggestions']
        assert suggestions == ['Emarat', 'ENOC', 'Talabat']

        filtered = TransactionService.merchant_suggestions(user.id, q='en')['data']['suggestions']
        assert filtered == ['ENOC']
