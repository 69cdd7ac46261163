"""
Tests for PaymentMethodService and SeedService.
"""
import pytest

from models.categories import Category
from models.payment_methods import PaymentMethod
from services.payment_method_service import PaymentMethodService
from services.period_service import PeriodService
from services.recurring_service import RecurringService
from services.seed_service import SeedService
from services.transaction_service import TransactionService
from utils.results import error_code, VALIDATION_ERROR, NOT_FOUND, CONFLICT


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------

class TestSeed:
    def test_new_user_gets_defaults(self, app, user):
        result = SeedService.ensure_user_seed_data(user.id)

        assert result['data'] == {'created_default_categories': True, 'created_cash_method': True}
        names = {c.name for c in Category.query.filter_by(user_id=user.id)}
        assert names == set(app.config['DEFAULT_CATEGORIES'])
        cash = PaymentMethod.query.filter_by(user_id=user.id).one()
        assert (cash.name, cash.method_type) == ('Cash', 'cash')

    def test_seeding_twice_is_harmless(self, app, user):
        SeedService.ensure_user_seed_data(user.id)
        result = SeedService.ensure_user_seed_data(user.id)

        assert result['data'] == {'created_default_categories': False, 'created_cash_method': False}
        assert Category.query.filter_by(user_id=user.id).count() == len(app.config['DEFAULT_CATEGORIES'])


# ---------------------------------------------------------------------------
# Payment methods
# ---------------------------------------------------------------------------

class TestPaymentMethods:
    def test_create_and_list(self, app, user):
        result = PaymentMethodService.create_payment_method(user.id, 'ADCB Debit', 'debit', card_limit='')
        assert result['ok'] is True

        (method,) = PaymentMethodService.list_payment_methods(user.id)['data']['methods']
        assert method['name'] == 'ADCB Debit'
        assert method['type'] == 'debit'
        assert method['card_limit'] is None

    def test_invalid_type(self, app, user):
        assert error_code(PaymentMethodService.create_payment_method(user.id, 'Gold', 'amex')) == VALIDATION_ERROR

    @pytest.mark.parametrize('card_limit', ['-1', 'abc', '1e400', 10 ** 8])
    def test_invalid_card_limit(self, app, user, card_limit):
        result = PaymentMethodService.create_payment_method(user.id, 'Gold', 'credit', card_limit=card_limit)
        assert error_code(result) == VALIDATION_ERROR
        assert PaymentMethod.query.count() == 0

    def test_update_rejects_oversized_card_limit(self, app, user, card):
        result = PaymentMethodService.update_payment_method(user.id, card.id, {'card_limit': '1e400'})
        assert error_code(result) == VALIDATION_ERROR
        assert float(card.card_limit) == 10000

    def test_duplicate_name_conflicts(self, app, user, card):
        result = PaymentMethodService.create_payment_method(user.id, card.name, 'credit')
        assert error_code(result) == CONFLICT

    def test_same_name_allowed_for_other_user(self, app, other_user, card):
        assert PaymentMethodService.create_payment_method(other_user.id, card.name, 'credit')['ok'] is True

    def test_update(self, app, user, card):
        result = PaymentMethodService.update_payment_method(
            user.id, card.id, {'card_limit': 15000, 'apple_pay_linked': True}
        )
        assert result['ok'] is True
        assert card.apple_pay_linked is True
        assert float(card.card_limit) == 15000

    def test_update_other_users_method(self, app, other_user, card):
        result = PaymentMethodService.update_payment_method(other_user.id, card.id, {'name': 'Mine now'})
        assert error_code(result) == NOT_FOUND

    def test_delete_unused(self, app, user, card):
        assert PaymentMethodService.delete_payment_method(user.id, card.id)['ok'] is True
        assert PaymentMethod.query.count() == 0

    def test_delete_used_by_template_conflicts(self, app, user, category, card):
        RecurringService.create_template(user.id, {
            'name': 'Gym', 'amount': 300, 'due_day': 5, 'category_id': category.id,
            'merchant': 'Fitness First', 'payment_method_id': card.id,
        })
        assert error_code(PaymentMethodService.delete_payment_method(user.id, card.id)) == CONFLICT


class TestListWithSpent:
    def test_card_spend_and_remaining(self, app, user, category, card, clock):
        clock(2026, 2, 10, 8, 0)
        month_id = PeriodService.get_active_month(user.id)['data']['id']
        SeedService.ensure_user_seed_data(user.id)
        cash = PaymentMethod.query.filter_by(user_id=user.id, name='Cash').one()
        TransactionService.create_transaction(user.id, month_id, 1200, category.id, 'IKEA', card.id)
        TransactionService.create_transaction(user.id, month_id, 20, category.id, 'Karak', cash.id)

        methods = PaymentMethodService.list_with_spent(user.id, month_id)['data']['methods']

        assert methods == [{
            'id': card.id,
            'name': 'ENBD Visa',
            'type': 'credit',
            'card_limit': 10000,
            'spent': 1200,
            'remaining': 8800,
        }]

    @pytest.mark.parametrize('month_id', [None, 'x'])
    def test_month_required(self, app, user, month_id):
        assert error_code(PaymentMethodService.list_with_spent(user.id, month_id)) == VALIDATION_ERROR
