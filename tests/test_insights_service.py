"""
Tests for InsightsService: month overview and breakdowns.
"""
import pytest

from extensions import db
from models.categories import Category
from services.insights_service import InsightsService, format_amount
from services.period_service import PeriodService
from services.recurring_service import RecurringService
from services.transaction_service import TransactionService
from utils.results import error_code, NOT_FOUND


@pytest.fixture
def month_id(app, user, clock):
    clock(2026, 2, 10, 8, 0)
    PeriodService.get_active_month(user.id)
    return PeriodService.set_active_month_limit(user.id, 5000)['data']['month_id']


@pytest.fixture
def food(app, user):
    c = Category(user_id=user.id, name='Food')
    db.session.add(c)
    db.session.commit()
    return c


def _spend(user, month_id, category, card, merchant, amount):
    return TransactionService.create_transaction(user.id, month_id, amount, category.id, merchant, card.id)['data']['id']


class TestMonthOverview:
    def test_empty_month(self, app, user, month_id):
        data = InsightsService.month_overview(user.id, month_id)['data']

        assert data['spent_total'] == 0
        assert data['remaining'] == 5000
        assert data['top_category'] is None
        assert data['top_merchant'] is None
        assert data['transaction_count'] == 0

    def test_totals_exclude_soft_deleted(self, app, user, month_id, category, food, card):
        _spend(user, month_id, food, card, 'Talabat', 60)
        _spend(user, month_id, food, card, 'Talabat', 40)
        _spend(user, month_id, category, card, 'DEWA', 450)
        gone = _spend(user, month_id, food, card, 'Nobu', 1200)
        TransactionService.delete_transaction(user.id, gone)

        data = InsightsService.month_overview(user.id, month_id)['data']

        assert data['spent_total'] == 550
        assert data['remaining'] == 4450
        assert data['top_category'] == {'name': 'Bills', 'total': 450}
        assert data['top_merchant'] == {'merchant': 'DEWA', 'total': 450}
        assert data['transaction_count'] == 3

    def test_recurring_total(self, app, user, month_id, category, card):
        RecurringService.create_template(user.id, {
            'name': 'Rent', 'amount': 2500, 'due_day': 1, 'category_id': category.id,
            'merchant': 'Landlord', 'payment_method_id': card.id,
        })
        RecurringService.ensure_applied(user.id, month_id)
        _spend(user, month_id, category, card, 'ENOC', 100)

        data = InsightsService.month_overview(user.id, month_id)['data']

        assert data['recurring_total'] == 2500
        assert data['spent_total'] == 2600

    def test_other_users_month(self, app, user, other_user, month_id):
        assert error_code(InsightsService.month_overview(other_user.id, month_id)) == NOT_FOUND


class TestInsights:
    def test_breakdowns_sorted_descending(self, app, user, month_id, category, food, card):
        _spend(user, month_id, food, card, 'Talabat', 60)
        _spend(user, month_id, food, card, 'Spinneys', 300)
        _spend(user, month_id, category, card, 'DEWA', 200)

        data = InsightsService.insights(user.id, month_id)['data']

        assert data['by_category'] == [
            {'name': 'Food', 'total': 360},
            {'name': 'Bills', 'total': 200},
        ]
        assert [m['merchant'] for m in data['by_merchant']] == ['Spinneys', 'DEWA', 'Talabat']
        assert data['by_payment_method'] == [{'name': 'ENBD Visa', 'total': 560}]
        assert data['largest_expense']['merchant'] == 'Spinneys'

    def test_highlights_use_user_currency(self, app, user, month_id, category, card):
        _spend(user, month_id, category, card, 'DEWA', 1450)

        highlights = InsightsService.insights(user.id, month_id)['data']['highlights']

        assert highlights[0] == 'Spent AED 1,450 in 1 transaction this month.'
        assert 'Top category: Bills (AED 1,450).' in highlights

    def test_no_highlights_for_empty_month(self, app, user, month_id):
        data = InsightsService.insights(user.id, month_id)['data']
        assert data['highlights'] == []
        assert data['largest_expense'] is None


def test_format_amount():
    assert format_amount(2500, 'AED') == 'AED 2,500'
    assert format_amount('1234567.4', 'USD') == 'USD 1,234,567'
