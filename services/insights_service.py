"""
Insights Service
Simple per-month aggregation: totals, remaining budget, and breakdowns by
category, merchant and payment method.  Soft-deleted transactions never
contribute to any figure here.
"""
from collections import defaultdict
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models.months import Month
from models.transactions import Transaction
from models.users import User
from utils.db_helpers import owner_query, owner_get, to_int, money
from utils.results import (
    success, failure, unauthenticated, storage_failure,
    VALIDATION_ERROR, NOT_FOUND,
)


def format_amount(amount, currency_code):
    """Whole-unit amount with thousands separators, e.g. 'AED 2,500'"""
    return f'{currency_code} {Decimal(amount):,.0f}'


class InsightsService:

    @staticmethod
    def _load(user_id, month_id):
        """Return (month, live_transactions) or (None, None) when the month is not the user's"""
        month = owner_get(Month, month_id, user_id)
        if month is None:
            return None, None
        transactions = (
            owner_query(Transaction, user_id)
            .filter(Transaction.month_id == month.id, Transaction.is_deleted.is_(False))
            .order_by(Transaction.created_at, Transaction.id)
            .all()
        )
        return month, transactions

    @staticmethod
    def _group(transactions, key):
        """Sum amounts per key, sorted by total descending (ties keep first-seen order)"""
        totals = defaultdict(Decimal)
        for t in transactions:
            totals[key(t)] += Decimal(t.amount)
        return sorted(totals.items(), key=lambda item: item[1], reverse=True)

    @staticmethod
    def summarize(transactions):
        """
        Aggregate a list of live transactions.

        Returns:
            dict with spent_total, recurring_total, transaction_count,
            by_category, by_merchant, by_payment_method and largest
        """
        spent_total = sum((Decimal(t.amount) for t in transactions), Decimal('0'))
        recurring_total = sum(
            (Decimal(t.amount) for t in transactions if t.is_recurring_instance), Decimal('0')
        )
        largest = None
        for t in transactions:
            if largest is None or Decimal(t.amount) > Decimal(largest.amount):
                largest = t

        return {
            'spent_total': spent_total,
            'recurring_total': recurring_total,
            'transaction_count': len(transactions),
            'by_category': InsightsService._group(
                transactions, lambda t: t.category.name if t.category else ''),
            'by_merchant': InsightsService._group(transactions, lambda t: t.merchant),
            'by_payment_method': InsightsService._group(
                transactions, lambda t: t.payment_method.name if t.payment_method else ''),
            'largest': largest,
        }

    @staticmethod
    def month_overview(user_id, month_id):
        """Spent, remaining, top category/merchant and recurring total for a month"""
        if user_id is None:
            return unauthenticated()
        month_id = to_int(month_id)
        if month_id is None:
            return failure(VALIDATION_ERROR, 'month_id is required')

        try:
            month, transactions = InsightsService._load(user_id, month_id)
            if month is None:
                return failure(NOT_FOUND, 'Month not found')
            summary = InsightsService.summarize(transactions)
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'month_overview failed for month {month_id}')
            return storage_failure(exc)

        limit = Decimal(month.spending_limit)
        top_category = summary['by_category'][0] if summary['by_category'] else None
        top_merchant = summary['by_merchant'][0] if summary['by_merchant'] else None

        return success({
            'month': {'id': month.id, 'label': month.label, 'spending_limit': money(limit)},
            'spent_total': money(summary['spent_total']),
            'remaining': money(limit - summary['spent_total']),
            'top_category': {'name': top_category[0], 'total': money(top_category[1])} if top_category else None,
            'top_merchant': {'merchant': top_merchant[0], 'total': money(top_merchant[1])} if top_merchant else None,
            'recurring_total': money(summary['recurring_total']),
            'transaction_count': summary['transaction_count'],
        })

    @staticmethod
    def insights(user_id, month_id):
        """Breakdowns plus a few plain-language highlight sentences"""
        if user_id is None:
            return unauthenticated()
        month_id = to_int(month_id)
        if month_id is None:
            return failure(VALIDATION_ERROR, 'month_id is required')

        try:
            month, transactions = InsightsService._load(user_id, month_id)
            if month is None:
                return failure(NOT_FOUND, 'Month not found')
            summary = InsightsService.summarize(transactions)
            user = db.session.get(User, user_id)
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'insights failed for month {month_id}')
            return storage_failure(exc)

        currency = (user.currency_code if user else None) or current_app.config.get('DEFAULT_CURRENCY', 'AED')
        largest = summary['largest']

        return success({
            'by_category': [{'name': n, 'total': money(v)} for n, v in summary['by_category']],
            'by_merchant': [{'merchant': n, 'total': money(v)} for n, v in summary['by_merchant']],
            'by_payment_method': [{'name': n, 'total': money(v)} for n, v in summary['by_payment_method']],
            'highlights': InsightsService.build_highlights(summary, currency),
            'largest_expense': {
                'merchant': largest.merchant,
                'amount': money(largest.amount),
                'created_at': largest.created_at.isoformat() if largest.created_at else None,
            } if largest else None,
        })

    @staticmethod
    def build_highlights(summary, currency):
        lines = []
        count = summary['transaction_count']
        if count > 0:
            plural = '' if count == 1 else 's'
            lines.append(
                f"Spent {format_amount(summary['spent_total'], currency)} in {count} transaction{plural} this month."
            )
        if summary['by_category']:
            name, total = summary['by_category'][0]
            lines.append(f'Top category: {name} ({format_amount(total, currency)}).')
        if summary['by_merchant']:
            merchant, total = summary['by_merchant'][0]
            lines.append(f'Top merchant: {merchant} ({format_amount(total, currency)}).')
        if summary['largest'] is not None:
            largest = summary['largest']
            lines.append(
                f'Largest single expense: {largest.merchant} ({format_amount(largest.amount, currency)}).'
            )
        if summary['recurring_total'] > 0:
            lines.append(f"Recurring total this month: {format_amount(summary['recurring_total'], currency)}.")
        return lines
