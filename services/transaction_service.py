"""
Transaction Service
Manual expense entry, listing with filters, edits and soft deletes.

Deleted transactions are never removed: ``is_deleted`` hides them from lists
and totals while ``get_transaction`` can still fetch them by id.
"""
from datetime import datetime

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models.categories import Category
from models.months import Month
from models.payment_methods import PaymentMethod
from models.transactions import Transaction
from utils import civil_time
from utils.db_helpers import owner_query, owner_get, to_money, to_int
from utils.results import (
    success, failure, unauthenticated, storage_failure,
    VALIDATION_ERROR, NOT_FOUND,
)

DEFAULT_PAGE_SIZE = 100


def _parse_datetime(value):
    """Parse an ISO date/datetime string, returning None when unparseable"""
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        return None


class TransactionService:
    """Service for manually entered expenses"""

    @staticmethod
    def _clean_note(note):
        note = (note or '').strip()
        return note[:500] or None

    @staticmethod
    def create_transaction(user_id, month_id, amount, category_id, merchant, payment_method_id, note=None):
        """Record a manual (non-recurring) expense"""
        if user_id is None:
            return unauthenticated()

        amount = to_money(amount)
        if amount is None or amount <= 0:
            return failure(VALIDATION_ERROR, 'Amount must be positive')
        merchant = (merchant or '').strip()
        if not merchant:
            return failure(VALIDATION_ERROR, 'Merchant is required')
        month_id, category_id, payment_method_id = to_int(month_id), to_int(category_id), to_int(payment_method_id)
        if month_id is None or category_id is None or payment_method_id is None:
            return failure(VALIDATION_ERROR, 'month, category, and payment method required')

        try:
            if owner_get(Month, month_id, user_id) is None:
                return failure(NOT_FOUND, 'Month not found')
            if owner_get(Category, category_id, user_id) is None:
                return failure(NOT_FOUND, 'Category not found')
            if owner_get(PaymentMethod, payment_method_id, user_id) is None:
                return failure(NOT_FOUND, 'Payment method not found')

            txn = Transaction(
                user_id=user_id,
                month_id=month_id,
                amount=amount,
                category_id=category_id,
                merchant=merchant[:255],
                payment_method_id=payment_method_id,
                note=TransactionService._clean_note(note),
                is_recurring_instance=False,
                created_at=civil_time.utcnow_naive(),
            )
            db.session.add(txn)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'create_transaction failed for user {user_id}')
            return storage_failure(exc)

        return success({'id': txn.id})

    @staticmethod
    def get_transaction(user_id, transaction_id):
        """Fetch one transaction by id, including soft-deleted ones"""
        if user_id is None:
            return unauthenticated()

        try:
            txn = owner_get(Transaction, to_int(transaction_id), user_id)
            if txn is None:
                return failure(NOT_FOUND, 'Transaction not found')
            data = txn.to_dict()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'get_transaction failed for {transaction_id}')
            return storage_failure(exc)

        return success(data)

    @staticmethod
    def list_transactions(user_id, month_id, query=None, category_id=None, payment_method_id=None,
                          limit=None, offset=0, date_from=None, date_to=None):
        """
        List a month's non-deleted transactions, newest first.

        Args:
            query: case-insensitive substring matched against merchant and note
            date_from / date_to: ISO datetimes bounding created_at (inclusive)
            limit: page size, capped at TRANSACTION_PAGE_LIMIT

        Returns:
            dict with transactions (one page) and total (all matches)
        """
        if user_id is None:
            return unauthenticated()
        month_id = to_int(month_id)
        if month_id is None:
            return failure(VALIDATION_ERROR, 'month_id required')

        max_limit = current_app.config.get('TRANSACTION_PAGE_LIMIT', 500)
        limit = to_int(limit) if limit is not None else DEFAULT_PAGE_SIZE
        offset = to_int(offset) if offset is not None else 0
        if limit is None or limit < 1 or offset is None or offset < 0:
            return failure(VALIDATION_ERROR, 'limit and offset must be non-negative integers')
        limit = min(limit, max_limit)

        try:
            q = owner_query(Transaction, user_id).filter(
                Transaction.month_id == month_id,
                Transaction.is_deleted.is_(False),
            )
            if category_id:
                q = q.filter(Transaction.category_id == to_int(category_id))
            if payment_method_id:
                q = q.filter(Transaction.payment_method_id == to_int(payment_method_id))
            start = _parse_datetime(date_from)
            if start:
                q = q.filter(Transaction.created_at >= start)
            end = _parse_datetime(date_to)
            if end:
                q = q.filter(Transaction.created_at <= end)
            term = (query or '').strip()
            if term:
                pattern = f'%{term}%'
                q = q.filter(or_(Transaction.merchant.ilike(pattern), Transaction.note.ilike(pattern)))

            total = q.count()
            rows = (
                q.order_by(Transaction.created_at.desc(), Transaction.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            data = [t.to_dict() for t in rows]
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'list_transactions failed for user {user_id}')
            return storage_failure(exc)

        return success({'transactions': data, 'total': total})

    @staticmethod
    def update_transaction(user_id, transaction_id, fields):
        """Partially update amount, category, merchant, payment method or note"""
        if user_id is None:
            return unauthenticated()
        transaction_id = to_int(transaction_id)
        if transaction_id is None:
            return failure(VALIDATION_ERROR, 'id required')
        fields = fields or {}

        try:
            txn = owner_get(Transaction, transaction_id, user_id)
            if txn is None or txn.is_deleted:
                return failure(NOT_FOUND, 'Transaction not found')

            if 'amount' in fields:
                amount = to_money(fields['amount'])
                if amount is None or amount <= 0:
                    return failure(VALIDATION_ERROR, 'amount must be positive')
                txn.amount = amount
            if 'merchant' in fields:
                merchant = (fields['merchant'] or '').strip()
                if not merchant:
                    return failure(VALIDATION_ERROR, 'Merchant is required')
                txn.merchant = merchant[:255]
            if 'category_id' in fields:
                category = owner_get(Category, to_int(fields['category_id']), user_id)
                if category is None:
                    return failure(NOT_FOUND, 'Category not found')
                txn.category_id = category.id
            if 'payment_method_id' in fields:
                method = owner_get(PaymentMethod, to_int(fields['payment_method_id']), user_id)
                if method is None:
                    return failure(NOT_FOUND, 'Payment method not found')
                txn.payment_method_id = method.id
            if 'note' in fields:
                txn.note = TransactionService._clean_note(fields['note'])

            txn.updated_at = civil_time.utcnow_naive()
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'update_transaction failed for {transaction_id}')
            return storage_failure(exc)

        return success({'id': transaction_id})

    @staticmethod
    def delete_transaction(user_id, transaction_id):
        """Soft-delete a transaction; it stays retrievable but leaves every total"""
        if user_id is None:
            return unauthenticated()
        transaction_id = to_int(transaction_id)
        if transaction_id is None:
            return failure(VALIDATION_ERROR, 'id required')

        try:
            txn = owner_get(Transaction, transaction_id, user_id)
            if txn is None:
                return failure(NOT_FOUND, 'Transaction not found')
            if not txn.is_deleted:
                now = civil_time.utcnow_naive()
                txn.is_deleted = True
                txn.deleted_at = now
                txn.updated_at = now
                db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'delete_transaction failed for {transaction_id}')
            return storage_failure(exc)

        current_app.logger.info(f'user {user_id}: soft-deleted transaction {transaction_id}')
        return success({'id': transaction_id})

    @staticmethod
    def merchant_suggestions(user_id, q='', limit=8):
        """Distinct recent merchants, optionally filtered by substring"""
        if user_id is None:
            return unauthenticated()

        limit = min(max(to_int(limit) or 8, 1), 20)
        term = (q or '').strip()

        try:
            query = owner_query(Transaction, user_id).filter(Transaction.is_deleted.is_(False))
            if term:
                query = query.filter(Transaction.merchant.ilike(f'%{term}%'))
            rows = (
                query.with_entities(Transaction.merchant)
                .order_by(Transaction.created_at.desc(), Transaction.id.desc())
                .limit(limit * 5)
                .all()
            )
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'merchant_suggestions failed for user {user_id}')
            return storage_failure(exc)

        suggestions = []
        for (merchant,) in rows:
            if merchant and merchant not in suggestions:
                suggestions.append(merchant)
            if len(suggestions) >= limit:
                break
        return success({'suggestions': suggestions})
