"""
Payment Method Service
Cards and cash the user pays with, plus the (read-only) category list.
"""
from decimal import Decimal

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models.categories import Category
from models.payment_methods import PaymentMethod, PAYMENT_METHOD_TYPES
from models.recurring_templates import RecurringTemplate
from models.transactions import Transaction
from utils.db_helpers import owner_query, owner_get, to_money, to_int, money
from utils.results import (
    success, failure, unauthenticated, storage_failure,
    VALIDATION_ERROR, NOT_FOUND, CONFLICT,
)

DUPLICATE_NAME_MESSAGE = 'A payment method with this name already exists'


class PaymentMethodService:

    @staticmethod
    def _parse_card_limit(value):
        """Return (limit, ok); a blank value means no limit"""
        if value is None or value == '':
            return None, True
        limit = to_money(value)
        if limit is None or limit < 0:
            return None, False
        return limit, True

    @staticmethod
    def list_categories(user_id):
        if user_id is None:
            return unauthenticated()

        try:
            categories = owner_query(Category, user_id).order_by(Category.name).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'list_categories failed for user {user_id}')
            return storage_failure(exc)

        return success({'categories': [c.to_dict() for c in categories]})

    @staticmethod
    def list_payment_methods(user_id):
        if user_id is None:
            return unauthenticated()

        try:
            methods = owner_query(PaymentMethod, user_id).order_by(PaymentMethod.name).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'list_payment_methods failed for user {user_id}')
            return storage_failure(exc)

        return success({'methods': [m.to_dict() for m in methods]})

    @staticmethod
    def list_with_spent(user_id, month_id):
        """
        Active credit/debit cards with the month's spend and remaining limit.
        Cash is left out; it has no limit to track.
        """
        if user_id is None:
            return unauthenticated()
        month_id = to_int(month_id)
        if month_id is None:
            return failure(VALIDATION_ERROR, 'month_id required')

        try:
            methods = (
                owner_query(PaymentMethod, user_id)
                .filter(PaymentMethod.method_type.in_(('credit', 'debit')))
                .filter_by(is_active=True)
                .order_by(PaymentMethod.name)
                .all()
            )
            totals = dict(
                db.session.query(Transaction.payment_method_id, func.sum(Transaction.amount))
                .filter(
                    Transaction.user_id == user_id,
                    Transaction.month_id == month_id,
                    Transaction.is_deleted.is_(False),
                )
                .group_by(Transaction.payment_method_id)
                .all()
            )
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'list_with_spent failed for user {user_id}')
            return storage_failure(exc)

        data = []
        for m in methods:
            spent = Decimal(str(totals.get(m.id) or 0))
            remaining = (Decimal(m.card_limit) - spent) if m.card_limit is not None else None
            data.append({
                'id': m.id,
                'name': m.name,
                'type': m.method_type,
                'card_limit': money(m.card_limit),
                'spent': money(spent),
                'remaining': money(remaining),
            })
        return success({'methods': data})

    @staticmethod
    def create_payment_method(user_id, name, method_type, card_limit=None, apple_pay_linked=False):
        if user_id is None:
            return unauthenticated()

        name = (name or '').strip()
        if not name:
            return failure(VALIDATION_ERROR, 'Name is required')
        if method_type not in PAYMENT_METHOD_TYPES:
            return failure(VALIDATION_ERROR, 'Type must be credit, debit, or cash')
        card_limit, valid = PaymentMethodService._parse_card_limit(card_limit)
        if not valid:
            return failure(VALIDATION_ERROR, 'Invalid card limit')

        try:
            method = PaymentMethod(
                user_id=user_id,
                name=name[:100],
                method_type=method_type,
                card_limit=card_limit,
                apple_pay_linked=bool(apple_pay_linked),
                is_active=True,
            )
            db.session.add(method)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return failure(CONFLICT, DUPLICATE_NAME_MESSAGE)
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'create_payment_method failed for user {user_id}')
            return storage_failure(exc)

        return success({'id': method.id})

    @staticmethod
    def update_payment_method(user_id, method_id, fields):
        if user_id is None:
            return unauthenticated()
        fields = fields or {}

        try:
            method = owner_get(PaymentMethod, to_int(method_id), user_id)
            if method is None:
                return failure(NOT_FOUND, 'Payment method not found')

            if 'name' in fields:
                name = (fields['name'] or '').strip()
                if not name:
                    return failure(VALIDATION_ERROR, 'Name cannot be empty')
                method.name = name[:100]
            if 'type' in fields:
                if fields['type'] not in PAYMENT_METHOD_TYPES:
                    return failure(VALIDATION_ERROR, 'Type must be credit, debit, or cash')
                method.method_type = fields['type']
            if 'card_limit' in fields:
                card_limit, valid = PaymentMethodService._parse_card_limit(fields['card_limit'])
                if not valid:
                    return failure(VALIDATION_ERROR, 'Invalid card limit')
                method.card_limit = card_limit
            if 'apple_pay_linked' in fields:
                method.apple_pay_linked = bool(fields['apple_pay_linked'])
            if 'is_active' in fields:
                method.is_active = bool(fields['is_active'])

            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return failure(CONFLICT, DUPLICATE_NAME_MESSAGE)
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'update_payment_method failed for {method_id}')
            return storage_failure(exc)

        return success({'id': method.id})

    @staticmethod
    def delete_payment_method(user_id, method_id):
        """Delete a payment method no transaction or template refers to"""
        if user_id is None:
            return unauthenticated()

        try:
            method = owner_get(PaymentMethod, to_int(method_id), user_id)
            if method is None:
                return failure(NOT_FOUND, 'Payment method not found')

            in_use = Transaction.query.filter_by(payment_method_id=method.id).first() is not None
            if not in_use:
                in_use = RecurringTemplate.query.filter_by(payment_method_id=method.id).first() is not None
            if in_use:
                return failure(CONFLICT, 'Cannot delete: this payment method is used in transactions')

            deleted_id = method.id
            db.session.delete(method)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'delete_payment_method failed for {method_id}')
            return storage_failure(exc)

        return success({'id': deleted_id})
