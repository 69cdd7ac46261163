"""
Seed Service
Gives a new user the default categories and a Cash payment method.
Each piece is only created when missing, so calling it again is harmless.
"""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models.categories import Category
from models.payment_methods import PaymentMethod
from utils.db_helpers import owner_query
from utils.results import success, unauthenticated, storage_failure


class SeedService:

    @staticmethod
    def ensure_user_seed_data(user_id):
        """
        Returns:
            dict with created_default_categories and created_cash_method flags
        """
        if user_id is None:
            return unauthenticated()

        result = {
            'created_default_categories': False,
            'created_cash_method': False,
        }
        cash_name = current_app.config.get('DEFAULT_PAYMENT_METHOD', 'Cash')

        try:
            if owner_query(Category, user_id).first() is None:
                for name in current_app.config.get('DEFAULT_CATEGORIES', []):
                    db.session.add(Category(user_id=user_id, name=name, is_default=True))
                result['created_default_categories'] = True

            if owner_query(PaymentMethod, user_id).filter_by(name=cash_name).first() is None:
                db.session.add(PaymentMethod(
                    user_id=user_id,
                    name=cash_name,
                    method_type='cash',
                    card_limit=None,
                    apple_pay_linked=False,
                    is_active=True,
                ))
                result['created_cash_method'] = True

            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'seed failed for user {user_id}')
            return storage_failure(exc)

        if result['created_default_categories'] or result['created_cash_method']:
            current_app.logger.info(f'user {user_id}: seeded defaults {result}')
        return success(result)
