"""
Recurring Service
Recurring expense templates and the materializer that posts one transaction
per template per month once the template's due day has passed.

``ensure_applied`` runs on every request to the budgeting pages, so it must be
cheap when nothing is due and must never post twice.  The pre-check below
only avoids needless inserts; the partial unique index on
``transactions (month_id, recurring_template_id)`` is what guarantees a single
instance when two requests materialize at the same moment.
"""
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models.categories import Category
from models.months import Month
from models.payment_methods import PaymentMethod
from models.recurring_templates import RecurringTemplate
from models.transactions import Transaction
from utils import civil_time
from utils.db_helpers import owner_query, owner_get, to_money, to_int
from utils.results import (
    success, failure, unauthenticated, storage_failure,
    VALIDATION_ERROR, NOT_FOUND, CONFLICT, INTERNAL_ERROR,
)

TEMPLATE_FIELDS = ('name', 'amount', 'due_day', 'category_id', 'merchant', 'payment_method_id', 'is_active')


class RecurringService:
    """Service for recurring templates and their monthly materialization"""

    # ------------------------------------------------------------------
    # Date arithmetic
    # ------------------------------------------------------------------

    @staticmethod
    def effective_due_day(due_day, year, month):
        """Clamp *due_day* to the length of the month (31 -> 28 in Feb 2026)"""
        return min(due_day, civil_time.last_day_of_month(year, month))

    @staticmethod
    def is_due(today, period, due_day):
        """
        Decide whether a template is due for a month.

        Args:
            today: civil date as (year, month, day)
            period: the target month as (year, month)
            due_day: the template's due day (1-31)

        Any later civil month counts as due; in the month itself the clamped
        due day must have been reached.
        """
        today_year, today_month, today_day = today
        period_year, period_month = period

        if (today_year, today_month) > (period_year, period_month):
            return True
        if (today_year, today_month) == (period_year, period_month):
            return today_day >= RecurringService.effective_due_day(due_day, period_year, period_month)
        return False

    # ------------------------------------------------------------------
    # Materializer
    # ------------------------------------------------------------------

    @staticmethod
    def _find_instance(month_id, template_id):
        return Transaction.query.filter_by(
            month_id=month_id,
            recurring_template_id=template_id,
            is_recurring_instance=True,
        ).first()

    @staticmethod
    def _record_last_generated(user_id, template_id, month_id):
        """Update the template's last_generated_month_id cache; failures are only logged"""
        try:
            RecurringTemplate.query.filter_by(id=template_id, user_id=user_id).update({
                'last_generated_month_id': month_id,
                'updated_at': civil_time.utcnow_naive(),
            })
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.warning(
                f'template {template_id}: could not record last generated month {month_id}',
                exc_info=True,
            )

    @staticmethod
    def ensure_applied(user_id, month_id):
        """
        Post every due, not-yet-posted active template into the month.

        Safe to call repeatedly and concurrently.  Only the active month may
        be targeted; closed months are never back-filled.

        Returns:
            dict with created_count and created_transaction_ids for this call
        """
        if user_id is None:
            return unauthenticated()
        month_id = to_int(month_id)
        if month_id is None:
            return failure(VALIDATION_ERROR, 'month_id required')

        try:
            month = owner_get(Month, month_id, user_id)
            if month is None:
                return failure(NOT_FOUND, 'Month not found')
            if not month.is_active:
                return failure(VALIDATION_ERROR, 'Recurring expenses can only be applied to the active month')

            period = month.period
            today = civil_time.civil_today()

            templates = (
                owner_query(RecurringTemplate, user_id)
                .filter_by(is_active=True)
                .order_by(RecurringTemplate.id)
                .all()
            )
            # Plain copies: a rollback inside the loop expires ORM instances
            plans = [
                {
                    'id': t.id,
                    'due_day': t.due_day,
                    'amount': t.amount,
                    'category_id': t.category_id,
                    'merchant': t.merchant,
                    'payment_method_id': t.payment_method_id,
                }
                for t in templates
            ]
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'ensure_applied failed loading month {month_id}')
            return storage_failure(exc)

        created_ids = []
        for plan in plans:
            if not RecurringService.is_due(today, period, plan['due_day']):
                continue

            try:
                if RecurringService._find_instance(month_id, plan['id']) is not None:
                    continue

                txn = Transaction(
                    user_id=user_id,
                    month_id=month_id,
                    amount=plan['amount'],
                    category_id=plan['category_id'],
                    merchant=plan['merchant'],
                    payment_method_id=plan['payment_method_id'],
                    is_recurring_instance=True,
                    recurring_template_id=plan['id'],
                    created_at=civil_time.utcnow_naive(),
                )
                db.session.add(txn)
                db.session.commit()
                created_ids.append(txn.id)
            except IntegrityError as exc:
                db.session.rollback()
                # Lost the race to a concurrent call: the instance now exists
                if RecurringService._find_instance(month_id, plan['id']) is not None:
                    current_app.logger.info(
                        f'template {plan["id"]}: already posted to month {month_id} concurrently'
                    )
                    continue
                current_app.logger.exception(f'template {plan["id"]}: insert rejected')
                return failure(INTERNAL_ERROR, 'Could not post recurring expense', details=str(exc.orig))
            except SQLAlchemyError as exc:
                db.session.rollback()
                current_app.logger.exception(f'template {plan["id"]}: materialization failed')
                return storage_failure(exc)

            RecurringService._record_last_generated(user_id, plan['id'], month_id)

        if created_ids:
            current_app.logger.info(
                f'user {user_id}: posted {len(created_ids)} recurring expense(s) to month {month_id}'
            )

        return success({
            'created_count': len(created_ids),
            'created_transaction_ids': created_ids,
        })

    # ------------------------------------------------------------------
    # Template management
    # ------------------------------------------------------------------

    @staticmethod
    def _clean_fields(user_id, fields, partial):
        """
        Validate template input.

        Returns (clean_fields, None) or (None, failure_result).  With
        *partial* only the supplied keys are checked.
        """
        clean = {}

        def supplied(key):
            return key in fields if partial else True

        if supplied('name'):
            name = (fields.get('name') or '').strip()
            if not name:
                return None, failure(VALIDATION_ERROR, 'Name is required')
            clean['name'] = name[:100]

        if supplied('amount'):
            amount = to_money(fields.get('amount'))
            if amount is None or amount <= 0:
                return None, failure(VALIDATION_ERROR, 'amount must be positive')
            clean['amount'] = amount

        if supplied('due_day'):
            due_day = to_int(fields.get('due_day'))
            if due_day is None or not 1 <= due_day <= 31:
                return None, failure(VALIDATION_ERROR, 'due_day must be 1-31')
            clean['due_day'] = due_day

        if supplied('merchant'):
            merchant = (fields.get('merchant') or '').strip()
            if not merchant:
                return None, failure(VALIDATION_ERROR, 'Merchant is required')
            clean['merchant'] = merchant[:255]

        if supplied('category_id'):
            category = owner_get(Category, to_int(fields.get('category_id')), user_id)
            if category is None:
                return None, failure(NOT_FOUND, 'Category not found')
            clean['category_id'] = category.id

        if supplied('payment_method_id'):
            method = owner_get(PaymentMethod, to_int(fields.get('payment_method_id')), user_id)
            if method is None:
                return None, failure(NOT_FOUND, 'Payment method not found')
            clean['payment_method_id'] = method.id

        if 'is_active' in fields:
            clean['is_active'] = bool(fields.get('is_active'))

        return clean, None

    @staticmethod
    def list_templates(user_id):
        """List all of the user's templates, active or not"""
        if user_id is None:
            return unauthenticated()

        try:
            templates = owner_query(RecurringTemplate, user_id).order_by(RecurringTemplate.name).all()
            data = [t.to_dict() for t in templates]
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'list_templates failed for user {user_id}')
            return storage_failure(exc)

        return success({'templates': data})

    @staticmethod
    def create_template(user_id, fields):
        """Create a recurring template from a dict of TEMPLATE_FIELDS"""
        if user_id is None:
            return unauthenticated()

        try:
            clean, error = RecurringService._clean_fields(user_id, fields or {}, partial=False)
            if error:
                return error
            clean.setdefault('is_active', True)

            template = RecurringTemplate(user_id=user_id, **clean)
            db.session.add(template)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'create_template failed for user {user_id}')
            return storage_failure(exc)

        current_app.logger.info(f'user {user_id}: created recurring template {template.id}')
        return success({'id': template.id})

    @staticmethod
    def update_template(user_id, template_id, fields):
        """
        Apply a partial update.  Deactivating a template stops future posting
        only; transactions it already generated are left alone.
        """
        if user_id is None:
            return unauthenticated()
        template_id = to_int(template_id)
        if template_id is None:
            return failure(VALIDATION_ERROR, 'id required')

        try:
            template = owner_get(RecurringTemplate, template_id, user_id)
            if template is None:
                return failure(NOT_FOUND, 'Recurring template not found')

            clean, error = RecurringService._clean_fields(user_id, fields or {}, partial=True)
            if error:
                return error

            for key, value in clean.items():
                setattr(template, key, value)
            template.updated_at = civil_time.utcnow_naive()
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'update_template failed for template {template_id}')
            return storage_failure(exc)

        return success({'id': template_id})

    @staticmethod
    def delete_template(user_id, template_id):
        """
        Delete a template that has never posted; otherwise CONFLICT (deactivate it instead).

        A transaction carries recurring_template_id exactly when it is a recurring
        instance, and the (month_id, recurring_template_id) index is what stops a
        template posting twice in a month. ON DELETE SET NULL on that foreign key
        would leave instances with no template and outside the index, so a
        template with history is kept.
        """
        if user_id is None:
            return unauthenticated()
        template_id = to_int(template_id)
        if template_id is None:
            return failure(VALIDATION_ERROR, 'id required')

        try:
            template = owner_get(RecurringTemplate, template_id, user_id)
            if template is None:
                return failure(NOT_FOUND, 'Recurring template not found')

            if template.instances.count() > 0:
                return failure(
                    CONFLICT,
                    'Cannot delete: this template has posted transactions. Deactivate it instead.',
                )

            db.session.delete(template)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'delete_template failed for template {template_id}')
            return storage_failure(exc)

        return success({'id': template_id})
