"""
Period Service
Owns the active budgeting month for each user: lazy creation on first access,
detection of a new civil month, and the close-then-open rollover that carries
the spending limit forward.

The service keeps no state between calls.  The active month is re-read from
the database on every operation because several app processes may serve the
same user at once; the partial unique index on ``months`` is what finally
guarantees a single active month.
"""
from decimal import Decimal

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from models.months import Month
from models.transactions import Transaction
from utils import civil_time
from utils.db_helpers import owner_query, owner_get, to_money, to_int, money
from utils.results import (
    success, failure, unauthenticated, storage_failure,
    VALIDATION_ERROR, NOT_FOUND, CONFLICT, INTERNAL_ERROR,
)

MAX_LABEL_LENGTH = 20


class PeriodService:
    """Service for the active month and month rollover"""

    @staticmethod
    def _find_active(user_id):
        return owner_query(Month, user_id).filter_by(is_active=True).first()

    @staticmethod
    def _parse_limit(value):
        """Return a non-negative Decimal limit, or None when *value* is not one."""
        limit = to_money(value)
        if limit is None or limit < 0:
            return None
        return limit

    @staticmethod
    def get_active_month(user_id):
        """
        Return the user's active month, opening one for the current civil
        month (limit 0) if none exists.
        """
        if user_id is None:
            return unauthenticated()

        try:
            month = PeriodService._find_active(user_id)
            if month:
                return success(month.to_dict())

            month = Month(
                user_id=user_id,
                label=civil_time.current_month_label(),
                spending_limit=Decimal('0'),
                is_active=True,
                started_at=civil_time.utcnow_naive(),
            )
            db.session.add(month)
            try:
                db.session.commit()
            except IntegrityError:
                # A concurrent request opened the first month; use theirs
                db.session.rollback()
                month = PeriodService._find_active(user_id)
                if month is None:
                    return failure(INTERNAL_ERROR, 'Could not open an active month')
                return success(month.to_dict())

            current_app.logger.info(f'user {user_id}: opened first month {month.label}')
            return success(month.to_dict())
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'get_active_month failed for user {user_id}')
            return storage_failure(exc)

    @staticmethod
    def list_months(user_id, limit=None):
        """List the user's months, newest first"""
        if user_id is None:
            return unauthenticated()

        if limit is None:
            limit = current_app.config.get('MONTH_HISTORY_LIMIT', 24)
        limit = to_int(limit)
        if limit is None or limit < 1:
            return failure(VALIDATION_ERROR, 'limit must be a positive integer')

        try:
            months = (
                owner_query(Month, user_id)
                .order_by(Month.started_at.desc(), Month.id.desc())
                .limit(min(limit, 120))
                .all()
            )
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'list_months failed for user {user_id}')
            return storage_failure(exc)

        return success({'months': [m.to_dict() for m in months]})

    @staticmethod
    def is_rollover_needed(user_id):
        """
        Compare the active month's label with the label for "now".

        Read-only.  Exact string inequality of the labels is the only trigger;
        with no active month at all a rollover is reported as needed.

        Returns:
            dict with needed, suggested_label and current_active_label
        """
        if user_id is None:
            return unauthenticated()

        try:
            month = PeriodService._find_active(user_id)
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'is_rollover_needed failed for user {user_id}')
            return storage_failure(exc)

        suggested = civil_time.current_month_label()
        active_label = month.label if month else None
        return success({
            'needed': active_label != suggested,
            'suggested_label': suggested,
            'current_active_label': active_label,
        })

    @staticmethod
    def rollover(user_id, label=None, spending_limit=None):
        """
        Close the active month (if any) and open a new one.

        Args:
            user_id: Owner of the months
            label: Label for the new month; defaults to the current civil month
            spending_limit: Limit for the new month; defaults to the closed
                month's limit (0 when there was no active month)

        Returns:
            dict with closed_month_id (None if nothing was open) and new_month

        A rollover that loses a race to another rollover gets CONFLICT; the
        caller should re-read the active month instead of retrying.
        """
        if user_id is None:
            return unauthenticated()

        if label is None:
            label = civil_time.current_month_label()
        label = str(label).strip()
        if not label:
            return failure(VALIDATION_ERROR, 'Label is required')
        if len(label) > MAX_LABEL_LENGTH:
            return failure(VALIDATION_ERROR, f'Label must be at most {MAX_LABEL_LENGTH} characters')

        new_limit = None
        if spending_limit is not None:
            new_limit = PeriodService._parse_limit(spending_limit)
            if new_limit is None:
                return failure(VALIDATION_ERROR, 'Invalid spending limit')

        now = civil_time.utcnow_naive()
        try:
            active = PeriodService._find_active(user_id)
            closed_month_id = None

            if active is not None:
                if new_limit is None:
                    new_limit = Decimal(active.spending_limit)
                # Conditional close: a concurrent rollover that already closed
                # this month leaves nothing to update here.
                closed = (
                    Month.query
                    .filter_by(id=active.id, user_id=user_id, is_active=True)
                    .update({'is_active': False, 'closed_at': now})
                )
                if closed == 0:
                    db.session.rollback()
                    current_app.logger.warning(
                        f'user {user_id}: rollover lost race, month {active.id} already closed'
                    )
                    return failure(CONFLICT, 'The active month has already been rolled over')
                closed_month_id = active.id
            elif new_limit is None:
                new_limit = Decimal('0')

            new_month = Month(
                user_id=user_id,
                label=label,
                spending_limit=new_limit,
                is_active=True,
                started_at=now,
            )
            db.session.add(new_month)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.warning(f'user {user_id}: rollover conflicted with another active month')
            return failure(CONFLICT, 'Another month was opened concurrently; reload the active month')
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'rollover failed for user {user_id}')
            return storage_failure(exc)

        current_app.logger.info(
            f'user {user_id}: rolled over to {new_month.label} '
            f'(closed={closed_month_id}, limit={new_month.spending_limit})'
        )
        return success({
            'closed_month_id': closed_month_id,
            'new_month': new_month.to_dict(),
        })

    @staticmethod
    def set_active_month_limit(user_id, spending_limit):
        """Update the active month's spending limit in place"""
        if user_id is None:
            return unauthenticated()

        new_limit = PeriodService._parse_limit(spending_limit)
        if new_limit is None:
            return failure(VALIDATION_ERROR, 'Invalid spending limit')

        try:
            month = PeriodService._find_active(user_id)
            if month is None:
                return failure(NOT_FOUND, 'No active month found')
            month.spending_limit = new_limit
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'set_active_month_limit failed for user {user_id}')
            return storage_failure(exc)

        return success({'month_id': month.id, 'spending_limit': money(new_limit)})

    @staticmethod
    def get_month_spent(user_id, month_id):
        """Total of the month's non-deleted transactions"""
        if user_id is None:
            return unauthenticated()
        month_id = to_int(month_id)
        if month_id is None:
            return failure(VALIDATION_ERROR, 'month_id required')

        try:
            month = owner_get(Month, month_id, user_id)
            if month is None:
                return failure(NOT_FOUND, 'Month not found')
            spent = (
                db.session.query(func.coalesce(func.sum(Transaction.amount), 0))
                .filter(
                    Transaction.user_id == user_id,
                    Transaction.month_id == month.id,
                    Transaction.is_deleted.is_(False),
                )
                .scalar()
            )
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'get_month_spent failed for user {user_id}')
            return storage_failure(exc)

        return success({'month_id': month.id, 'spent': money(Decimal(str(spent)))})
