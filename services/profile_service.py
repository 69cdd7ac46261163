"""
Profile Service
The signed-in user's display name and currency.
"""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models.users import User
from utils.results import success, failure, unauthenticated, storage_failure, VALIDATION_ERROR, NOT_FOUND

DISPLAY_NAME_MAX_LENGTH = 100


class ProfileService:

    @staticmethod
    def _clean_display_name(value):
        """Return (name, ok); blank or missing becomes None"""
        if value is None:
            return None, True
        if not isinstance(value, str):
            return None, False
        value = value.strip()
        if len(value) > DISPLAY_NAME_MAX_LENGTH:
            return None, False
        return value or None, True

    @staticmethod
    def _profile(user):
        return {
            'user_id': user.id,
            'display_name': user.display_name,
            'currency_code': user.currency_code,
        }

    @staticmethod
    def get_profile(user_id):
        if user_id is None:
            return unauthenticated()

        try:
            user = db.session.get(User, user_id)
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'get_profile failed for user {user_id}')
            return storage_failure(exc)

        if user is None:
            return failure(NOT_FOUND, 'Profile not found')
        return success(ProfileService._profile(user))

    @staticmethod
    def update_display_name(user_id, display_name):
        """Set the display name; a blank value clears it"""
        if user_id is None:
            return unauthenticated()

        display_name, valid = ProfileService._clean_display_name(display_name)
        if not valid:
            return failure(
                VALIDATION_ERROR,
                f'Display name must be text of at most {DISPLAY_NAME_MAX_LENGTH} characters',
            )

        try:
            user = db.session.get(User, user_id)
            if user is None:
                return failure(NOT_FOUND, 'Profile not found')
            user.display_name = display_name
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'update_display_name failed for user {user_id}')
            return storage_failure(exc)

        return success(ProfileService._profile(user))

    @staticmethod
    def ensure_display_name(user_id, display_name):
        """
        Fill in the display name only when the profile has none yet.
        Used at signup; an existing name is never overwritten.
        """
        if user_id is None:
            return unauthenticated()

        display_name, valid = ProfileService._clean_display_name(display_name)
        if not valid:
            return failure(
                VALIDATION_ERROR,
                f'Display name must be text of at most {DISPLAY_NAME_MAX_LENGTH} characters',
            )

        try:
            user = db.session.get(User, user_id)
            if user is None:
                return failure(NOT_FOUND, 'Profile not found')
            if user.display_name is None and display_name is not None:
                user.display_name = display_name
                db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception(f'ensure_display_name failed for user {user_id}')
            return storage_failure(exc)

        return success(ProfileService._profile(user))
