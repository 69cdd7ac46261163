"""
Tests for ProfileService.
"""
import pytest

from extensions import db
from models.users import User
from services.profile_service import ProfileService
from utils.results import error_code, UNAUTHENTICATED, VALIDATION_ERROR, NOT_FOUND


class TestGetProfile:
    def test_returns_name_and_currency(self, app, user):
        result = ProfileService.get_profile(user.id)

        assert result['data'] == {'user_id': user.id, 'display_name': None, 'currency_code': 'AED'}

    def test_unknown_user(self, app):
        assert error_code(ProfileService.get_profile(9999)) == NOT_FOUND

    def test_unauthenticated(self, app):
        assert error_code(ProfileService.get_profile(None)) == UNAUTHENTICATED


class TestUpdateDisplayName:
    def test_trimmed(self, app, user):
        result = ProfileService.update_display_name(user.id, '  Noor  ')

        assert result['data']['display_name'] == 'Noor'
        assert db.session.get(User, user.id).display_name == 'Noor'

    @pytest.mark.parametrize('blank', ['', '   ', None])
    def test_blank_clears(self, app, user, blank):
        ProfileService.update_display_name(user.id, 'Noor')

        result = ProfileService.update_display_name(user.id, blank)

        assert result['data']['display_name'] is None

    def test_hundred_characters_allowed(self, app, user):
        assert ProfileService.update_display_name(user.id, 'x' * 100)['ok'] is True

    @pytest.mark.parametrize('value', ['x' * 101, 42])
    def test_invalid_rejected(self, app, user, value):
        ProfileService.update_display_name(user.id, 'Noor')

        assert error_code(ProfileService.update_display_name(user.id, value)) == VALIDATION_ERROR
        assert db.session.get(User, user.id).display_name == 'Noor'

    def test_unauthenticated(self, app):
        assert error_code(ProfileService.update_display_name(None, 'Noor')) == UNAUTHENTICATED


class TestEnsureDisplayName:
    def test_fills_missing_name(self, app, user):
        assert ProfileService.ensure_display_name(user.id, 'Owner')['data']['display_name'] == 'Owner'

    def test_keeps_existing_name(self, app, user):
        ProfileService.update_display_name(user.id, 'Noor')

        result = ProfileService.ensure_display_name(user.id, 'Someone else')

        assert result['data']['display_name'] == 'Noor'
