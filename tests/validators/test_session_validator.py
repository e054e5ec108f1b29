# tests/validators/test_session_validator.py
"""
Tests for the session validation gates.
"""
from unittest.mock import AsyncMock, Mock

import pytest

from laravel_session.core.config import LaravelSessionConfig, SessionSettings
from laravel_session.core.exceptions import DatabaseStoreError
from laravel_session.decoders.php_serializer import serialize
from laravel_session.decoders.session_decoder import SessionDecoder
from laravel_session.models.session import LaravelUser, PermissionSet, SessionRecord, ValidationResult
from laravel_session.validators.session_validator import SessionValidator

NOW = 1700000000
LIFETIME = 1000


@pytest.fixture
def mock_store():
    store = Mock()
    store.get_session = AsyncMock(return_value=None)
    store.get_user = AsyncMock(return_value=LaravelUser(id=42, email="ann@example.com"))
    store.get_user_role = AsyncMock(return_value=None)
    store.get_user_permissions = AsyncMock(return_value=PermissionSet())
    return store


@pytest.fixture
def validator(mock_store):
    config = LaravelSessionConfig(session=SessionSettings(lifetime=LIFETIME))
    return SessionValidator(SessionDecoder(), mock_store, config, clock=lambda: NOW)


@pytest.fixture
def make_session(encode_payload):
    """Session record whose payload serializes the given attributes"""
    def _make(attributes=None, session_id="abc123", last_activity=NOW, serialized=None):
        if serialized is None:
            serialized = serialize(attributes if attributes is not None else {})
        return SessionRecord(
            id=session_id,
            user_id=42,
            payload=encode_payload(serialized),
            last_activity=last_activity,
        )
    return _make


class TestScenarios:
    """End-to-end gate outcomes for typical sessions"""

    async def test_valid_session(self, validator, mock_store, scenario_payload):
        mock_store.get_session.return_value = SessionRecord(
            id="abc123", user_id=42, payload=scenario_payload, last_activity=NOW - 60
        )

        result = await validator.validate("abc123")

        assert result.valid is True
        assert result.user.id == 42
        assert result.csrf_token == "tok123"
        assert result.session_id == "abc123"
        assert result.role is None
        mock_store.get_session.assert_awaited_once_with("abc123")

    async def test_non_string_token_is_dropped(self, validator, mock_store, make_session):
        mock_store.get_session.return_value = make_session(
            serialized='a:2:{s:14:"login_web_59ba";i:42;s:6:"_token";i:5;}'
        )

        result = await validator.validate("abc123")

        assert result.valid is True
        assert result.csrf_token is None

    async def test_expired_session(self, validator, mock_store, scenario_payload):
        mock_store.get_session.return_value = SessionRecord(
            id="abc123", user_id=42, payload=scenario_payload, last_activity=NOW - 2000 * 60
        )

        result = await validator.validate("abc123")

        assert result.valid is False
        assert result.error == "Session expired"
        mock_store.get_user.assert_not_awaited()

    async def test_anonymous_session(self, validator, mock_store, make_session):
        mock_store.get_session.return_value = make_session({"_token": "tok123"})

        result = await validator.validate("abc123")

        assert result.valid is False
        assert result.error == "User not authenticated"

    @pytest.mark.parametrize("session_id", [None, ""])
    async def test_no_session_id(self, validator, mock_store, session_id):
        result = await validator.validate(session_id)

        assert result.error == "No session ID provided"
        mock_store.get_session.assert_not_awaited()

    async def test_session_not_found(self, validator):
        result = await validator.validate("abc123")

        assert result.valid is False
        assert result.error == "Session not found"

    async def test_undecodable_payload(self, validator, mock_store):
        mock_store.get_session.return_value = SessionRecord(
            id="abc123", payload="!!garbage!!", last_activity=NOW
        )

        result = await validator.validate("abc123")

        assert result.error == "Failed to decode session"

    async def test_unknown_class_in_payload(self, validator, mock_store, make_session):
        mock_store.get_session.return_value = make_session(serialized='a:1:{s:1:"x";O:7:"Unknown":0:{}}')

        result = await validator.validate("abc123")

        assert result.error == "Failed to decode session"

    async def test_user_not_found(self, validator, mock_store, make_session):
        mock_store.get_session.return_value = make_session({"login_web_59ba": 42})
        mock_store.get_user.return_value = None

        result = await validator.validate("abc123")

        assert result.error == "User not found or deleted"
        mock_store.get_user.assert_awaited_once_with(42)


class TestExpiryBoundary:
    """Lifetime is inclusive: exactly at the limit is still valid"""

    @pytest.mark.parametrize("age_seconds,valid", [
        (LIFETIME * 60 - 1, True),
        (LIFETIME * 60, True),
        (LIFETIME * 60 + 1, False),
    ])
    async def test_boundary(self, validator, mock_store, make_session, age_seconds, valid):
        mock_store.get_session.return_value = make_session(
            {"login_web_59ba": 42}, last_activity=NOW - age_seconds
        )

        result = await validator.validate("abc123")

        assert result.valid is valid


class TestSingleSession:
    """Users with the Shooter role may only hold their latest session"""

    async def test_shooter_logged_in_elsewhere(self, validator, mock_store, make_session):
        mock_store.get_session.return_value = make_session({"login_web_59ba": 42})
        mock_store.get_user.return_value = LaravelUser(id=42, session_id="newer-session")
        mock_store.get_user_role.return_value = "Shooter"

        result = await validator.validate("abc123")

        assert result.valid is False
        assert result.error == "Session invalidated. You were logged in elsewhere."
        assert result.reason == "shooter_single_session"

    async def test_shooter_current_session(self, validator, mock_store, make_session):
        mock_store.get_session.return_value = make_session({"login_web_59ba": 42})
        mock_store.get_user.return_value = LaravelUser(id=42, session_id="abc123")
        mock_store.get_user_role.return_value = "Shooter"

        result = await validator.validate("abc123")

        assert result.valid is True
        assert result.role == "Shooter"

    async def test_shooter_without_recorded_session(self, validator, mock_store, make_session):
        mock_store.get_session.return_value = make_session({"login_web_59ba": 42})
        mock_store.get_user.return_value = LaravelUser(id=42, session_id=None)
        mock_store.get_user_role.return_value = "Shooter"

        assert (await validator.validate("abc123")).valid is True

    async def test_other_roles_not_limited(self, validator, mock_store, make_session):
        mock_store.get_session.return_value = make_session({"login_web_59ba": 42})
        mock_store.get_user.return_value = LaravelUser(id=42, session_id="newer-session")
        mock_store.get_user_role.return_value = "Admin"

        result = await validator.validate("abc123")

        assert result.valid is True
        assert result.role == "Admin"


class TestTwoFactor:
    """2FA gate"""

    @pytest.mark.parametrize("flag", [1, "1"])
    async def test_required_when_enabled(self, validator, mock_store, make_session, flag):
        mock_store.get_session.return_value = make_session({"login_web_59ba": 42})
        mock_store.get_user.return_value = LaravelUser(id=42, google2fa_enable=flag)

        result = await validator.validate("abc123")

        assert result.valid is False
        assert result.error == "2FA verification required"
        assert result.reason == "2fa_required"

    async def test_verified(self, validator, mock_store, make_session):
        mock_store.get_session.return_value = make_session({"login_web_59ba": 42, "2faVerify": "true"})
        mock_store.get_user.return_value = LaravelUser(id=42, google2fa_enable=1)

        assert (await validator.validate("abc123")).valid is True

    def test_boolean_flag_is_kept(self):
        assert LaravelUser(id=42, google2fa_enable=True).google2fa_enable is True

    @pytest.mark.parametrize("flag", [0, "0", None, 2, True, False])
    async def test_not_enabled(self, validator, mock_store, make_session, flag):
        mock_store.get_session.return_value = make_session({"login_web_59ba": 42})
        mock_store.get_user.return_value = LaravelUser(id=42, google2fa_enable=flag)

        assert (await validator.validate("abc123")).valid is True

    async def test_single_session_checked_first(self, validator, mock_store, make_session):
        mock_store.get_session.return_value = make_session({"login_web_59ba": 42})
        mock_store.get_user.return_value = LaravelUser(id=42, session_id="other", google2fa_enable=1)
        mock_store.get_user_role.return_value = "Shooter"

        result = await validator.validate("abc123")

        assert result.reason == "shooter_single_session"


class TestPermissions:
    """Permissions come from the payload first, the store second"""

    async def test_payload_permissions_skip_store(self, validator, mock_store, make_session):
        mock_store.get_session.return_value = make_session(
            {"login_web_59ba": 42, "permissions": {"role": "Admin"}}
        )

        result = await validator.validate("abc123")

        assert result.permissions == {"role": "Admin"}
        mock_store.get_user_permissions.assert_not_awaited()

    async def test_store_fallback(self, validator, mock_store, make_session):
        mock_store.get_session.return_value = make_session({"login_web_59ba": 42})
        mock_store.get_user_permissions.return_value = PermissionSet(role="Admin", role_arr=["Admin"])

        result = await validator.validate("abc123")

        assert result.permissions.role_arr == ["Admin"]
        mock_store.get_user_permissions.assert_awaited_once_with(42)

    async def test_fallback_failure_keeps_session_valid(self, validator, mock_store, make_session):
        mock_store.get_session.return_value = make_session({"login_web_59ba": 42})
        mock_store.get_user_permissions.side_effect = DatabaseStoreError("connection lost")

        result = await validator.validate("abc123")

        assert result.valid is True
        assert result.permissions is None


class TestStoreErrors:
    """Store failures outside the permission lookup propagate"""

    async def test_session_lookup_error(self, validator, mock_store):
        mock_store.get_session.side_effect = DatabaseStoreError("connection lost", operation="get session")

        with pytest.raises(DatabaseStoreError):
            await validator.validate("abc123")

    async def test_user_lookup_error(self, validator, mock_store, make_session):
        mock_store.get_session.return_value = make_session({"login_web_59ba": 42})
        mock_store.get_user.side_effect = DatabaseStoreError("connection lost")

        with pytest.raises(DatabaseStoreError):
            await validator.validate("abc123")


def test_to_dict():
    result = ValidationResult(
        valid=True,
        user=LaravelUser(id=42),
        session_id="abc123",
        csrf_token="tok123",
        permissions=PermissionSet(role="Admin"),
    )

    data = result.to_dict()

    assert data["sessionId"] == "abc123"
    assert data["csrfToken"] == "tok123"
    assert data["permissions"]["role"] == "Admin"
    assert "error" not in data
    assert ValidationResult.invalid("Session expired").to_dict() == {"valid": False, "error": "Session expired"}
