"""
Tests for the user directory used by login and registration.
"""
import pytest
from fastapi import HTTPException
from unittest.mock import AsyncMock

from core.config import settings
from schemas.token_schema import CreateTokenResult
from services.user_service import (
    authenticate,
    get_user_by_credentials,
    get_user_by_national_id,
    login_user,
    register_member,
)

pytestmark = [pytest.mark.unit, pytest.mark.service, pytest.mark.database]


class TestAuthenticate:
    """Credential matching for members and the bootstrap admin."""

    @pytest.mark.asyncio
    async def test_member_matches_on_national_id_and_name(self, db_session, make_user):
        user = await make_user(name="John Doe", national_id="123456789012")

        assert await authenticate("123456789012", "John Doe", db_session) == user
        assert await authenticate(" 123456789012 ", " John Doe ", db_session) == user
        assert await authenticate("123456789012", "Jane Doe", db_session) is None
        assert await get_user_by_credentials("123456789012", "john doe", db_session) is None

    @pytest.mark.asyncio
    async def test_bootstrap_admin_is_created_once(self, db_session):
        first = await authenticate(settings.ADMIN_NATIONAL_ID, settings.ADMIN_LOGIN_SECRET, db_session)
        second = await authenticate(settings.ADMIN_NATIONAL_ID.upper(), settings.ADMIN_LOGIN_SECRET, db_session)

        assert first is not None
        assert first.role == "admin"
        assert first.name == settings.ADMIN_DISPLAY_NAME
        assert second.id == first.id

    @pytest.mark.asyncio
    async def test_reserved_id_needs_the_secret(self, db_session):
        await authenticate(settings.ADMIN_NATIONAL_ID, settings.ADMIN_LOGIN_SECRET, db_session)
        assert await authenticate(settings.ADMIN_NATIONAL_ID, settings.ADMIN_DISPLAY_NAME, db_session) is None


class TestRegisterMember:
    """Registration always yields members."""

    @pytest.mark.asyncio
    async def test_register_creates_member(self, db_session):
        result = await register_member("987654321098", "  Mary Major ", db_session)
        assert result.success

        user = await get_user_by_national_id("987654321098", db_session)
        assert user.role == "member"
        assert user.name == "Mary Major"

    @pytest.mark.asyncio
    async def test_register_reserved_id(self, db_session):
        result = await register_member(settings.ADMIN_NATIONAL_ID, "Anyone", db_session)
        assert not result.success
        assert "reserved" in result.message

    @pytest.mark.asyncio
    async def test_register_duplicate(self, db_session, make_user):
        await make_user(national_id="555")
        result = await register_member("555", "Someone Else", db_session)
        assert not result.success


class TestLoginUser:
    """login_user ties the directory to token creation."""

    @pytest.mark.asyncio
    async def test_unknown_user_raises_401(self, db_session, token_service):
        with pytest.raises(HTTPException) as exc:
            await login_user("nobody", "Nobody", token_service, db_session)
        assert exc.value.status_code == 401

    @pytest.mark.asyncio
    async def test_token_creation_failure_raises_500(self, db_session, make_user):
        user = await make_user(name="John Doe", national_id="123")
        token_service = AsyncMock()
        token_service.create_token.return_value = CreateTokenResult(success=False, error="nope")

        with pytest.raises(HTTPException) as exc:
            await login_user("123", "John Doe", token_service, db_session)
        assert exc.value.status_code == 500
        token_service.create_token.assert_awaited_once_with(user.id, "member", "John Doe")

    @pytest.mark.asyncio
    async def test_login_returns_token_and_user(self, db_session, token_service, make_user):
        user = await make_user(name="John Doe", national_id="123")
        data = await login_user("123", "John Doe", token_service, db_session)

        assert data["success"] is True
        assert data["token_type"] == "bearer"
        assert data["user"]["id"] == user.id
        assert (await token_service.validate_token(data["token"])).valid
