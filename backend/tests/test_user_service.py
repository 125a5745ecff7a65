"""
EcoCodeAI Backend - User Service Unit Tests
=============================================

What:  Tests for UserService registration and login with a mocked session.

What we test:
    ✅ Registration stores a hash, never the plaintext password
    ✅ Duplicate usernames raise ConflictError (pre-check and unique index)
    ✅ Unknown user and wrong password raise the same AuthenticationError
    ✅ Unknown users still pay for a bcrypt check
    ✅ Successful login stamps last_login_at
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from ecocode.exceptions import AuthenticationError, ConflictError, DatabaseError
from ecocode.models.user import User
from ecocode.services.auth_service import auth_service
from ecocode.services.user_service import INVALID_CREDENTIALS, UserService


def _lookup_returns(session, user):
    result = MagicMock()
    result.scalar_one_or_none.return_value = user
    session.execute = AsyncMock(return_value=result)


def _existing_user(username="ada", password="s3cret!"):
    return User(
        id=uuid.uuid4(),
        username=username,
        hashed_password=auth_service.hash_password(password),
        created_at=datetime.now(timezone.utc),
    )


class TestUserServiceRegister:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_register_success_hashes_password(self, mock_db_session):
        _lookup_returns(mock_db_session, None)

        async def assign_defaults():
            # What the INSERT would fill in
            added = mock_db_session.add.call_args[0][0]
            added.id = uuid.uuid4()
            added.created_at = datetime.now(timezone.utc)

        mock_db_session.flush = AsyncMock(side_effect=assign_defaults)

        result = await self.service.register(mock_db_session, "ada", "s3cret!")

        assert result.username == "ada"
        added = mock_db_session.add.call_args[0][0]
        assert added.hashed_password != "s3cret!"
        assert auth_service.verify_password("s3cret!", added.hashed_password)
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_register_duplicate_username(self, mock_db_session):
        _lookup_returns(mock_db_session, _existing_user())

        with pytest.raises(ConflictError) as exc_info:
            await self.service.register(mock_db_session, "ada", "another-pass")

        assert exc_info.value.field == "username"
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_register_race_on_unique_index(self, mock_db_session):
        _lookup_returns(mock_db_session, None)
        mock_db_session.flush = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        )

        with pytest.raises(ConflictError):
            await self.service.register(mock_db_session, "ada", "s3cret!")
        mock_db_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_register_database_failure(self, mock_db_session):
        mock_db_session.execute = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection lost"))
        )

        with pytest.raises(DatabaseError):
            await self.service.register(mock_db_session, "ada", "s3cret!")


class TestUserServiceAuthenticate:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_authenticate_success_updates_last_login(self, mock_db_session):
        user = _existing_user()
        _lookup_returns(mock_db_session, user)

        result = await self.service.authenticate(mock_db_session, "ada", "s3cret!")

        assert result is user
        assert result.last_login_at is not None
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_authenticate_wrong_password(self, mock_db_session):
        _lookup_returns(mock_db_session, _existing_user())

        with pytest.raises(AuthenticationError) as exc_info:
            await self.service.authenticate(mock_db_session, "ada", "wrong")
        assert exc_info.value.message == INVALID_CREDENTIALS

    @pytest.mark.asyncio
    async def test_authenticate_unknown_user(self, mock_db_session, monkeypatch):
        _lookup_returns(mock_db_session, None)
        dummy_verify = MagicMock()
        monkeypatch.setattr(auth_service, "dummy_verify", dummy_verify)

        with pytest.raises(AuthenticationError) as exc_info:
            await self.service.authenticate(mock_db_session, "nobody", "whatever")
        assert exc_info.value.message == INVALID_CREDENTIALS
        # A hash check still runs, so unknown names are not answered faster
        dummy_verify.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_authenticate_known_user_skips_dummy_hash(self, mock_db_session, monkeypatch):
        _lookup_returns(mock_db_session, _existing_user())
        dummy_verify = MagicMock()
        monkeypatch.setattr(auth_service, "dummy_verify", dummy_verify)

        with pytest.raises(AuthenticationError):
            await self.service.authenticate(mock_db_session, "ada", "wrong")
        dummy_verify.assert_not_called()
