"""
SnippetDeck Backend — Auth Service Tests
=========================================

What:  Password hashing, token round trips, registration, login and caller
       resolution.
How:   Token helpers are tested directly; AuthService runs against the
       in-memory SQLite session.
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import jwt
import pytest
from sqlalchemy.exc import IntegrityError

from snippetdeck.config import settings
from snippetdeck.exceptions import ConflictError, UnauthenticatedError
from snippetdeck.services.access import ANONYMOUS
from snippetdeck.services.auth_service import (
    AuthService,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("s3cret!")
        assert hashed != "s3cret!"
        assert verify_password("s3cret!", hashed)
        assert not verify_password("wrong", hashed)

    def test_garbage_hash_does_not_verify(self):
        assert verify_password("anything", "not-a-hash") is False


class TestTokens:

    def test_round_trip(self, alice):
        token = create_access_token(alice, settings)
        assert decode_access_token(token, settings) == alice.id

    def test_expired_token(self):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "exp": past},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(UnauthenticatedError, match="expired"):
            decode_access_token(token, settings)

    @pytest.mark.parametrize("token", [
        "garbage",
        jwt.encode({"sub": str(uuid.uuid4()), "exp": 4102444800},
                   "another-secret-key-of-sufficient-length", "HS256"),
        jwt.encode({"sub": "not-a-uuid", "exp": 4102444800},
                   "test-secret-not-for-production-use-only", "HS256"),
        jwt.encode({"exp": 4102444800}, "test-secret-not-for-production-use-only", "HS256"),
    ])
    def test_invalid_tokens(self, token):
        with pytest.raises(UnauthenticatedError, match="Invalid authentication token"):
            decode_access_token(token, settings)


class TestAuthService:

    @pytest.mark.asyncio
    async def test_register_normalizes_email(self, db_session):
        user, token = await AuthService(db_session).register(
            "carol", "  Carol@Example.COM ", "password123",
        )
        assert user.email == "carol@example.com"
        assert decode_access_token(token, settings) == user.id

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, db_session, alice):
        with pytest.raises(ConflictError) as exc_info:
            await AuthService(db_session).register("other", "ALICE@example.com", "password123")
        assert exc_info.value.field == "email"

    @pytest.mark.asyncio
    async def test_duplicate_username_conflicts(self, db_session, alice):
        with pytest.raises(ConflictError) as exc_info:
            await AuthService(db_session).register("Alice", "new@example.com", "password123")
        assert exc_info.value.field == "username"

    @pytest.mark.asyncio
    async def test_login(self, db_session, alice):
        user, token = await AuthService(db_session).login("alice@example.com", "password123")
        assert user.id == alice.id
        assert token

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,password", [
        ("alice@example.com", "wrong-password"),
        ("nobody@example.com", "password123"),
    ])
    async def test_login_failures_share_message(self, db_session, alice, email, password):
        with pytest.raises(UnauthenticatedError, match="Invalid email or password"):
            await AuthService(db_session).login(email, password)

    @pytest.mark.asyncio
    async def test_resolve_caller(self, db_session, alice):
        auth = AuthService(db_session)

        assert await auth.resolve_caller(None) is ANONYMOUS

        caller = await auth.resolve_caller(create_access_token(alice, settings))
        assert caller.authenticated
        assert caller.id == alice.id
        assert caller.username == "alice"

    @pytest.mark.asyncio
    async def test_resolve_caller_for_deleted_user(self, db_session, alice):
        token = create_access_token(alice, settings)
        await db_session.delete(alice)
        await db_session.flush()

        with pytest.raises(UnauthenticatedError):
            await AuthService(db_session).resolve_caller(token)

    @pytest.mark.asyncio
    async def test_get_user_uses_session(self, mock_db_session):
        mock_db_session.get.return_value = None
        assert await AuthService(mock_db_session).get_user(uuid.uuid4()) is None
        mock_db_session.get.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("constraint,field", [
        ("UNIQUE constraint failed: users.email", "email"),
        ("UNIQUE constraint failed: users.username", "username"),
    ])
    async def test_concurrent_duplicate_becomes_conflict(self, mock_db_session, constraint, field):
        # Pre-checks see no existing user; the insert then hits the unique index
        lookup = MagicMock()
        lookup.scalar_one_or_none.return_value = None
        mock_db_session.execute.return_value = lookup
        mock_db_session.flush.side_effect = IntegrityError("INSERT", {}, Exception(constraint))

        with pytest.raises(ConflictError) as exc_info:
            await AuthService(mock_db_session).register("dave", "dave@example.com", "password123")
        assert exc_info.value.field == field
