"""
SnippetDeck Backend — Authentication & Identity
================================================

What:  Password hashing, JWT issuance/verification, registration, login and
       caller resolution (request credential → Caller).
How:   passlib CryptContext (pbkdf2_sha256) for hashes, PyJWT for HS256
       tokens. Token claims: sub (user UUID), username, iat, exp.
Who:   Used by the auth routes and by the caller dependencies in routes/deps.py.

Caller resolution:
    no credential                   → ANONYMOUS
    valid token, user exists        → Caller.user(id, username)
    malformed / expired / bad sig   → UnauthenticatedError
    valid token, user deleted       → UnauthenticatedError
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import jwt
from jwt import InvalidTokenError
from passlib.context import CryptContext
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snippetdeck.config import Settings, settings as default_settings
from snippetdeck.exceptions import (
    ConflictError,
    DatabaseError,
    UnauthenticatedError,
)
from snippetdeck.models.user import User
from snippetdeck.services.access import ANONYMOUS, Caller

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

INVALID_CREDENTIALS = "Invalid email or password"
CONFLICT_MESSAGES = {
    "email": "A user with this email already exists",
    "username": "This username is already taken",
}


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check of `password` against a stored hash; False on garbage hashes."""
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        return False


def create_access_token(user: User, config: Settings = default_settings) -> str:
    """Sign a bearer token for `user` that expires after `jwt_expires_minutes`."""
    now = datetime.now(timezone.utc)
    claims: Dict[str, Any] = {
        "sub": str(user.id),
        "username": user.username,
        "iat": now,
        "exp": now + timedelta(minutes=config.jwt_expires_minutes),
    }
    return jwt.encode(claims, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_access_token(token: str, config: Settings = default_settings) -> uuid.UUID:
    """
    Verify signature and expiry and return the user id from `sub`.

    Raises:
        UnauthenticatedError: invalid, expired, or missing/ill-formed `sub`
    """
    try:
        claims = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[config.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
        return uuid.UUID(str(claims["sub"]))
    except jwt.ExpiredSignatureError:
        raise UnauthenticatedError("Token has expired, please log in again") from None
    except (InvalidTokenError, ValueError):
        raise UnauthenticatedError("Invalid authentication token") from None


class AuthService:
    """
    Account operations over a request-scoped session.

    Args:
        db: AsyncSession owned by get_db_session
        config: settings holding the JWT secret/algorithm/expiry
    """

    def __init__(self, db: AsyncSession, config: Settings = default_settings):
        self.db = db
        self.config = config

    async def register(self, username: str, email: str, password: str) -> Tuple[User, str]:
        """
        Create an account and return it with a fresh token.

        Raises:
            ConflictError: email or username already taken
        """
        email = email.strip().lower()
        username = username.strip()

        if await self._find_one(func.lower(User.email) == email) is not None:
            raise ConflictError(CONFLICT_MESSAGES["email"], field="email")
        if await self._find_one(func.lower(User.username) == username.lower()) is not None:
            raise ConflictError(CONFLICT_MESSAGES["username"], field="username")

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
        )
        try:
            self.db.add(user)
            await self.db.flush()
        except IntegrityError as e:
            # A concurrent registration won the race past the checks above
            field = "username" if "username" in str(e.orig).lower() else "email"
            logger.info("Registration conflict on %s: %s", field, e.orig)
            raise ConflictError(CONFLICT_MESSAGES[field], field=field) from e
        except SQLAlchemyError as e:
            logger.error("Database error registering user: %s", e)
            raise DatabaseError(
                message="Could not create the account. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Registered user %s (%s)", user.id, user.username)
        return user, create_access_token(user, self.config)

    async def login(self, email: str, password: str) -> Tuple[User, str]:
        """
        Exchange email + password for a token.

        Raises:
            UnauthenticatedError: unknown email or wrong password (same message)
        """
        user = await self._find_one(func.lower(User.email) == email.strip().lower())
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Failed login attempt for %s", email)
            raise UnauthenticatedError(INVALID_CREDENTIALS)
        return user, create_access_token(user, self.config)

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        try:
            return await self.db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, e)
            raise DatabaseError(context={"user_id": str(user_id)}) from e

    async def resolve_caller(self, token: Optional[str]) -> Caller:
        """Identity provider: map a bearer token (or None) to a Caller."""
        if not token:
            return ANONYMOUS
        user_id = decode_access_token(token, self.config)
        user = await self.get_user(user_id)
        if user is None:
            raise UnauthenticatedError("User for this token no longer exists")
        return Caller.user(user.id, user.username)

    async def _find_one(self, condition) -> Optional[User]:
        try:
            result = await self.db.execute(select(User).where(condition))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error querying users: %s", e)
            raise DatabaseError(context={"error_type": type(e).__name__}) from e
