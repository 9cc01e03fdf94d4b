"""
SnippetDeck Backend — Route Dependencies
=========================================

What:  FastAPI dependencies that build per-request services and resolve the
       calling identity.
How:   Each request gets its own session (get_db_session), and from it a
       SqlSnippetStore, an AccessFilterEngine bound to that store and a
       SnippetService. Bearer tokens are read with HTTPBearer(auto_error=False)
       so routes decide whether a caller is required.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from snippetdeck.config import settings
from snippetdeck.database import get_db_session
from snippetdeck.exceptions import UnauthenticatedError
from snippetdeck.services.access import AccessFilterEngine, Caller
from snippetdeck.services.auth_service import AuthService
from snippetdeck.services.snippet_service import SnippetService
from snippetdeck.services.snippet_store import SqlSnippetStore

bearer_scheme = HTTPBearer(auto_error=False, description="JWT from /api/auth/login")


def get_auth_service(db: AsyncSession = Depends(get_db_session)) -> AuthService:
    return AuthService(db, settings)


def get_snippet_service(db: AsyncSession = Depends(get_db_session)) -> SnippetService:
    store = SqlSnippetStore(db)
    return SnippetService(store, AccessFilterEngine(store))


async def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> Caller:
    """
    Caller for routes where authentication is optional.

    No Authorization header → ANONYMOUS. A header with a bad token is
    rejected (401) rather than treated as anonymous.
    """
    token = credentials.credentials if credentials else None
    return await auth.resolve_caller(token)


async def require_caller(caller: Caller = Depends(get_caller)) -> Caller:
    """Caller for routes that need a logged-in user."""
    if not caller.authenticated:
        raise UnauthenticatedError()
    return caller
