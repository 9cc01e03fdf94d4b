"""
SnippetDeck Backend — Auth Route Handlers
==========================================

What:  POST /api/auth/register, POST /api/auth/login, GET /api/auth/me.
How:   Thin wrappers around AuthService. Register and login both answer with
       the account and a bearer token for the Authorization header.
"""

from fastapi import APIRouter, Depends

from snippetdeck.exceptions import UnauthenticatedError
from snippetdeck.routes.deps import get_auth_service, require_caller
from snippetdeck.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from snippetdeck.schemas.common import ErrorResponse
from snippetdeck.services.access import Caller
from snippetdeck.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    responses={
        400: {"description": "Invalid registration data", "model": ErrorResponse},
        409: {"description": "Email or username already taken", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    user, token = await auth.register(body.username, str(body.email), body.password)
    return AuthResponse(id=user.id, username=user.username, email=user.email, token=token)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid email or password", "model": ErrorResponse}},
    summary="Log in and receive a bearer token",
)
async def login(
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    user, token = await auth.login(str(body.email), body.password)
    return AuthResponse(id=user.id, username=user.username, email=user.email, token=token)


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Current user",
)
async def me(
    caller: Caller = Depends(require_caller),
    auth: AuthService = Depends(get_auth_service),
) -> UserResponse:
    user = await auth.get_user(caller.id)
    if user is None:
        raise UnauthenticatedError("User for this token no longer exists")
    return UserResponse.model_validate(user)
