"""
SnippetDeck Backend — Auth Request/Response Schemas
====================================================

What:  Pydantic models for /api/auth (register, login, me).
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from snippetdeck.models.user import USERNAME_MAX_LENGTH, USERNAME_MIN_LENGTH

PASSWORD_MIN_LENGTH = 6


class RegisterRequest(BaseModel):
    username: str = Field(
        min_length=USERNAME_MIN_LENGTH,
        max_length=USERNAME_MAX_LENGTH,
        pattern=r"^[A-Za-z0-9_.-]+$",
        description="Letters, digits, '.', '_' or '-'",
    )
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=128)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class UserResponse(BaseModel):
    """Public account data. Never includes the password hash."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: uuid.UUID
    username: str
    email: EmailStr
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    """Returned by register and login: the account plus a bearer token."""

    id: uuid.UUID
    username: str
    email: EmailStr
    token: str
    token_type: str = "bearer"
