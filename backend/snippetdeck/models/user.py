"""
SnippetDeck Backend — User SQLAlchemy Model
============================================

What:  ORM model for the `users` table (account identity and password hash).
Who:   Written by AuthService at registration; read when resolving callers.

Emails are stored lowercase so the unique index is case-insensitive in
practice. Only the passlib hash is stored, never the password.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from snippetdeck.database import Base
from snippetdeck.models.snippet import utcnow

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30


class User(Base):
    """A registered account that can own snippets."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    username: Mapped[str] = mapped_column(
        String(USERNAME_MAX_LENGTH),
        nullable=False,
        unique=True,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Lowercased email address, used as the login name",
    )

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
