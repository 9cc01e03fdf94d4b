"""
SnippetDeck Backend — Snippet SQLAlchemy Model
===============================================

What:  ORM model for the `snippets` table, the only domain entity.
Who:   Read and written by SqlSnippetStore; tracked by Alembic.

Table Design:
    - id: UUID generated in Python at construction, never changes
    - owner_id: FK to users.id, set once at creation; no update path touches it
    - language: stored lowercase (normalized before it reaches the model)
    - tags: JSON array, JSONB on PostgreSQL; order preserved, duplicates allowed
    - search_text: lowercase word tokens of title + description, space-padded
      (" quick sort helper "); rebuilt on every insert/update, never sent to clients
    - created_at / updated_at: UTC, system-managed

Secondary Indexes:
    ix_snippets_language_public_owner  (language, is_public, owner_id)
        → equality filters used by every list scope
    ix_snippets_owner_id               (owner_id)
        → "my snippets"
    ix_snippets_created_at             (created_at DESC)
        → default newest-first ordering
    A trigram index on search_text is PostgreSQL-only and is created by the
    Alembic migration (it needs the pg_trgm extension).

Search tokens:
    A token is a maximal run of Unicode word characters (letters, digits, "_"),
    lowercased. No stemming and no stop words: "Sorting" is the token
    "sorting" and does not match a search for "sort".
"""

import re
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String, Text, Uuid, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from snippetdeck.database import Base

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
LANGUAGE_MAX_LENGTH = 50

_TOKEN_RE = re.compile(r"\w+")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def tokenize(text: Optional[str]) -> List[str]:
    """Split `text` into lowercase word tokens."""
    return _TOKEN_RE.findall(text.lower()) if text else []


def build_search_text(title: Optional[str], description: Optional[str]) -> str:
    """
    Space-padded token string for title + description.

    Every token is surrounded by single spaces, so `LIKE '% tok %'` matches a
    whole token and nothing else.
    """
    tokens = tokenize(title) + tokenize(description)
    return f" {' '.join(tokens)} " if tokens else " "


class Snippet(Base):
    """
    A stored code snippet.

    Lifecycle:
        1. Created by an authenticated user, who becomes the permanent owner
        2. title/description/code/language/tags/is_public edited by the owner
        3. Deleted by the owner; nothing cascades (a snippet has no children)
    """

    __tablename__ = "snippets"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique snippet identifier",
    )

    title: Mapped[str] = mapped_column(
        String(TITLE_MAX_LENGTH),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(DESCRIPTION_MAX_LENGTH),
        nullable=False,
        default="",
    )

    # Opaque payload: never parsed or checked against `language`
    code: Mapped[str] = mapped_column(Text, nullable=False)

    search_text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=" ",
        comment="Derived from title + description; see build_search_text()",
    )

    language: Mapped[str] = mapped_column(
        String(LANGUAGE_MAX_LENGTH),
        nullable=False,
        comment="Lowercase language tag, used for filtering only",
    )

    tags: Mapped[List[str]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=list,
    )

    is_public: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=False,
        comment="Creating user; immutable after insert",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        Index("ix_snippets_language_public_owner", "language", "is_public", "owner_id"),
        Index("ix_snippets_owner_id", "owner_id"),
        Index("ix_snippets_created_at", created_at.column.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Snippet(id={self.id}, language='{self.language}', "
            f"is_public={self.is_public}, owner_id={self.owner_id})>"
        )


@event.listens_for(Snippet, "before_insert")
@event.listens_for(Snippet, "before_update")
def _refresh_search_text(mapper, connection, target: Snippet) -> None:
    # Covers every write path, including rows added directly to a session
    target.search_text = build_search_text(target.title, target.description)
