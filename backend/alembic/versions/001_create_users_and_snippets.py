"""Create users and snippets tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema: `users`, `snippets` and their secondary indexes.
How:   Equality indexes for the list filters (language, is_public, owner_id),
       a created_at DESC index for the default ordering and, on PostgreSQL, a
       pg_trgm GIN index on `search_text` (the padded word-token string the
       whole-token LIKE search runs against). None of the index definitions
       reference the `language` column as a text-search configuration.

Rollback: downgrade() drops both tables (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _is_postgresql() -> bool:
    return op.get_bind().dialect.name == "postgresql"


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column(
            "email",
            sa.String(255),
            nullable=False,
            comment="Lowercased email address, used as the login name",
        ),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "snippets",
        sa.Column("id", sa.Uuid(), nullable=False, comment="Unique snippet identifier"),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=False, server_default=sa.text("''")),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column(
            "search_text",
            sa.Text(),
            nullable=False,
            server_default=sa.text("' '"),
            comment="Derived from title + description; see build_search_text()",
        ),
        sa.Column(
            "language",
            sa.String(50),
            nullable=False,
            comment="Lowercase language tag, used for filtering only",
        ),
        sa.Column(
            "tags",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
            server_default=sa.text("'[]'"),
        ),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "owner_id",
            sa.Uuid(),
            nullable=False,
            comment="Creating user; immutable after insert",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index(
        "ix_snippets_language_public_owner",
        "snippets",
        ["language", "is_public", "owner_id"],
    )
    op.create_index("ix_snippets_owner_id", "snippets", ["owner_id"])
    op.create_index("ix_snippets_created_at", "snippets", [sa.text("created_at DESC")])

    if _is_postgresql():
        op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")
        op.create_index(
            "ix_snippets_search_text_trgm",
            "snippets",
            ["search_text"],
            postgresql_using="gin",
            postgresql_ops={"search_text": "gin_trgm_ops"},
        )


def downgrade() -> None:
    if _is_postgresql():
        op.drop_index("ix_snippets_search_text_trgm", table_name="snippets")
    op.drop_index("ix_snippets_created_at", table_name="snippets")
    op.drop_index("ix_snippets_owner_id", table_name="snippets")
    op.drop_index("ix_snippets_language_public_owner", table_name="snippets")
    op.drop_table("snippets")
    op.drop_table("users")
