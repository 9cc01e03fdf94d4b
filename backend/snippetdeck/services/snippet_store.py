"""
SnippetDeck Backend — SQLAlchemy Snippet Store
===============================================

What:  SnippetStore implementation over an AsyncSession.
How:   Translates SnippetQuery into a SELECT; writes are flushed in the
       request's session and committed by the session dependency.
Who:   Built per request by routes/deps.py; used by AccessFilterEngine and
       SnippetService.

Query plan (scope=public, language filter, default sort):
    SELECT ... FROM snippets
    WHERE is_public AND language = :lang
    ORDER BY created_at DESC, id DESC
    → ix_snippets_language_public_owner for the filter

Search:
    Terms arrive as lowercase word tokens (see models.snippet.tokenize). Each
    becomes `search_text LIKE '% term %'`, i.e. a whole-token match against the
    padded token string kept in sync with title + description; the terms are
    ORed together. "_" is a word character, so it is escaped. On PostgreSQL the
    trigram index on search_text serves these.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from snippetdeck.exceptions import DatabaseError
from snippetdeck.models.snippet import Snippet, utcnow
from snippetdeck.services.access import SnippetQuery
from snippetdeck.services.store_base import SnippetStore

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"


def _token_pattern(term: str) -> str:
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"% {escaped} %"


class SqlSnippetStore(SnippetStore):
    """
    Snippet persistence backed by SQLAlchemy.

    Args:
        db: the request-scoped AsyncSession (owned by get_db_session)
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def build_select(self, query: SnippetQuery):
        """Compile a SnippetQuery into a SQLAlchemy Select."""
        stmt = select(Snippet)

        if query.owner_id is not None:
            stmt = stmt.where(Snippet.owner_id == query.owner_id)
        if query.public_only:
            stmt = stmt.where(Snippet.is_public.is_(True))
        if query.language is not None:
            stmt = stmt.where(Snippet.language == query.language)
        if query.search_terms:
            clauses = [
                Snippet.search_text.like(_token_pattern(term), escape=LIKE_ESCAPE)
                for term in query.search_terms
            ]
            stmt = stmt.where(or_(*clauses))

        column = getattr(Snippet, query.sort.field)
        if query.sort.descending:
            stmt = stmt.order_by(column.desc(), Snippet.id.desc())
        else:
            stmt = stmt.order_by(column.asc(), Snippet.id.asc())
        return stmt

    async def find_by_id(self, snippet_id: uuid.UUID) -> Optional[Snippet]:
        try:
            return await self.db.get(Snippet, snippet_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching snippet %s: %s", snippet_id, e)
            raise DatabaseError(
                message="Could not retrieve the snippet. Please try again.",
                context={"snippet_id": str(snippet_id)},
            ) from e

    async def query(self, query: SnippetQuery) -> List[Snippet]:
        try:
            result = await self.db.execute(self.build_select(query))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing snippets: %s", e, exc_info=True)
            raise DatabaseError(
                message="Could not retrieve snippets. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

    async def insert(self, owner_id: uuid.UUID, payload: Dict[str, Any]) -> Snippet:
        now = utcnow()
        snippet = Snippet(
            **payload,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        if snippet.description is None:
            snippet.description = ""
        if snippet.tags is None:
            snippet.tags = []
        if snippet.is_public is None:
            snippet.is_public = False
        try:
            self.db.add(snippet)
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating snippet: %s", e, exc_info=True)
            raise DatabaseError(
                message="Could not save the snippet. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e
        return snippet

    async def update_by_id(
        self, snippet_id: uuid.UUID, payload: Dict[str, Any]
    ) -> Optional[Snippet]:
        snippet = await self.find_by_id(snippet_id)
        if snippet is None:
            return None
        for field, value in payload.items():
            setattr(snippet, field, value)
        snippet.updated_at = utcnow()
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating snippet %s: %s", snippet_id, e)
            raise DatabaseError(
                message="Could not update the snippet. Please try again.",
                context={"snippet_id": str(snippet_id)},
            ) from e
        return snippet

    async def delete_by_id(self, snippet_id: uuid.UUID) -> bool:
        try:
            result = await self.db.execute(delete(Snippet).where(Snippet.id == snippet_id))
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting snippet %s: %s", snippet_id, e)
            raise DatabaseError(
                message="Could not delete the snippet. Please try again.",
                context={"snippet_id": str(snippet_id)},
            ) from e
        return result.rowcount > 0
