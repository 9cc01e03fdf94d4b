"""
SnippetDeck Backend — Snippet Service (CRUD Orchestrator)
==========================================================

What:  Runs each snippet use case: fetch → authorize → sanitize → persist.
How:   Composes an AccessFilterEngine (decisions) with a SnippetStore
       (persistence). Both are injected; the service holds nothing else.
Who:   Called by the snippet route handlers.

Existence concealment:
    The engine answers ForbiddenError for a private snippet that the caller
    does not own. This service turns that into NotFoundError for reads,
    updates and deletes alike, so a private snippet cannot be told apart
    from a missing one. Non-owner mutations of *public* snippets keep
    ForbiddenError.
"""

import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional

from snippetdeck.exceptions import ForbiddenError, NotFoundError
from snippetdeck.models.snippet import Snippet
from snippetdeck.services.access import (
    AccessFilterEngine,
    Caller,
    ListFilters,
    Operation,
    Scope,
    sanitize_mutation_payload,
)
from snippetdeck.services.store_base import SnippetStore

logger = logging.getLogger(__name__)


def parse_snippet_id(raw: str) -> uuid.UUID:
    """Path identifiers that are not UUIDs cannot name a snippet."""
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise NotFoundError(resource="snippet", resource_id=str(raw)) from None


class SnippetService:
    """
    Business logic for snippet operations.

    Args:
        store: request-scoped SnippetStore
        engine: AccessFilterEngine bound to the same store (built if omitted)
    """

    def __init__(self, store: SnippetStore, engine: Optional[AccessFilterEngine] = None):
        self.store = store
        self.engine = engine or AccessFilterEngine(store)

    async def list_snippets(
        self,
        caller: Caller,
        scope: Scope,
        filters: Optional[ListFilters] = None,
    ) -> List[Snippet]:
        snippets = await self.engine.resolve_list(caller, scope, filters)
        logger.debug(
            "Listed %d snippets (scope=%s, caller=%s)",
            len(snippets), scope.value, caller.id,
        )
        return snippets

    async def get_snippet(self, caller: Caller, snippet_id: str) -> Snippet:
        """
        Fetch one snippet the caller may read.

        Raises:
            NotFoundError: unknown id, or a private snippet the caller doesn't own
        """
        sid = parse_snippet_id(snippet_id)
        snippet = await self.store.find_by_id(sid)
        try:
            return self.engine.authorize_read(caller, snippet)
        except ForbiddenError:
            raise NotFoundError(resource="snippet", resource_id=str(sid)) from None

    async def create_snippet(self, caller: Caller, payload: Mapping[str, Any]) -> Snippet:
        """
        Create a snippet owned by the caller.

        Any owner/id/timestamp fields in `payload` are discarded; the owner is
        always the caller.

        Raises:
            UnauthenticatedError: anonymous caller
            ValidationFailedError: missing or invalid fields
        """
        self.engine.authorize_create(caller)
        data = sanitize_mutation_payload(payload, partial=False)
        snippet = await self.store.insert(caller.id, data)
        logger.info(
            "Snippet %s created by user %s (language=%s, public=%s)",
            snippet.id, caller.id, snippet.language, snippet.is_public,
        )
        return snippet

    async def update_snippet(
        self,
        caller: Caller,
        snippet_id: str,
        payload: Mapping[str, Any],
    ) -> Snippet:
        """
        Apply a partial update. The owner can never be changed this way.

        Raises:
            UnauthenticatedError, NotFoundError, ForbiddenError, ValidationFailedError
        """
        sid = parse_snippet_id(snippet_id)
        snippet = await self.store.find_by_id(sid)
        self._authorize_mutation(caller, snippet, Operation.UPDATE)
        data = sanitize_mutation_payload(payload, partial=True)

        updated = await self.store.update_by_id(sid, data)
        if updated is None:
            # Deleted by a concurrent request between fetch and write
            raise NotFoundError(resource="snippet", resource_id=str(sid))
        logger.info(
            "Snippet %s updated by user %s (fields=%s)",
            sid, caller.id, ",".join(sorted(data)) or "-",
        )
        return updated

    async def delete_snippet(self, caller: Caller, snippet_id: str) -> None:
        """
        Delete a snippet owned by the caller.

        Raises:
            UnauthenticatedError, NotFoundError, ForbiddenError
        """
        sid = parse_snippet_id(snippet_id)
        snippet = await self.store.find_by_id(sid)
        self._authorize_mutation(caller, snippet, Operation.DELETE)

        if not await self.store.delete_by_id(sid):
            raise NotFoundError(resource="snippet", resource_id=str(sid))
        logger.info("Snippet %s deleted by user %s", sid, caller.id)

    def _authorize_mutation(
        self,
        caller: Caller,
        snippet: Optional[Snippet],
        operation: Operation,
    ) -> Snippet:
        try:
            return self.engine.authorize_mutation(caller, snippet, operation)
        except ForbiddenError:
            if snippet is not None and not snippet.is_public:
                raise NotFoundError(resource="snippet", resource_id=str(snippet.id)) from None
            raise
