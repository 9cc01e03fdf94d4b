"""
SnippetDeck Backend — Abstract Snippet Store Interface
=======================================================

What:  The persistence contract the access engine and snippet service rely on.
How:   Concrete stores inherit from SnippetStore; SqlSnippetStore is the
       SQLAlchemy implementation used by the API.
Who:   Constructed per request by the route dependencies and injected into
       AccessFilterEngine and SnippetService.

Contract:
    - Each call is one atomic unit from the caller's point of view
    - No locking or version checks: concurrent writes are last-writer-wins
    - Backend failures surface as DatabaseError, never as driver exceptions
"""

import uuid
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from snippetdeck.models.snippet import Snippet

if TYPE_CHECKING:
    from snippetdeck.services.access import SnippetQuery


class SnippetStore(ABC):
    """Create/read/update/delete by id plus predicate queries with ordering."""

    @abstractmethod
    async def find_by_id(self, snippet_id: uuid.UUID) -> Optional[Snippet]:
        """Return the snippet, or None when no snippet has this id."""
        ...

    @abstractmethod
    async def query(self, query: "SnippetQuery") -> List[Snippet]:
        """
        Return every snippet matching `query`, in `query.sort` order.

        The whole result is returned; there is no cursor. Running the same
        query twice without writes in between yields the same sequence.
        """
        ...

    @abstractmethod
    async def insert(self, owner_id: uuid.UUID, payload: Dict[str, Any]) -> Snippet:
        """
        Persist a new snippet owned by `owner_id`.

        `payload` must already be sanitized; the store assigns id and timestamps.
        """
        ...

    @abstractmethod
    async def update_by_id(
        self, snippet_id: uuid.UUID, payload: Dict[str, Any]
    ) -> Optional[Snippet]:
        """Apply a sanitized partial payload. Returns None if the snippet is gone."""
        ...

    @abstractmethod
    async def delete_by_id(self, snippet_id: uuid.UUID) -> bool:
        """Delete the snippet. Returns False if nothing was deleted."""
        ...
