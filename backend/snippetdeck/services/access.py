"""
SnippetDeck Backend — Snippet Access & Query Filtering
=======================================================

What:  The AccessFilterEngine: visibility/ownership decisions for every snippet
       operation and the predicate + ordering used for every list query.
How:   Pure decision functions over (caller, request, snippet). The only
       collaborator is the SnippetStore handed in at construction, used by
       `resolve_list()` to evaluate the query it builds.
Who:   Used by SnippetService; nothing else inspects owner_id or is_public.

Rules:
    Read     public snippet            → anyone
             private snippet           → owner only, else ForbiddenError
    Update / → owner only; anonymous   → UnauthenticatedError
    Delete     non-owner               → ForbiddenError
    Create   → any authenticated caller; anonymous → UnauthenticatedError

    List scopes:
        mine       owner_id == caller.id (any visibility); requires a caller
        public     is_public
        legacyAll  owner's snippets for an authenticated caller, else public

    Filters (ANDed onto the scope):
        language   exact match after lowercasing
        search     any of its word tokens equal to a whole word token of the
                   title or description, case-insensitively; no stemming
        sort       createdAt | -createdAt | title | -title (default -createdAt)

The engine keeps no state between calls; each call sees the store as it is
at that moment.
"""

import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from snippetdeck.exceptions import (
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    ValidationFailedError,
)
from snippetdeck.models.snippet import (
    DESCRIPTION_MAX_LENGTH,
    LANGUAGE_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Snippet,
    tokenize,
)
from snippetdeck.services.store_base import SnippetStore

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Vocabulary
# ══════════════════════════════════════════════════════════════════════════

class Scope(str, Enum):
    """Selection policy for a list query."""

    MINE = "mine"
    PUBLIC = "public"
    LEGACY_ALL = "legacyAll"


class Operation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SortKey(str, Enum):
    """Accepted `sort` values. A leading '-' means descending."""

    CREATED_AT = "createdAt"
    CREATED_AT_DESC = "-createdAt"
    TITLE = "title"
    TITLE_DESC = "-title"

    @property
    def field(self) -> str:
        """Model attribute the key orders by."""
        return "title" if self.value.lstrip("-") == "title" else "created_at"

    @property
    def descending(self) -> bool:
        return self.value.startswith("-")

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortKey":
        """Map a raw query value to a SortKey; None or "" means the default."""
        if not value:
            return DEFAULT_SORT
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(key.value for key in cls)
            raise ValidationFailedError.single(
                "sort", f"Invalid sort '{value}'. Must be one of: {allowed}"
            ) from None


DEFAULT_SORT = SortKey.CREATED_AT_DESC


@dataclass(frozen=True)
class Caller:
    """
    The identity a request acts as.

    `id` is a uuid.UUID and is compared as such; anonymous callers carry
    neither id nor username.
    """

    authenticated: bool
    id: Optional[uuid.UUID] = None
    username: Optional[str] = None

    @classmethod
    def user(cls, user_id: uuid.UUID, username: Optional[str] = None) -> "Caller":
        return cls(authenticated=True, id=user_id, username=username)

    def owns(self, snippet: Snippet) -> bool:
        return self.authenticated and self.id is not None and self.id == snippet.owner_id


ANONYMOUS = Caller(authenticated=False)


@dataclass(frozen=True)
class ListFilters:
    """Optional list parameters as received from the client."""

    language: Optional[str] = None
    search: Optional[str] = None
    sort: Optional[str] = None


@dataclass(frozen=True)
class SnippetQuery:
    """
    A fully resolved list predicate plus ordering.

    owner_id      restrict to this owner (None = any owner)
    public_only   restrict to is_public == True
    language      lowercase exact match (None = any)
    search_terms  lowercase word tokens; a snippet matches when any of them is a
                  whole token of its title or description (empty = no constraint)
    sort          ordering key; ties broken by id in the same direction
    """

    owner_id: Optional[uuid.UUID] = None
    public_only: bool = False
    language: Optional[str] = None
    search_terms: Tuple[str, ...] = ()
    sort: SortKey = DEFAULT_SORT


# ══════════════════════════════════════════════════════════════════════════
# Payload sanitizing
# ══════════════════════════════════════════════════════════════════════════

# Never accepted from clients, in any spelling
SYSTEM_FIELDS = frozenset({
    "id", "_id",
    "owner", "owner_id", "ownerId", "user", "user_id", "userId",
    "created_at", "createdAt",
    "updated_at", "updatedAt",
})

FIELD_ALIASES = {"isPublic": "is_public"}

MUTABLE_FIELDS = ("title", "description", "code", "language", "tags", "is_public")

REQUIRED_MESSAGES = {
    "title": "Title is required",
    "code": "Code content is required",
    "language": "Programming language is required",
}


def normalize_language(value: str) -> str:
    return value.strip().lower()


def _clean_tags(value: Any, errors: Dict[str, List[str]]) -> List[str]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(t, str) for t in value):
        errors.setdefault("tags", []).append("Tags must be a list of strings")
        return []
    return [tag.strip() for tag in value if tag.strip()]


def sanitize_mutation_payload(payload: Mapping[str, Any], partial: bool = True) -> Dict[str, Any]:
    """
    Reduce a create/update payload to the fields a client may set.

    Strips system fields (id, owner, timestamps) and unknown keys, accepts
    `isPublic` for `is_public`, trims text fields, lowercases `language`
    and drops blank tags.

    null handling:
        title, code, language       null is a missing required value (error)
        description, tags, isPublic null resets the field to its default
                                    ("", [], false)

    Args:
        payload: raw field mapping from the request body
        partial: True for updates (only present fields are checked);
                 False for creates (title, code and language are required)

    Returns:
        A new dict keyed by model attribute names.

    Raises:
        ValidationFailedError: with every offending field and its messages.
    """
    cleaned: Dict[str, Any] = {}
    for key, value in payload.items():
        key = FIELD_ALIASES.get(key, key)
        if key in SYSTEM_FIELDS or key not in MUTABLE_FIELDS:
            continue
        cleaned[key] = value

    errors: Dict[str, List[str]] = {}

    if not partial:
        for field, message in REQUIRED_MESSAGES.items():
            if cleaned.get(field) is None:
                errors.setdefault(field, []).append(message)

    if "title" in cleaned and cleaned["title"] is not None:
        title = cleaned["title"]
        if not isinstance(title, str) or not title.strip():
            errors.setdefault("title", []).append(REQUIRED_MESSAGES["title"])
        else:
            title = title.strip()
            if len(title) > TITLE_MAX_LENGTH:
                errors.setdefault("title", []).append(
                    f"Title cannot exceed {TITLE_MAX_LENGTH} characters"
                )
            cleaned["title"] = title
    elif "title" in cleaned and partial:
        errors.setdefault("title", []).append(REQUIRED_MESSAGES["title"])

    if "description" in cleaned:
        description = cleaned["description"]
        if description is None:
            cleaned["description"] = ""
        elif not isinstance(description, str):
            errors.setdefault("description", []).append("Description must be a string")
        else:
            description = description.strip()
            if len(description) > DESCRIPTION_MAX_LENGTH:
                errors.setdefault("description", []).append(
                    f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters"
                )
            cleaned["description"] = description

    if "code" in cleaned:
        code = cleaned["code"]
        # code is stored verbatim; whitespace-only counts as empty
        if not isinstance(code, str) or not code.strip():
            if "code" not in errors:
                errors.setdefault("code", []).append(REQUIRED_MESSAGES["code"])

    if "language" in cleaned:
        language = cleaned["language"]
        if not isinstance(language, str) or not language.strip():
            if "language" not in errors:
                errors.setdefault("language", []).append(REQUIRED_MESSAGES["language"])
        else:
            language = normalize_language(language)
            if len(language) > LANGUAGE_MAX_LENGTH:
                errors.setdefault("language", []).append(
                    f"Programming language cannot exceed {LANGUAGE_MAX_LENGTH} characters"
                )
            cleaned["language"] = language

    if "tags" in cleaned:
        tags = cleaned["tags"]
        cleaned["tags"] = [] if tags is None else _clean_tags(tags, errors)

    if "is_public" in cleaned and cleaned["is_public"] is None:
        cleaned["is_public"] = False
    elif "is_public" in cleaned and not isinstance(cleaned["is_public"], bool):
        errors.setdefault("isPublic", []).append("isPublic must be true or false")

    if errors:
        raise ValidationFailedError(errors)
    return cleaned


# ══════════════════════════════════════════════════════════════════════════
# Engine
# ══════════════════════════════════════════════════════════════════════════

class AccessFilterEngine:
    """
    Authorization decisions and list-query construction for snippets.

    Args:
        store: the SnippetStore list queries are evaluated against. Its
               lifecycle belongs to whoever built it (one per request).
    """

    sanitize_mutation_payload = staticmethod(sanitize_mutation_payload)

    def __init__(self, store: SnippetStore):
        self.store = store

    # ── List ──────────────────────────────────────────────────────────────
    def build_list_query(
        self,
        caller: Caller,
        scope: Scope,
        filters: Optional[ListFilters] = None,
    ) -> SnippetQuery:
        """
        Resolve scope + filters into a SnippetQuery.

        Raises:
            UnauthenticatedError: scope is MINE and the caller is anonymous
            ValidationFailedError: unrecognized sort value
        """
        filters = filters or ListFilters()
        sort = SortKey.parse(filters.sort)

        if scope is Scope.MINE:
            if not caller.authenticated:
                raise UnauthenticatedError("Log in to see your snippets")
            owner_id, public_only = caller.id, False
        elif scope is Scope.PUBLIC:
            owner_id, public_only = None, True
        elif scope is Scope.LEGACY_ALL:
            if caller.authenticated:
                owner_id, public_only = caller.id, False
            else:
                owner_id, public_only = None, True
        else:
            raise ValueError(f"Unknown scope: {scope!r}")

        language = None
        if filters.language and filters.language.strip():
            language = normalize_language(filters.language)

        terms: Tuple[str, ...] = ()
        if filters.search:
            # dict.fromkeys keeps first-seen order while dropping repeats
            terms = tuple(dict.fromkeys(tokenize(filters.search)))

        return SnippetQuery(
            owner_id=owner_id,
            public_only=public_only,
            language=language,
            search_terms=terms,
            sort=sort,
        )

    async def resolve_list(
        self,
        caller: Caller,
        scope: Scope,
        filters: Optional[ListFilters] = None,
    ) -> List[Snippet]:
        """Build the query for (caller, scope, filters) and run it against the store."""
        query = self.build_list_query(caller, scope, filters)
        return await self.store.query(query)

    # ── Read ──────────────────────────────────────────────────────────────
    def authorize_read(self, caller: Caller, snippet: Optional[Snippet]) -> Snippet:
        """
        Permit reading `snippet` when it is public or owned by the caller.

        Raises:
            NotFoundError: snippet is None (checked before visibility)
            ForbiddenError: private snippet, caller is not the owner
        """
        if snippet is None:
            raise NotFoundError(resource="snippet")
        if snippet.is_public or caller.owns(snippet):
            return snippet
        raise ForbiddenError(
            "You do not have permission to view this snippet",
            context={"snippet_id": str(snippet.id)},
        )

    # ── Mutations ─────────────────────────────────────────────────────────
    def authorize_create(self, caller: Caller) -> None:
        if not caller.authenticated:
            raise UnauthenticatedError("Log in to create snippets")

    def authorize_mutation(
        self,
        caller: Caller,
        snippet: Optional[Snippet],
        operation: Operation,
    ) -> Snippet:
        """
        Permit update/delete only for the snippet's owner.

        Raises:
            UnauthenticatedError: anonymous caller
            NotFoundError: snippet is None
            ForbiddenError: caller is not the owner (public or private alike)
        """
        if operation is Operation.CREATE:
            raise ValueError("Use authorize_create() for create operations")
        if not caller.authenticated:
            raise UnauthenticatedError()
        if snippet is None:
            raise NotFoundError(resource="snippet")
        if not caller.owns(snippet):
            logger.warning(
                "Denied %s on snippet %s for user %s",
                operation.value, snippet.id, caller.id,
            )
            raise ForbiddenError(
                f"You do not have permission to {operation.value} this snippet",
                context={"snippet_id": str(snippet.id)},
            )
        return snippet
