"""
SnippetDeck Backend — Snippet Service Unit Tests
=================================================

What:  SnippetService orchestration on top of the dict-backed store.
How:   Real AccessFilterEngine, MemorySnippetStore from conftest; no database.

What we test:
    ✅ Create: owner always comes from the caller, required fields enforced
    ✅ Read: public/owner access, private snippets concealed as not found
    ✅ Update/Delete: owner only; public non-owner → 403, private → 404
    ✅ Invalid ids behave like unknown ids
"""

import uuid
from unittest.mock import AsyncMock

import pytest

from snippetdeck.exceptions import (
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    ValidationFailedError,
)
from snippetdeck.services.access import ANONYMOUS, ListFilters, Scope
from snippetdeck.services.snippet_service import SnippetService, parse_snippet_id

VALID_PAYLOAD = {"title": "Hello", "code": "print(1)", "language": "Python"}


class TestCreate:

    @pytest.mark.asyncio
    async def test_owner_is_caller_even_if_payload_says_otherwise(self, memory_store, owner):
        service = SnippetService(memory_store)
        payload = dict(VALID_PAYLOAD, owner=str(uuid.uuid4()), userId=str(uuid.uuid4()))

        snippet = await service.create_snippet(owner, payload)

        assert snippet.owner_id == owner.id
        assert snippet.language == "python"
        assert snippet.id in memory_store.snippets

    @pytest.mark.asyncio
    async def test_anonymous_cannot_create(self, memory_store):
        service = SnippetService(memory_store)
        with pytest.raises(UnauthenticatedError):
            await service.create_snippet(ANONYMOUS, VALID_PAYLOAD)
        assert memory_store.snippets == {}

    @pytest.mark.asyncio
    async def test_missing_fields_rejected(self, memory_store, owner):
        service = SnippetService(memory_store)
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.create_snippet(owner, {"title": "only a title"})
        assert set(exc_info.value.fields) == {"code", "language"}


class TestRead:

    @pytest.mark.asyncio
    async def test_public_snippet_visible_to_anonymous(self, memory_store, owner, new_snippet):
        snippet = new_snippet(owner.id, is_public=True)
        memory_store.snippets[snippet.id] = snippet

        result = await SnippetService(memory_store).get_snippet(ANONYMOUS, str(snippet.id))

        assert result is snippet

    @pytest.mark.asyncio
    async def test_private_snippet_concealed(self, memory_store, owner, stranger, new_snippet):
        snippet = new_snippet(owner.id, is_public=False)
        memory_store.snippets[snippet.id] = snippet
        service = SnippetService(memory_store)

        for caller in (stranger, ANONYMOUS):
            with pytest.raises(NotFoundError) as exc_info:
                await service.get_snippet(caller, str(snippet.id))
            assert exc_info.value.message == "Snippet not found"

        assert await service.get_snippet(owner, str(snippet.id)) is snippet

    @pytest.mark.asyncio
    async def test_invalid_id_is_not_found(self, memory_store, owner):
        with pytest.raises(NotFoundError):
            await SnippetService(memory_store).get_snippet(owner, "not-a-uuid")

    def test_parse_snippet_id(self):
        sid = uuid.uuid4()
        assert parse_snippet_id(str(sid)) == sid
        with pytest.raises(NotFoundError):
            parse_snippet_id("12345")


class TestList:

    @pytest.mark.asyncio
    async def test_delegates_to_engine(self, memory_store, owner):
        service = SnippetService(memory_store)
        await service.list_snippets(owner, Scope.PUBLIC, ListFilters(sort="title"))
        query = memory_store.queries[0]
        assert query.public_only is True
        assert query.sort.field == "title"


class TestUpdate:

    @pytest.mark.asyncio
    async def test_owner_updates_only_sent_fields(self, memory_store, owner, new_snippet):
        snippet = new_snippet(owner.id, title="old", tags=["keep"])
        memory_store.snippets[snippet.id] = snippet

        updated = await SnippetService(memory_store).update_snippet(
            owner, str(snippet.id), {"title": "  new  ", "owner": str(uuid.uuid4())},
        )

        assert updated.title == "new"
        assert updated.tags == ["keep"]
        assert updated.owner_id == owner.id

    @pytest.mark.asyncio
    async def test_non_owner_public_is_forbidden(self, memory_store, owner, stranger, new_snippet):
        snippet = new_snippet(owner.id, is_public=True, title="orig")
        memory_store.snippets[snippet.id] = snippet

        with pytest.raises(ForbiddenError):
            await SnippetService(memory_store).update_snippet(
                stranger, str(snippet.id), {"title": "hijack"},
            )
        assert snippet.title == "orig"

    @pytest.mark.asyncio
    async def test_non_owner_private_is_concealed(self, memory_store, owner, stranger, new_snippet):
        snippet = new_snippet(owner.id, is_public=False)
        memory_store.snippets[snippet.id] = snippet

        with pytest.raises(NotFoundError):
            await SnippetService(memory_store).update_snippet(
                stranger, str(snippet.id), {"title": "hijack"},
            )

    @pytest.mark.asyncio
    async def test_authorization_precedes_validation(self, memory_store, owner, stranger, new_snippet):
        snippet = new_snippet(owner.id, is_public=True)
        memory_store.snippets[snippet.id] = snippet

        with pytest.raises(ForbiddenError):
            await SnippetService(memory_store).update_snippet(
                stranger, str(snippet.id), {"title": ""},
            )

    @pytest.mark.asyncio
    async def test_anonymous_update_is_unauthenticated(self, memory_store, owner, new_snippet):
        snippet = new_snippet(owner.id, is_public=True)
        memory_store.snippets[snippet.id] = snippet

        with pytest.raises(UnauthenticatedError):
            await SnippetService(memory_store).update_snippet(
                ANONYMOUS, str(snippet.id), {"title": "x"},
            )

    @pytest.mark.asyncio
    async def test_concurrent_delete_reported_as_not_found(self, memory_store, owner, new_snippet):
        snippet = new_snippet(owner.id)
        memory_store.snippets[snippet.id] = snippet
        memory_store.update_by_id = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await SnippetService(memory_store).update_snippet(
                owner, str(snippet.id), {"title": "x"},
            )


class TestDelete:

    @pytest.mark.asyncio
    async def test_owner_deletes(self, memory_store, owner, new_snippet):
        snippet = new_snippet(owner.id)
        memory_store.snippets[snippet.id] = snippet

        await SnippetService(memory_store).delete_snippet(owner, str(snippet.id))

        assert snippet.id not in memory_store.snippets

    @pytest.mark.asyncio
    async def test_non_owner_cannot_delete(self, memory_store, owner, stranger, new_snippet):
        public = new_snippet(owner.id, is_public=True)
        private = new_snippet(owner.id, is_public=False)
        memory_store.snippets[public.id] = public
        memory_store.snippets[private.id] = private
        service = SnippetService(memory_store)

        with pytest.raises(ForbiddenError):
            await service.delete_snippet(stranger, str(public.id))
        with pytest.raises(NotFoundError):
            await service.delete_snippet(stranger, str(private.id))

        assert set(memory_store.snippets) == {public.id, private.id}

    @pytest.mark.asyncio
    async def test_missing_snippet(self, memory_store, owner):
        with pytest.raises(NotFoundError):
            await SnippetService(memory_store).delete_snippet(owner, str(uuid.uuid4()))
