"""
SnippetDeck Backend — Snippet Route Handlers
=============================================

What:  /api/snippets endpoints (list, read, create, update, delete).
How:   Extract query/body/path values, resolve the caller, delegate to
       SnippetService, serialize with SnippetResponse.
Who:   Called by the frontend lists, filters bar and editing dialog.

Route Inventory:
    GET    /api/snippets            legacyAll scope (own snippets, or public when anonymous)
    GET    /api/snippets/my         mine scope (login required)
    GET    /api/snippets/public     public scope
    GET    /api/snippets/{id}       read one
    POST   /api/snippets            create (login required)
    PUT    /api/snippets/{id}       partial update (login required)
    DELETE /api/snippets/{id}       delete (login required)

List responses carry the number of results in X-Total-Count.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from snippetdeck.routes.deps import get_caller, get_snippet_service, require_caller
from snippetdeck.schemas.common import ErrorResponse
from snippetdeck.schemas.snippet import DeleteResponse, SnippetPayload, SnippetResponse
from snippetdeck.services.access import Caller, ListFilters, Scope
from snippetdeck.services.snippet_service import SnippetService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/snippets", tags=["Snippets"])

LIST_RESPONSES = {
    400: {"description": "Invalid sort value", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
}
ITEM_RESPONSES = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Not the owner of this public snippet", "model": ErrorResponse},
    404: {"description": "Snippet not found (or private)", "model": ErrorResponse},
}


def list_filters(
    language: Optional[str] = Query(
        default=None, description="Exact language tag (case-insensitive)"
    ),
    search: Optional[str] = Query(
        default=None, description="Words to look for in title or description"
    ),
    sort: Optional[str] = Query(
        default=None, description="createdAt, -createdAt (default), title or -title"
    ),
) -> ListFilters:
    return ListFilters(language=language, search=search, sort=sort)


async def _list(
    response: Response,
    service: SnippetService,
    caller: Caller,
    scope: Scope,
    filters: ListFilters,
) -> List[SnippetResponse]:
    snippets = await service.list_snippets(caller, scope, filters)
    response.headers["X-Total-Count"] = str(len(snippets))
    return [SnippetResponse.model_validate(s) for s in snippets]


@router.get(
    "",
    response_model=List[SnippetResponse],
    responses=LIST_RESPONSES,
    summary="List snippets for the current caller",
    description=(
        "Logged-in callers get their own snippets (public and private); "
        "anonymous callers get public snippets."
    ),
)
async def list_snippets(
    response: Response,
    filters: ListFilters = Depends(list_filters),
    caller: Caller = Depends(get_caller),
    service: SnippetService = Depends(get_snippet_service),
) -> List[SnippetResponse]:
    return await _list(response, service, caller, Scope.LEGACY_ALL, filters)


@router.get(
    "/my",
    response_model=List[SnippetResponse],
    responses=LIST_RESPONSES,
    summary="List the caller's own snippets",
)
async def list_my_snippets(
    response: Response,
    filters: ListFilters = Depends(list_filters),
    caller: Caller = Depends(require_caller),
    service: SnippetService = Depends(get_snippet_service),
) -> List[SnippetResponse]:
    return await _list(response, service, caller, Scope.MINE, filters)


@router.get(
    "/public",
    response_model=List[SnippetResponse],
    responses=LIST_RESPONSES,
    summary="List public snippets",
)
async def list_public_snippets(
    response: Response,
    filters: ListFilters = Depends(list_filters),
    caller: Caller = Depends(get_caller),
    service: SnippetService = Depends(get_snippet_service),
) -> List[SnippetResponse]:
    return await _list(response, service, caller, Scope.PUBLIC, filters)


@router.get(
    "/{snippet_id}",
    response_model=SnippetResponse,
    responses=ITEM_RESPONSES,
    summary="Get a single snippet",
)
async def get_snippet(
    snippet_id: str,
    caller: Caller = Depends(get_caller),
    service: SnippetService = Depends(get_snippet_service),
) -> SnippetResponse:
    snippet = await service.get_snippet(caller, snippet_id)
    return SnippetResponse.model_validate(snippet)


@router.post(
    "",
    status_code=201,
    response_model=SnippetResponse,
    responses={
        400: {"description": "Invalid snippet fields", "model": ErrorResponse},
        401: {"description": "Login required", "model": ErrorResponse},
    },
    summary="Create a snippet owned by the caller",
)
async def create_snippet(
    payload: SnippetPayload,
    caller: Caller = Depends(require_caller),
    service: SnippetService = Depends(get_snippet_service),
) -> SnippetResponse:
    snippet = await service.create_snippet(caller, payload.to_payload())
    return SnippetResponse.model_validate(snippet)


@router.put(
    "/{snippet_id}",
    response_model=SnippetResponse,
    responses={400: {"description": "Invalid snippet fields", "model": ErrorResponse}, **ITEM_RESPONSES},
    summary="Update a snippet (partial)",
    description="Only the fields sent are changed. Owner, id and timestamps are ignored.",
)
async def update_snippet(
    snippet_id: str,
    payload: SnippetPayload,
    caller: Caller = Depends(require_caller),
    service: SnippetService = Depends(get_snippet_service),
) -> SnippetResponse:
    snippet = await service.update_snippet(caller, snippet_id, payload.to_payload())
    return SnippetResponse.model_validate(snippet)


@router.delete(
    "/{snippet_id}",
    response_model=DeleteResponse,
    responses=ITEM_RESPONSES,
    summary="Delete a snippet",
)
async def delete_snippet(
    snippet_id: str,
    caller: Caller = Depends(require_caller),
    service: SnippetService = Depends(get_snippet_service),
) -> DeleteResponse:
    await service.delete_snippet(caller, snippet_id)
    return DeleteResponse()
