"""
SnippetDeck Backend — Snippet Request/Response Schemas
=======================================================

What:  Pydantic models for the snippet API contract.
How:   Wire names are camelCase (isPublic, createdAt, ...); snake_case input is
       accepted too. Request models only check JSON types. Field rules (length,
       required, lowercase language) are applied by sanitize_mutation_payload
       so they are reported as one ValidationFailedError.

Request bodies allow extra keys: a client echoing back a full snippet
(id, owner, createdAt, ...) is accepted and those keys are discarded.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SnippetPayload(BaseModel):
    """
    Body of POST /api/snippets and PUT /api/snippets/{id}.

    Every field is optional here; create-time requirements are enforced by
    the access layer. Only fields actually sent are forwarded
    (`to_payload()` uses exclude_unset).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        json_schema_extra={
            "example": {
                "title": "Debounce helper",
                "description": "Delay a callback until input settles",
                "code": "const debounce = (fn, ms) => { ... }",
                "language": "JavaScript",
                "tags": ["utils", "events"],
                "isPublic": True,
            }
        },
    )

    title: Optional[str] = None
    description: Optional[str] = None
    code: Optional[str] = None
    language: Optional[str] = None
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None

    def to_payload(self) -> Dict[str, Any]:
        """Fields the client sent, keyed by attribute name, plus any extra keys."""
        data = self.model_dump(exclude_unset=True, by_alias=False)
        data.update(self.model_extra or {})
        return data


class SnippetResponse(BaseModel):
    """Full representation of a snippet."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: uuid.UUID = Field(description="Unique snippet identifier")
    title: str
    description: str = ""
    code: str
    language: str = Field(description="Lowercase language tag")
    tags: List[str] = Field(default_factory=list)
    is_public: bool
    owner: uuid.UUID = Field(
        validation_alias=AliasChoices("owner_id", "owner"),
        description="Id of the user who created the snippet",
    )
    created_at: datetime
    updated_at: datetime


class DeleteResponse(BaseModel):
    message: str = "Snippet deleted successfully"
