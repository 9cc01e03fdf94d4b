"""
SnippetDeck Backend — Application Package
==========================================

What:  REST backend for storing, tagging, filtering and sharing code snippets.
Who:   Imported by uvicorn (`snippetdeck.main:app`), Alembic and pytest.

Architecture Note:
    The backend keeps a layered structure:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Access rules, CRUD)     │  ← AccessFilterEngine, SnippetService
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Store (Persistence)          │  ← SnippetStore over async sessions
    └─────────────────────────────────────┘

    Visibility and ownership decisions live in exactly one place
    (services/access.py). Routes never inspect `owner_id` or `is_public`.
"""

__version__ = "1.0.0"
