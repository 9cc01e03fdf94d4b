"""
SnippetDeck Backend — Services Layer
=====================================

What:  Business logic between the routes (HTTP) and the database.

Service Inventory:
    - AccessFilterEngine (access.py): visibility/ownership decisions and list queries
    - SnippetStore (store_base.py): abstract persistence contract
    - SqlSnippetStore (snippet_store.py): SQLAlchemy implementation
    - SnippetService (snippet_service.py): CRUD orchestration, existence concealment
    - AuthService (auth_service.py): accounts, tokens, caller resolution

Services take their collaborators (session, store, settings) as constructor
arguments; routes/deps.py builds them per request.
"""
