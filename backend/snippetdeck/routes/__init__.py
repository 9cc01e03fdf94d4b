"""
SnippetDeck Backend — API Routes Package
=========================================

Route Inventory:
    - auth.py:      POST /api/auth/register, POST /api/auth/login, GET /api/auth/me
    - snippets.py:  /api/snippets list/read/create/update/delete
    - health.py:    GET  /api/health
    - deps.py:      per-request services and caller resolution

Routes stay thin: parse the request, call a service, shape the response.
"""
