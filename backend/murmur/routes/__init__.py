# Routes package init
"""
Murmur Backend — API Routes Package
====================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles a specific resource.

Route Inventory:
    - auth.py:    POST /api/auth/register, POST /api/auth/login, GET /api/auth/me
    - users.py:   GET  /api/users, /api/users/me/follow, /api/users/search/{query},
                  GET  /api/users/{id}, POST /api/users/{id}/follow,
                  PUT  /api/users/profile
    - posts.py:   /api/posts feed, CRUD, likes and comments
    - notes.py:   /api/notes private notes CRUD
    - health.py:  GET  /health

Design Principle:
    Routes are THIN: they parse ids, call one service, and render the
    result through presenters.py. Business rules live in services.
"""
