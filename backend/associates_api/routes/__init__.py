"""
Associates Backend — API Routes Package
========================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each module handles one area of the API.

Route Inventory:
    - auth.py:       POST /api/auth/login, POST /api/auth/logout,
                     GET /api/auth/me, PUT /api/auth/secret,
                     POST /api/auth/register
    - resources.py:  GET/POST /api/<resource>, GET/PUT/DELETE /api/<resource>/{id}
                     for blog, job, team, gallery, about, news, legalServices
    - media.py:      POST /api/upload, POST /api/delete
    - health.py:     GET /, GET /health

Design Principle:
    Routes are thin. They extract input, call a service, and choose the
    status code. Protected routes declare require_identity (or require_role)
    in their decorator; no handler checks cookies itself.
"""
