"""
Associates Backend — Application Package Initializer
=====================================================

What: Marks the `associates_api` directory as a Python package.
Why:  Enables module imports like `from associates_api.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend keeps a layered layout:

    ┌─────────────────────────────────────┐
    │     Routes + Dependencies (HTTP)    │  ← status codes, cookies, auth gate wiring
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← auth gate, documents, media host
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes never talk to the database or the media host directly; they ask a
    service, and services never build HTTP responses.
"""

__version__ = "1.0.0"
