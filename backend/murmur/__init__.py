"""
Murmur Backend — Application Package Initializer
=================================================

What: Marks the `murmur` directory as a Python package.
Why:  Enables module imports like `from murmur.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend follows the same layered split for every resource:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, auth, id parsing
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Ownership + visibility rules
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Resources: identity (users/auth), relationships (follows), posts
    (likes/comments), and private notes.
"""

__version__ = "1.0.0"
