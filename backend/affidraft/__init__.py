"""
AffiDraft Backend: Application Package Initializer
===================================================

What: Marks the `affidraft` directory as a Python package.
Who:  Imported by uvicorn (`affidraft.main:app`), Alembic, and pytest.

Architecture Note:
    The backend is layered around an in-memory template editor core:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Template persistence, versioning
    ├─────────────────────────────────────┤
    │     Editor Core (pure, in-memory)   │  ← Canvas, placeholders, serialization
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    The editor core (`affidraft.editor`) imports nothing from the web or
    database layers, so it can be driven from the API, from an editor
    session talking to a remote save endpoint, or directly from tests.
"""

__version__ = "1.0.0"
