"""
AffiDraft Backend: Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the whole suite.
How:   Environment overrides are applied before any `affidraft` import so the
       settings singleton and the engine pick up the test database.

Fixture Hierarchy:
    Function-scoped:
    ├── mock_db_session:  AsyncMock session for service unit tests
    ├── canvas:           CanvasController with a seeded random source
    ├── registry:         Fresh PlaceholderRegistry
    ├── sample_request:   TemplateSaveRequest with a rectangle and two placeholders
    └── test_client:      httpx AsyncClient over ASGITransport, backed by SQLite
"""

import os
import random
import tempfile

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup (before any affidraft import)
# ══════════════════════════════════════════════════════════════════════════

_test_dir = tempfile.mkdtemp(prefix="affidraft_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_test_dir}/affidraft_test.db"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["MISSING_PLACEHOLDER_POLICY"] = "skip"
os.environ["TEMPLATE_API_URL"] = "http://templates.test"

from datetime import datetime, timezone  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from affidraft.editor.canvas import CanvasController  # noqa: E402
from affidraft.editor.placeholders import PlaceholderRegistry  # noqa: E402
from affidraft.schemas.template import TemplateSaveRequest  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Editor Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def canvas():
    """CanvasController with deterministic placement."""
    return CanvasController(rng=random.Random(1234))


@pytest.fixture
def registry():
    return PlaceholderRegistry()


def placeholder_element(object_id, placeholder_id, text, x=10.0, y=10.0, placeholder_type="text"):
    """Serialized placeholder-text record, as the editor sends it."""
    return {
        "id": object_id,
        "kind": "placeholder-text",
        "geometry": {"x": x, "y": y, "width": 200.0, "height": 40.0},
        "style": {"fill": "#0066cc", "strokeWidth": 1, "opacity": 1},
        "metadata": {
            "isPlaceholder": True,
            "placeholderId": placeholder_id,
            "placeholderType": placeholder_type,
        },
        "text": text,
    }


@pytest.fixture
def sample_elements():
    return [
        {
            "id": "rect-1",
            "kind": "rectangle",
            "geometry": {"x": 50, "y": 50, "width": 100, "height": 100},
            "style": {"fill": "rgba(66,135,245,0.5)"},
            "metadata": {},
        },
        placeholder_element("ph-1", "name", "{{Full Name}}", y=200),
        placeholder_element("ph-2", "date", "{{Date}}", y=260, placeholder_type="date"),
        {
            "id": "text-1",
            "kind": "text",
            "geometry": {"x": 40, "y": 320, "width": 500, "height": 30},
            "style": {"fill": "#000000", "fontSize": 14},
            "metadata": {},
            "text": "I, {{Full Name}}, declare under penalty of perjury.",
        },
    ]


@pytest.fixture
def sample_request(sample_elements):
    return TemplateSaveRequest(
        name="Residency Affidavit",
        description="Proof of residence",
        elements=sample_elements,
        placeholders=[],
    )


# ══════════════════════════════════════════════════════════════════════════
# Persistence Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    AsyncMock standing in for AsyncSession.

    flush() assigns the defaults the database would (id, timestamps) to
    every object passed to add(), so services can build responses.
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()

    async def flush():
        now = datetime.now(timezone.utc)
        for call in session.add.call_args_list:
            obj = call.args[0]
            if getattr(obj, "id", None) is None:
                obj.id = uuid4()
            if getattr(obj, "created_at", None) is None:
                obj.created_at = now
            if getattr(obj, "updated_at", None) is None:
                obj.updated_at = now

    session.flush = AsyncMock(side_effect=flush)
    return session


@pytest_asyncio.fixture
async def test_client():
    """
    httpx AsyncClient wired to the FastAPI app, with fresh tables per test.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from affidraft.database import Base, engine
    from affidraft.main import app
    import affidraft.models.template  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
