"""
TaskTrack Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixtures:
    ├── mock_db_session: Mock database session (no real DB needed)
    ├── log_dir: Temporary directory standing in for LOG_DIR
    ├── sample_task_data: Field values matching the Task model
    ├── make_scope: Builder for raw ASGI HTTP scopes
    └── test_client: HTTPX AsyncClient over the real app (access log opened)
"""

import os
import tempfile
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

# Override settings BEFORE any app imports
# Why: app.config builds its singleton at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="tasktrack_test_")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402


@pytest.fixture
def mock_db_session():
    """
    A MagicMock that simulates AsyncSession behavior.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = task
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def log_dir(tmp_path):
    directory = tmp_path / "logs"
    return directory


@pytest.fixture
def sample_task_data():
    now = datetime.now(timezone.utc)
    return {
        "id": str(uuid4()),
        "title": "Write the runbook",
        "done": False,
        "created_at": now,
        "updated_at": now,
    }


@pytest.fixture
def make_scope():
    """
    Build a minimal ASGI HTTP scope.

    Usage:
        scope = make_scope("GET", "/api/health", headers={"x-request-id": "abc"},
                           client=("10.0.0.5", 51234))
    """
    def _make(method="GET", path="/", headers=None, client=("127.0.0.1", 50000), query=b"",
              raw_path=None):
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ]
        return {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method,
            "scheme": "http",
            "path": path,
            "raw_path": raw_path if raw_path is not None else path.encode(),
            "query_string": query,
            "root_path": "",
            "headers": raw_headers,
            "client": client,
            "server": ("testserver", 80),
        }
    return _make


@pytest_asyncio.fixture
async def test_client():
    """
    HTTPX AsyncClient talking to the FastAPI app through ASGITransport.

    ASGITransport does not run the lifespan, so the access log is opened
    and closed here the way the lifespan handler would.
    """
    from app.main import app

    service = app.state.access_log_service
    await service.open()
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await service.close()
