"""
TaskTrack Backend — API Route Tests
=====================================

What:  The full middleware stack and routes through HTTPX's ASGITransport,
       with the database session swapped for a mock.

What we test:
    ✅ Task CRUD status codes and wire field names
    ✅ Error bodies echo the correlation id (or the sentinel)
    ✅ Health reports 200/500 from the database ping
    ✅ Debug echoes the proxy headers
    ✅ Each request yields one structured line and one access-log line
    ✅ Percent-encoded paths are logged encoded
"""

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio

from app.database import get_db_session
from app.main import app


@pytest_asyncio.fixture
async def api(test_client, mock_db_session):
    async def override():
        yield mock_db_session

    app.dependency_overrides[get_db_session] = override
    yield test_client
    app.dependency_overrides.clear()


def _access_lines():
    path = app.state.settings.access_log_path
    return path.read_text(encoding="utf-8").splitlines() if path.exists() else []


class TestTaskRoutes:

    @pytest.mark.asyncio
    async def test_create_task(self, api):
        response = await api.post("/api/tasks", json={"title": "  Buy milk "})

        assert response.status_code == 201
        body = response.json()
        assert body["title"] == "Buy milk"
        assert body["done"] is False
        assert {"id", "createdAt", "updatedAt"} <= body.keys()

    @pytest.mark.asyncio
    async def test_create_blank_title_rejected(self, api):
        response = await api.post("/api/tasks", json={"title": "   "})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "title required"
        assert body["request_id"] == "no-rid"

    @pytest.mark.asyncio
    async def test_error_body_echoes_request_id(self, api):
        response = await api.post("/api/tasks", json={}, headers={"X-Request-ID": "abc123"})

        assert response.status_code == 400
        assert response.json()["request_id"] == "abc123"

    @pytest.mark.asyncio
    async def test_list_tasks(self, api, mock_db_session, sample_task_data):
        mock_result = MagicMock()
        mock_result.scalars.return_value.all.return_value = [MagicMock(**sample_task_data)]
        mock_db_session.execute.return_value = mock_result

        response = await api.get("/api/tasks")

        assert response.status_code == 200
        assert [t["id"] for t in response.json()] == [sample_task_data["id"]]

    @pytest.mark.asyncio
    async def test_update_unknown_task(self, api, mock_db_session):
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None
        mock_db_session.execute.return_value = mock_result

        response = await api.put("/api/tasks/missing", json={"done": True})

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_delete_task(self, api, mock_db_session):
        mock_db_session.execute.return_value = MagicMock(rowcount=1)

        response = await api.delete("/api/tasks/some-id")

        assert response.status_code == 204
        assert response.content == b""

    @pytest.mark.asyncio
    async def test_delete_unknown_task(self, api, mock_db_session):
        mock_db_session.execute.return_value = MagicMock(rowcount=0)

        response = await api.delete("/api/tasks/missing")

        assert response.status_code == 404


class TestHealthRoutes:

    @pytest.mark.asyncio
    async def test_health_ok(self, test_client):
        with patch("app.routes.health.ping_database", new=AsyncMock()):
            response = await test_client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["driver"] == "sqlite"
        assert body["uptime"] >= 0

    @pytest.mark.asyncio
    async def test_health_database_down(self, test_client):
        failing = AsyncMock(side_effect=ConnectionRefusedError("db down"))
        with patch("app.routes.health.ping_database", new=failing):
            response = await test_client.get("/api/health")

        assert response.status_code == 500
        assert response.json()["ok"] is False

    @pytest.mark.asyncio
    async def test_debug_echoes_proxy_headers(self, test_client):
        response = await test_client.get(
            "/api/debug",
            headers={"X-Forwarded-For": "1.2.3.4", "X-Forwarded-Proto": "https"},
        )

        body = response.json()
        assert body["headers"]["x-forwarded-for"] == "1.2.3.4"
        assert body["headers"]["x-forwarded-proto"] == "https"
        assert body["headers"]["x-real-ip"] is None


class TestRequestLogging:

    @pytest.mark.asyncio
    async def test_one_structured_and_one_access_line(self, test_client, caplog):
        caplog.set_level(logging.INFO, logger="tasktrack.requests")
        before = len(_access_lines())

        with patch("app.routes.health.ping_database", new=AsyncMock()):
            await test_client.get(
                "/api/health",
                headers={"X-Request-ID": "trace-42", "X-Forwarded-For": "1.2.3.4, 5.6.7.8"},
            )
        await app.state.access_log_service.close()

        structured = [
            json.loads(r.getMessage()) for r in caplog.records if r.name == "tasktrack.requests"
        ]
        assert len(structured) == 1
        assert structured[0]["requestId"] == "trace-42"
        assert structured[0]["ip"] == "1.2.3.4, 5.6.7.8"

        new_lines = _access_lines()[before:]
        assert len(new_lines) == 1
        parts = new_lines[0].split(" ")
        assert parts[1:5] == ["1.2.3.4", "GET", "/api/health", "200"]
        assert parts[5].endswith("ms")

    @pytest.mark.asyncio
    async def test_error_responses_are_logged_with_their_status(self, api):
        before = len(_access_lines())

        await api.post("/api/tasks", json={"title": ""})
        await app.state.access_log_service.close()

        new_lines = _access_lines()[before:]
        assert len(new_lines) == 1
        assert " POST /api/tasks 400 " in new_lines[0]

    @pytest.mark.asyncio
    async def test_encoded_path_cannot_forge_a_second_line(self, test_client):
        before = len(_access_lines())

        await test_client.get("/api/x%0A1.1.1.1%20DELETE%20/api/tasks/1%20200")
        await app.state.access_log_service.close()

        new_lines = _access_lines()[before:]
        assert len(new_lines) == 1
        assert " GET /api/x%0A1.1.1.1%20DELETE%20/api/tasks/1%20200 404 " in new_lines[0]
