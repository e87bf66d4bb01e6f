"""Error responses share the {"code", "message", "data"} envelope."""

import logging

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.services.feedback_service import FeedbackService


@pytest_asyncio.fixture
async def lenient_client(session_factory):
    # unexpected errors still propagate out of the app after the 500 is sent
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def test_unexpected_error_becomes_500_envelope(lenient_client, student, headers_for, monkeypatch, caplog):
    async def explode(student, db):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(FeedbackService, "list_my_feedbacks", staticmethod(explode))

    with caplog.at_level(logging.ERROR, logger="feedback_portal"):
        response = await lenient_client.get("/api/feedback/my-feedbacks", headers=headers_for(student))

    assert response.status_code == 500
    assert response.json() == {"code": 500, "message": "Internal server error", "data": None}
    # the server logs the traceback once; the handler itself stays quiet
    assert not [r for r in caplog.records if r.name == "feedback_portal"]


async def test_validation_error_is_400_naming_the_field(client, admin, headers_for):
    response = await client.put(
        "/api/feedback/status/not-a-number", json={"status": "Resolved"}, headers=headers_for(admin)
    )
    assert response.status_code == 400
    body = response.json()
    assert body["data"] is None
    assert body["message"].startswith("Invalid input: feedback_id")


async def test_http_errors_use_envelope(client):
    response = await client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {"code": 401, "message": "Not authorized, no token", "data": None}
