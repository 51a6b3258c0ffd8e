"""Health endpoint against the configured (in-memory SQLite) database."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from src.hostctl.core import db
from src.hostctl.main import create_app

pytestmark = pytest.mark.integration


@pytest.fixture
async def bare_client() -> AsyncGenerator[AsyncClient]:
    await db.dispose_engine()
    app = create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    await db.dispose_engine()


async def test_health_reports_database(bare_client: AsyncClient):
    response = await bare_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "healthy"}


async def test_health_reports_unhealthy_database(
    bare_client: AsyncClient, monkeypatch: pytest.MonkeyPatch
):
    class _BrokenSession:
        async def __aenter__(self):
            raise ConnectionRefusedError("database is down")

        async def __aexit__(self, *exc_info):
            return False

    monkeypatch.setattr("src.hostctl.core.health.get_session", lambda: _BrokenSession())

    response = await bare_client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"
