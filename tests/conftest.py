import httpx
import pytest
from httpx import ASGITransport


@pytest.fixture
def mock_env(monkeypatch):
    monkeypatch.setenv("GOOGLE_PLACES_API_KEY", "test-key")
    monkeypatch.setenv("SCHEDULER_ENABLED", "false")
    monkeypatch.setenv("INTER_HOTEL_DELAY", "0")


@pytest.fixture
async def client(mock_env):
    from eywa.main import app, lifespan

    async with lifespan(app):
        async with httpx.AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as c:
            yield c


@pytest.fixture
def store(client):
    from eywa.main import app

    return app.state.store
