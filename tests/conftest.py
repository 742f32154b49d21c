"""Shared test fixtures."""

import os

# Settings() requires these; set them before anything imports config.settings
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-not-for-production")
os.environ.setdefault("ADMIN_SECRET", "test-admin-secret")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from src.ff_notify.domain.hub import NotificationHub  # noqa: E402
from src.main import app  # noqa: E402


@pytest.fixture
def hub() -> NotificationHub:
    return NotificationHub(heartbeat_seconds=0.05, channel_buffer=10)


@pytest.fixture
async def client(hub: NotificationHub) -> AsyncClient:
    """Async HTTP client for testing FastAPI endpoints.

    ASGITransport does not run the lifespan, so the hub is attached here.
    """
    app.state.notification_hub = hub
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
