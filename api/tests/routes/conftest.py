"""Route test configuration.

- Disables the rate limiter so handlers can be called repeatedly
- api_client: HTTP client whose DB session is a mock, for tests that patch
  the service layer and need no database
"""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


@pytest.fixture(autouse=True)
def _disable_rate_limiter():
    """Disable slowapi rate limiting so route handlers can be called directly."""
    with patch("core.ratelimit.limiter.enabled", False):
        yield


@pytest.fixture
def mock_db() -> MagicMock:
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


@pytest_asyncio.fixture
async def api_client(mock_db: MagicMock) -> AsyncGenerator[AsyncClient]:
    from core.database import get_db
    from main import app

    async def _override_get_db():
        try:
            yield mock_db
            await mock_db.commit()
        except Exception:
            await mock_db.rollback()
            raise

    app.dependency_overrides[get_db] = _override_get_db
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
