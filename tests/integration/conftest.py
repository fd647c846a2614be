"""Pytest fixtures for integration tests.

The database, fakes and seeded records come from the root conftest. This
module adds an HTTP client bound to an app whose state holds the same
workflow services, plus identity header builders.

The lifespan does not run under ASGITransport, so the app state is set
directly.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from solarcrew.config import SolarcrewConfig
from solarcrew.database.models import Crew
from solarcrew.lifecycle import WorkflowServices
from solarcrew.web.app import create_app


@pytest.fixture
def app(
    config: SolarcrewConfig,
    services: WorkflowServices,
    session_factory: async_sessionmaker[AsyncSession],
) -> FastAPI:
    """Create test app wired to the test database and fakes."""
    test_app = create_app(config)
    test_app.state.session_factory = session_factory
    test_app.state.services = services
    return test_app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Actor-Id": "admin-1", "X-Actor-Role": "admin"}


@pytest.fixture
def leader_headers() -> dict[str, str]:
    return {"X-Actor-Id": "leader-1", "X-Actor-Role": "leader"}


@pytest.fixture
def crew_headers() -> Callable[[Crew], dict[str, str]]:
    """Build worker headers for a member of the given crew."""

    def _headers(crew: Crew) -> dict[str, str]:
        return {
            "X-Actor-Id": f"worker-{crew.name.lower().replace(' ', '-')}",
            "X-Actor-Role": "worker",
            "X-Crew-Id": str(crew.id),
        }

    return _headers
