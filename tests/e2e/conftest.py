"""Pytest fixtures for E2E tests.

Scenarios drive the full application over HTTP: the FastAPI app built by
``create_app``, the workflow services from the root conftest (SQLite
database plus recording invoice, notification and calendar fakes), and a
project seeded through the query layer the way an operator would create
one.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from solarcrew.config import SolarcrewConfig
from solarcrew.database.models import Crew, Firm
from solarcrew.database.queries.project import create_project
from solarcrew.lifecycle import WorkflowServices
from solarcrew.web.app import create_app


@pytest_asyncio.fixture
async def api(
    config: SolarcrewConfig,
    services: WorkflowServices,
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to a fully wired application.

    Yields:
        AsyncClient that sends requests to the app in-process.
    """
    app = create_app(config)
    app.state.session_factory = session_factory
    app.state.services = services

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://e2e") as client:
        yield client


@pytest.fixture
def as_admin() -> dict[str, str]:
    return {"X-Actor-Id": "office-admin", "X-Actor-Role": "admin"}


@pytest.fixture
def as_leader() -> dict[str, str]:
    return {"X-Actor-Id": "site-leader", "X-Actor-Role": "leader"}


@pytest.fixture
def as_crew() -> Callable[[Crew], dict[str, str]]:
    """Build worker identity headers for a crew member."""

    def _headers(crew: Crew) -> dict[str, str]:
        return {
            "X-Actor-Id": f"member-of-{crew.id}",
            "X-Actor-Role": "worker",
            "X-Crew-Id": str(crew.id),
        }

    return _headers


@pytest_asyncio.fixture
async def new_project(
    session_factory: async_sessionmaker[AsyncSession],
    firm: Firm,
    crew_a: Crew,
) -> dict[str, Any]:
    """Create a fresh project in planning and return its API view.

    Returns:
        Dict with the project's ``id`` as a string.
    """
    async with session_factory() as session:
        project = await create_project(
            session,
            firm.id,
            "Farmhouse 12 kWp",
            crew_id=crew_a.id,
            billing_client_id="client-1001",
        )
    return {"id": str(project.id)}
