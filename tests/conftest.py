"""Shared pytest fixtures for Solarcrew tests.

Provides a file-backed SQLite database (aiosqlite), recording fakes for the
invoice, calendar and notification collaborators, the wired workflow
services with a fixed clock, and seeded firms, crews and projects.

A file database is used instead of ``:memory:`` so that every session of
the pool sees the same data.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date
from pathlib import Path
from typing import Any
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from solarcrew.config import DatabaseConfig, SolarcrewConfig, WorkflowConfig
from solarcrew.database.connection import get_engine, get_session_factory
from solarcrew.database.models import Base, Crew, Firm, Project, ProjectStatus, StatusSchema
from solarcrew.database.queries.firm import create_crew, create_firm
from solarcrew.database.queries.project import create_project, get_project
from solarcrew.errors import InvoiceServiceFailure
from solarcrew.integrations.calendar import DateRange
from solarcrew.integrations.invoice_ninja import InvoiceResult
from solarcrew.integrations.notifications import ChangeEvent
from solarcrew.lifecycle import SideEffects, WorkflowServices, build_services
from solarcrew.lifecycle.validation import Actor, Role

TODAY = date(2026, 10, 19)


class FakeInvoiceService:
    """Invoice service that records calls and can fail or stall."""

    def __init__(self) -> None:
        self.calls: list[UUID] = []
        self.fail = False
        self.delay = 0.0
        self._counter = 0

    async def create_invoice(self, project: Project) -> InvoiceResult:
        self.calls.append(project.id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise InvoiceServiceFailure("invoicing backend unavailable")
        self._counter += 1
        return InvoiceResult(
            number=f"INV-{self._counter:04d}",
            url=f"https://invoices.test/invoices/{self._counter}",
        )

    async def close(self) -> None:
        return None


class RecordingRelay:
    """Notification relay that keeps every delivered event."""

    def __init__(self) -> None:
        self.sent: list[tuple[set[str], ChangeEvent]] = []

    async def notify(self, recipients: set[str], event: ChangeEvent) -> bool:
        self.sent.append((set(recipients), event))
        return True

    async def close(self) -> None:
        return None

    def event_types(self) -> list[str]:
        return [event.event_type.value for _, event in self.sent]


class RecordingCalendar:
    """Calendar service that keeps every scheduling request."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[UUID, DateRange, dict[str, Any]]] = []

    async def schedule_event(
        self, crew_id: UUID, date_range: DateRange, metadata: dict[str, Any]
    ) -> bool:
        self.scheduled.append((crew_id, date_range, metadata))
        return True

    async def close(self) -> None:
        return None


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def today() -> date:
    """The fixed date the workflow clock returns."""
    return TODAY


@pytest.fixture
def admin() -> Actor:
    return Actor(actor_id="admin-1", role=Role.admin)


@pytest.fixture
def leader() -> Actor:
    return Actor(actor_id="leader-1", role=Role.leader)


@pytest.fixture
def worker() -> Actor:
    return Actor(actor_id="worker-1", role=Role.worker)


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a SQLite database file with all tables.

    Yields:
        AsyncEngine bound to the database file.
    """
    test_engine = get_engine(DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path / 'solarcrew.db'}"))

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return get_session_factory(engine)


@pytest.fixture
def invoices() -> FakeInvoiceService:
    return FakeInvoiceService()


@pytest.fixture
def relay() -> RecordingRelay:
    return RecordingRelay()


@pytest.fixture
def calendar() -> RecordingCalendar:
    return RecordingCalendar()


@pytest.fixture
def config() -> SolarcrewConfig:
    return SolarcrewConfig(workflow=WorkflowConfig(invoice_timeout_seconds=0.5))


@pytest_asyncio.fixture
async def services(
    config: SolarcrewConfig,
    session_factory: async_sessionmaker[AsyncSession],
    invoices: FakeInvoiceService,
    relay: RecordingRelay,
    calendar: RecordingCalendar,
    today: date,
) -> AsyncGenerator[WorkflowServices, None]:
    """Workflow services wired to the fakes and the fixed clock."""
    wired = build_services(
        config,
        session_factory,
        invoices=invoices,
        effects=SideEffects(relay, calendar),
        today=lambda: today,
    )
    yield wired
    await wired.close()


@pytest_asyncio.fixture
async def firm(session_factory: async_sessionmaker[AsyncSession]) -> Firm:
    async with session_factory() as session:
        return await create_firm(session, "Sunny Roofs")


@pytest_asyncio.fixture
async def simplified_firm(session_factory: async_sessionmaker[AsyncSession]) -> Firm:
    async with session_factory() as session:
        return await create_firm(session, "Legacy Solar", StatusSchema.simplified)


@pytest_asyncio.fixture
async def other_firm(session_factory: async_sessionmaker[AsyncSession]) -> Firm:
    async with session_factory() as session:
        return await create_firm(session, "Rival Panels")


async def _crew(
    session_factory: async_sessionmaker[AsyncSession],
    firm_id: UUID,
    name: str,
    is_active: bool = True,
) -> Crew:
    async with session_factory() as session:
        return await create_crew(session, firm_id, name, is_active=is_active)


@pytest_asyncio.fixture
async def crew_a(session_factory: async_sessionmaker[AsyncSession], firm: Firm) -> Crew:
    return await _crew(session_factory, firm.id, "Crew A")


@pytest_asyncio.fixture
async def crew_b(session_factory: async_sessionmaker[AsyncSession], firm: Firm) -> Crew:
    return await _crew(session_factory, firm.id, "Crew B")


@pytest_asyncio.fixture
async def crew_c(session_factory: async_sessionmaker[AsyncSession], firm: Firm) -> Crew:
    return await _crew(session_factory, firm.id, "Crew C")


@pytest_asyncio.fixture
async def inactive_crew(session_factory: async_sessionmaker[AsyncSession], firm: Firm) -> Crew:
    return await _crew(session_factory, firm.id, "Retired Crew", is_active=False)


@pytest_asyncio.fixture
async def foreign_crew(
    session_factory: async_sessionmaker[AsyncSession], other_firm: Firm
) -> Crew:
    return await _crew(session_factory, other_firm.id, "Rival Crew")


MakeProject = Callable[..., Awaitable[Project]]


@pytest.fixture
def make_project(
    session_factory: async_sessionmaker[AsyncSession],
    firm: Firm,
    crew_a: Crew,
) -> MakeProject:
    """Factory seeding a project at any status.

    The status and other fields are written directly, bypassing the engine,
    to set up a starting state.
    """

    async def _make(
        status: ProjectStatus = ProjectStatus.planning,
        firm_id: UUID | None = None,
        **fields: Any,
    ) -> Project:
        async with session_factory() as session:
            project = await create_project(
                session,
                firm_id or firm.id,
                "Roof array",
                crew_id=crew_a.id,
                billing_client_id="client-42",
            )

        async with session_factory() as session:
            async with session.begin():
                seeded = await get_project(session, project.id)
                assert seeded is not None
                seeded.status = status
                for name, value in fields.items():
                    setattr(seeded, name, value)
        return seeded

    return _make


async def load_project(
    session_factory: async_sessionmaker[AsyncSession], project_id: UUID
) -> Project:
    """Read a project in a fresh session."""
    async with session_factory() as session:
        project = await get_project(session, project_id)
    assert project is not None
    return project


@pytest.fixture
def reload_project(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[UUID], Awaitable[Project]]:
    async def _reload(project_id: UUID) -> Project:
        return await load_project(session_factory, project_id)

    return _reload
