"""Project query functions for Solarcrew.

Provides async functions for reading Project records and for seeding new
projects. Status and date changes go through the lifecycle engine, which
uses ``get_project_for_update`` inside its own transaction.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from solarcrew.database.models.firm import Firm
from solarcrew.database.models.project import Project, ProjectStatus

logger = structlog.get_logger(__name__)


async def create_project(
    session: AsyncSession,
    firm_id: UUID,
    name: str,
    crew_id: UUID | None = None,
    billing_client_id: str | None = None,
) -> Project:
    """Create a project in ``planning`` and commit.

    The project's status schema is copied from its firm and never changes
    afterwards.

    Args:
        session: Fresh async database session.
        firm_id: Owning firm.
        name: Human-readable project name.
        crew_id: Installation crew, if already known.
        billing_client_id: Client identifier in the invoicing system.

    Returns:
        The newly created Project instance.

    Raises:
        ValueError: If the firm does not exist.
    """
    async with session.begin():
        firm = (
            await session.execute(select(Firm).where(Firm.id == firm_id))
        ).scalar_one_or_none()
        if firm is None:
            raise ValueError(f"Firm {firm_id} not found")

        project = Project(
            firm_id=firm_id,
            crew_id=crew_id,
            name=name,
            billing_client_id=billing_client_id,
            status_schema=firm.status_schema,
            status=ProjectStatus.planning,
        )
        session.add(project)
        await session.flush()

    logger.info(
        "project_created",
        project_id=str(project.id),
        firm_id=str(firm_id),
        status_schema=project.status_schema.value,
    )

    return project


async def get_project(
    session: AsyncSession,
    project_id: UUID,
) -> Project | None:
    """Retrieve a project by ID.

    Args:
        session: Active async database session.
        project_id: UUID of the project to retrieve.

    Returns:
        The Project instance if found, None otherwise.
    """
    stmt = select(Project).where(Project.id == project_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_project_for_update(
    session: AsyncSession,
    project_id: UUID,
) -> Project | None:
    """Retrieve a project and lock its row until the transaction ends.

    Backends without row locks (SQLite) ignore FOR UPDATE; the version
    column still rejects a concurrent write at flush time.
    """
    stmt = (
        select(Project)
        .where(Project.id == project_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_projects(
    session: AsyncSession,
    firm_id: UUID | None = None,
    status_filter: ProjectStatus | None = None,
    under_reclamation: bool | None = None,
) -> list[Project]:
    """List projects with optional filters, newest first.

    Args:
        session: Active async database session.
        firm_id: Optional firm to filter by.
        status_filter: Optional lifecycle status to filter by.
        under_reclamation: If set, only projects with (True) or without
            (False) an open reclamation.

    Returns:
        List of matching Project instances.
    """
    stmt = select(Project)

    if firm_id is not None:
        stmt = stmt.where(Project.firm_id == firm_id)

    if status_filter is not None:
        stmt = stmt.where(Project.status == status_filter)

    if under_reclamation is True:
        stmt = stmt.where(Project.active_reclamation_id.is_not(None))
    elif under_reclamation is False:
        stmt = stmt.where(Project.active_reclamation_id.is_(None))

    stmt = stmt.order_by(Project.created_at.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())
