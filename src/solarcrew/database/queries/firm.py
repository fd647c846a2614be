"""Firm and crew query functions for Solarcrew.

Firms and crews are administered outside the workflow; these helpers exist
for lookups during validation and for seeding development databases.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from solarcrew.database.models.firm import Crew, Firm
from solarcrew.database.models.project import StatusSchema

logger = structlog.get_logger(__name__)


async def create_firm(
    session: AsyncSession,
    name: str,
    status_schema: StatusSchema = StatusSchema.extended,
) -> Firm:
    """Create a firm and commit.

    Args:
        session: Fresh async database session.
        name: Firm name.
        status_schema: Status vocabulary for the firm's projects.

    Returns:
        The newly created Firm instance.
    """
    firm = Firm(name=name, status_schema=status_schema)

    async with session.begin():
        session.add(firm)
        await session.flush()

    logger.info(
        "firm_created",
        firm_id=str(firm.id),
        status_schema=status_schema.value,
    )
    return firm


async def create_crew(
    session: AsyncSession,
    firm_id: UUID,
    name: str,
    is_active: bool = True,
) -> Crew:
    """Create a crew and commit.

    Args:
        session: Fresh async database session.
        firm_id: Owning firm.
        name: Crew name.
        is_active: Whether the crew can receive work.

    Returns:
        The newly created Crew instance.
    """
    crew = Crew(firm_id=firm_id, name=name, is_active=is_active)

    async with session.begin():
        session.add(crew)
        await session.flush()

    logger.info("crew_created", crew_id=str(crew.id), firm_id=str(firm_id))
    return crew


async def get_firm(session: AsyncSession, firm_id: UUID) -> Firm | None:
    """Retrieve a firm by ID."""
    result = await session.execute(select(Firm).where(Firm.id == firm_id))
    return result.scalar_one_or_none()


async def get_crew(session: AsyncSession, crew_id: UUID) -> Crew | None:
    """Retrieve a crew by ID."""
    result = await session.execute(select(Crew).where(Crew.id == crew_id))
    return result.scalar_one_or_none()


async def list_crews(
    session: AsyncSession,
    firm_id: UUID,
    active_only: bool = True,
) -> list[Crew]:
    """List a firm's crews ordered by name.

    Args:
        session: Active async database session.
        firm_id: Firm to list crews for.
        active_only: Skip inactive crews.

    Returns:
        List of Crew instances.
    """
    stmt = select(Crew).where(Crew.firm_id == firm_id)
    if active_only:
        stmt = stmt.where(Crew.is_active.is_(True))
    stmt = stmt.order_by(Crew.name.asc())
    result = await session.execute(stmt)
    return list(result.scalars().all())
