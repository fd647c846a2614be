"""Reclamation query functions for Solarcrew.

Read helpers for reclamations, including the crew-facing partition into
``assigned`` (owned and active) and ``available`` (the rejected pool of the
crew's firm, excluding reclamations the crew itself holds).
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from solarcrew.database.models.reclamation import (
    ACTIVE_RECLAMATION_STATUSES,
    TERMINAL_RECLAMATION_STATUSES,
    Reclamation,
    ReclamationStatus,
)


async def get_reclamation(
    session: AsyncSession,
    reclamation_id: UUID,
) -> Reclamation | None:
    """Retrieve a reclamation by ID."""
    stmt = select(Reclamation).where(Reclamation.id == reclamation_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_reclamation_for_update(
    session: AsyncSession,
    reclamation_id: UUID,
) -> Reclamation | None:
    """Retrieve a reclamation and lock its row until the transaction ends."""
    stmt = (
        select(Reclamation)
        .where(Reclamation.id == reclamation_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_open_reclamation_for_project(
    session: AsyncSession,
    project_id: UUID,
) -> Reclamation | None:
    """Return the project's non-terminal reclamation, if any."""
    stmt = (
        select(Reclamation)
        .where(Reclamation.project_id == project_id)
        .where(Reclamation.status.not_in(list(TERMINAL_RECLAMATION_STATUSES)))
        .order_by(Reclamation.created_at.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_reclamations_for_project(
    session: AsyncSession,
    project_id: UUID,
) -> list[Reclamation]:
    """List all reclamations of a project, newest first."""
    stmt = (
        select(Reclamation)
        .where(Reclamation.project_id == project_id)
        .order_by(Reclamation.created_at.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_reclamations_for_firm(
    session: AsyncSession,
    firm_id: UUID,
    status_filter: ReclamationStatus | None = None,
) -> list[Reclamation]:
    """List a firm's reclamations, newest first, optionally by status."""
    stmt = select(Reclamation).where(Reclamation.firm_id == firm_id)
    if status_filter is not None:
        stmt = stmt.where(Reclamation.status == status_filter)
    stmt = stmt.order_by(Reclamation.created_at.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_assigned_for_crew(
    session: AsyncSession,
    crew_id: UUID,
) -> list[Reclamation]:
    """List active reclamations currently held by a crew, soonest deadline first."""
    stmt = (
        select(Reclamation)
        .where(Reclamation.current_crew_id == crew_id)
        .where(Reclamation.status.in_(list(ACTIVE_RECLAMATION_STATUSES)))
        .order_by(Reclamation.deadline.asc(), Reclamation.created_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_available_for_crew(
    session: AsyncSession,
    crew_id: UUID,
    firm_id: UUID,
) -> list[Reclamation]:
    """List the firm's rejected reclamations another crew rejected.

    Args:
        session: Active async database session.
        crew_id: Crew looking for work; its own rejections are excluded.
        firm_id: Firm of the crew.

    Returns:
        Reclamations in the available pool, soonest deadline first.
    """
    stmt = (
        select(Reclamation)
        .where(Reclamation.firm_id == firm_id)
        .where(Reclamation.status == ReclamationStatus.rejected)
        .where(Reclamation.current_crew_id != crew_id)
        .order_by(Reclamation.deadline.asc(), Reclamation.created_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_assigned_for_crew(
    session: AsyncSession,
    crew_id: UUID,
) -> int:
    """Count active reclamations held by a crew."""
    stmt = (
        select(func.count())
        .select_from(Reclamation)
        .where(Reclamation.current_crew_id == crew_id)
        .where(Reclamation.status.in_(list(ACTIVE_RECLAMATION_STATUSES)))
    )
    result = await session.execute(stmt)
    return int(result.scalar_one())


async def count_available_for_crew(
    session: AsyncSession,
    crew_id: UUID,
    firm_id: UUID,
) -> int:
    """Count reclamations in the firm's pool that the crew may take."""
    stmt = (
        select(func.count())
        .select_from(Reclamation)
        .where(Reclamation.firm_id == firm_id)
        .where(Reclamation.status == ReclamationStatus.rejected)
        .where(Reclamation.current_crew_id != crew_id)
    )
    result = await session.execute(stmt)
    return int(result.scalar_one())
