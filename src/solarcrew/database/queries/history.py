"""History query functions for Solarcrew.

The ``add_*`` helpers only stage the entry on the session; they are called
inside the workflow's transaction so the audit row commits or rolls back
together with the change it describes.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from solarcrew.database.models.history import (
    ProjectChangeType,
    ProjectHistoryEntry,
    ReclamationAction,
    ReclamationHistoryEntry,
)


def add_project_history(
    session: AsyncSession,
    project_id: UUID,
    actor_id: str,
    change_type: ProjectChangeType,
    field_name: str | None = None,
    old_value: str | None = None,
    new_value: str | None = None,
    description: str | None = None,
    irregular: bool = False,
) -> ProjectHistoryEntry:
    """Stage a project history entry on the session.

    Args:
        session: Session with an open transaction.
        project_id: Changed project.
        actor_id: Who made the change.
        change_type: Kind of change.
        field_name: Changed field, if any.
        old_value: Previous value as text.
        new_value: New value as text.
        description: Free-form description.
        irregular: Mark administrative overrides.

    Returns:
        The pending ProjectHistoryEntry.
    """
    entry = ProjectHistoryEntry(
        project_id=project_id,
        actor_id=actor_id,
        change_type=change_type,
        field_name=field_name,
        old_value=old_value,
        new_value=new_value,
        description=description,
        irregular=irregular,
    )
    session.add(entry)
    return entry


def add_reclamation_history(
    session: AsyncSession,
    reclamation_id: UUID,
    action: ReclamationAction,
    actor_id: str | None = None,
    crew_id: UUID | None = None,
    reason: str | None = None,
    notes: str | None = None,
) -> ReclamationHistoryEntry:
    """Stage a reclamation history entry on the session."""
    entry = ReclamationHistoryEntry(
        reclamation_id=reclamation_id,
        action=action,
        actor_id=actor_id,
        crew_id=crew_id,
        reason=reason,
        notes=notes,
    )
    session.add(entry)
    return entry


async def list_project_history(
    session: AsyncSession,
    project_id: UUID,
) -> list[ProjectHistoryEntry]:
    """List a project's history, oldest first."""
    stmt = (
        select(ProjectHistoryEntry)
        .where(ProjectHistoryEntry.project_id == project_id)
        .order_by(ProjectHistoryEntry.created_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_reclamation_history(
    session: AsyncSession,
    reclamation_id: UUID,
) -> list[ReclamationHistoryEntry]:
    """List a reclamation's history, oldest first."""
    stmt = (
        select(ReclamationHistoryEntry)
        .where(ReclamationHistoryEntry.reclamation_id == reclamation_id)
        .order_by(ReclamationHistoryEntry.created_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
