"""Audit history models for Solarcrew.

Project history records every status change, invoice creation, date update
and reclamation overlay change. Reclamation history records each action a
crew or admin took on a reclamation.
"""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import Boolean, Enum, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from solarcrew.database.models.base import Base, TimestampMixin


class ProjectChangeType(enum.Enum):
    """Kinds of project history entries."""

    status_change = "status_change"
    invoice = "invoice"
    dates_update = "dates_update"
    reclamation = "reclamation"
    override = "override"


class ReclamationAction(enum.Enum):
    """Kinds of reclamation history entries."""

    created = "created"
    accepted = "accepted"
    rejected = "rejected"
    reassigned = "reassigned"
    started = "started"
    completed = "completed"
    cancelled = "cancelled"


class ProjectHistoryEntry(TimestampMixin, Base):
    """One change to a project.

    Attributes:
        project_id: Changed project.
        actor_id: Who made the change.
        change_type: Kind of change.
        field_name: Changed field, if a single field changed.
        old_value: Previous value rendered as text.
        new_value: New value rendered as text.
        description: Free-form description.
        irregular: True for administrative overrides outside the normal flow.
    """

    __tablename__ = "project_history"

    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    actor_id: Mapped[str] = mapped_column(Text, nullable=False)
    change_type: Mapped[ProjectChangeType] = mapped_column(
        Enum(ProjectChangeType, name="project_change_type"),
        nullable=False,
    )
    field_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    irregular: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class ReclamationHistoryEntry(TimestampMixin, Base):
    """One action taken on a reclamation.

    Attributes:
        reclamation_id: Affected reclamation.
        action: What happened.
        actor_id: Admin or crew member who acted.
        crew_id: Crew involved in the action.
        reason: Rejection reason, when rejected.
        notes: Additional notes.
    """

    __tablename__ = "reclamation_history"

    reclamation_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("reclamations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action: Mapped[ReclamationAction] = mapped_column(
        Enum(ReclamationAction, name="reclamation_action"),
        nullable=False,
    )
    actor_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    crew_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
