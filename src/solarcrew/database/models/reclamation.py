"""Reclamation model for Solarcrew.

A reclamation is a post-installation quality complaint against a project,
routed to a crew for remediation. Ownership is carried by
``current_crew_id``; a rejected reclamation stays with the rejecting crew
for audit until another crew takes it from the available pool.
"""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from solarcrew.database.models.base import Base, TimestampMixin
from solarcrew.database.models.project import ProjectStatus


class ReclamationStatus(enum.Enum):
    """State machine for reclamation lifecycle.

    States:
        pending: Assigned to a crew, waiting for accept or reject.
        accepted: The current crew committed to the remediation.
        rejected: The current crew declined; open to other crews.
        in_progress: Remediation work has started.
        completed: Remediation finished (terminal).
        cancelled: Withdrawn by an admin (terminal).
    """

    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


ACTIVE_RECLAMATION_STATUSES = frozenset(
    {ReclamationStatus.pending, ReclamationStatus.accepted, ReclamationStatus.in_progress}
)
TERMINAL_RECLAMATION_STATUSES = frozenset(
    {ReclamationStatus.completed, ReclamationStatus.cancelled}
)


class Reclamation(TimestampMixin, Base):
    """A defect-remediation request against a project.

    Attributes:
        project_id: Project the complaint is about.
        firm_id: Firm of the project (copied at creation).
        description: What is wrong.
        deadline: Date the remediation is due.
        status: Current state in the reclamation lifecycle.
        original_crew_id: Crew first assigned; never changes.
        current_crew_id: Crew currently responsible (ownership token).
        project_status_at_creation: Lifecycle status frozen at creation.
        created_by: Identifier of the admin who filed the complaint.
        accepted_at: When the current crew accepted or took it.
        completed_at: When it reached completed.
        rejection_reason: Reason given by the last rejecting crew.
        resolution_notes: Notes recorded on completion.
        version: Optimistic concurrency counter.
    """

    __tablename__ = "reclamations"
    __table_args__ = (
        # At most one open reclamation per project
        Index(
            "uq_reclamations_open_per_project",
            "project_id",
            unique=True,
            postgresql_where=text("status NOT IN ('completed', 'cancelled')"),
            sqlite_where=text("status NOT IN ('completed', 'cancelled')"),
        ),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    firm_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("firms.id"),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    deadline: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[ReclamationStatus] = mapped_column(
        Enum(ReclamationStatus, name="reclamation_status"),
        default=ReclamationStatus.pending,
        nullable=False,
    )
    original_crew_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("crews.id"),
        nullable=False,
    )
    current_crew_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("crews.id"),
        nullable=False,
        index=True,
    )
    project_status_at_creation: Mapped[ProjectStatus] = mapped_column(
        Enum(ProjectStatus, name="project_status"),
        nullable=False,
    )
    created_by: Mapped[str] = mapped_column(Text, nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_terminal(self) -> bool:
        """Whether the reclamation is completed or cancelled."""
        return self.status in TERMINAL_RECLAMATION_STATUSES

    @property
    def in_available_pool(self) -> bool:
        """Whether other crews may take the reclamation."""
        return self.status == ReclamationStatus.rejected
