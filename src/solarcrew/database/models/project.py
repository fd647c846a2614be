"""Project model for Solarcrew.

Defines the Project table together with the closed ProjectStatus and
StatusSchema enumerations. A project's lifecycle status only moves through
the StatusTransitionEngine; an open reclamation is recorded as an overlay
(``active_reclamation_id``) without touching ``status``.
"""

from __future__ import annotations

import enum
import uuid
from datetime import date

from sqlalchemy import Date, Enum, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from solarcrew.database.models.base import Base, TimestampMixin

RECLAMATION_OVERLAY = "reclamation"


class ProjectStatus(enum.Enum):
    """Lifecycle status for an installation project.

    The extended schema uses planning through paid without in_progress/done;
    the simplified (legacy) schema uses planning, in_progress, done,
    invoiced, paid.
    """

    planning = "planning"
    equipment_waiting = "equipment_waiting"
    equipment_arrived = "equipment_arrived"
    work_scheduled = "work_scheduled"
    work_in_progress = "work_in_progress"
    work_completed = "work_completed"
    in_progress = "in_progress"
    done = "done"
    invoiced = "invoiced"
    send_invoice = "send_invoice"
    invoice_sent = "invoice_sent"
    paid = "paid"


class StatusSchema(enum.Enum):
    """Status vocabulary variant, chosen per firm.

    States:
        extended: Equipment/work phases plus send_invoice and invoice_sent.
        simplified: planning, in_progress, done, invoiced, paid.
    """

    extended = "extended"
    simplified = "simplified"


class Project(TimestampMixin, Base):
    """A solar installation project.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        firm_id: Owning firm.
        crew_id: Crew doing the installation, if assigned.
        name: Human-readable project name.
        status_schema: Status vocabulary, copied from the firm at creation.
        status: Current lifecycle status.
        equipment_expected_date: Date the equipment is expected.
        equipment_arrived_date: Date the equipment arrived.
        work_start_date: Planned or actual start of installation work.
        work_end_date: Planned or actual end of installation work.
        billing_client_id: Client identifier in the invoicing system.
        invoice_number: Invoice number, present once an invoice exists.
        invoice_url: Link to the invoice in the invoicing system.
        active_reclamation_id: Open reclamation overlaying the status.
        version: Optimistic concurrency counter.
    """

    __tablename__ = "projects"

    firm_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("firms.id"),
        nullable=False,
    )
    crew_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("crews.id"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    status_schema: Mapped[StatusSchema] = mapped_column(
        Enum(StatusSchema, name="status_schema"),
        default=StatusSchema.extended,
        nullable=False,
    )
    status: Mapped[ProjectStatus] = mapped_column(
        Enum(ProjectStatus, name="project_status"),
        default=ProjectStatus.planning,
        nullable=False,
    )
    equipment_expected_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    equipment_arrived_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    work_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    work_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    billing_client_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    invoice_number: Mapped[str | None] = mapped_column(Text, nullable=True)
    invoice_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    active_reclamation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def under_reclamation(self) -> bool:
        """Whether an open reclamation overlays the lifecycle status."""
        return self.active_reclamation_id is not None

    @property
    def effective_status(self) -> str:
        """Status shown to users: the overlay while a reclamation is open."""
        if self.under_reclamation:
            return RECLAMATION_OVERLAY
        return self.status.value
