"""Project status transitions.

StatusTransitionEngine is the only writer of ``Project.status``. Every
mutating call runs inside the project's in-process lock and one database
transaction that reads the row with FOR UPDATE. Invoice creation for a
billed target happens inside that critical section, so the invoice fields
and the new status commit together or not at all.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from sqlalchemy.orm.exc import StaleDataError

from solarcrew.database.models.history import ProjectChangeType, ProjectHistoryEntry
from solarcrew.database.models.project import Project, ProjectStatus
from solarcrew.database.queries.history import add_project_history, list_project_history
from solarcrew.database.queries.project import (
    get_project,
    get_project_for_update,
    list_projects,
)
from solarcrew.errors import (
    ConflictError,
    InvalidStateError,
    InvalidTransitionError,
    InvoiceServiceFailure,
    NotFoundError,
    ValidationError,
)
from solarcrew.integrations.notifications import (
    ADMINS,
    ChangeEventType,
    crew_recipient,
    make_event,
)
from solarcrew.lifecycle.state_machine import (
    BILLED_STATUSES,
    TransitionSuggestion,
    check_transition,
    in_schema,
    suggest_next_transition,
)
from solarcrew.lifecycle.validation import Actor, Role, require_role, require_text

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from solarcrew.config import WorkflowConfig
    from solarcrew.integrations.invoice_ninja import InvoiceService
    from solarcrew.lifecycle.events import SideEffects
    from solarcrew.lifecycle.locks import RecordLocks

logger = structlog.get_logger(__name__)

DATE_FIELDS = (
    "equipment_expected_date",
    "equipment_arrived_date",
    "work_start_date",
    "work_end_date",
)


def project_key(project_id: UUID) -> tuple[str, UUID]:
    """Lock key for a project."""
    return ("project", project_id)


class StatusTransitionEngine:
    """Validates and applies project status changes.

    Attributes:
        session_factory: Async session factory for database operations
        locks: Per-record lock registry shared with the reclamation workflow
        invoices: Invoice service called when a project becomes billed
        effects: Post-commit notification dispatcher
        config: Workflow settings (timeouts, text lengths)
        today: Clock returning the current date
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: RecordLocks,
        invoices: InvoiceService,
        effects: SideEffects,
        config: WorkflowConfig,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.session_factory = session_factory
        self.locks = locks
        self.invoices = invoices
        self.effects = effects
        self.config = config
        self.today = today

    async def get(self, project_id: UUID) -> Project:
        """Load a project.

        Raises:
            NotFoundError: If the project does not exist.
        """
        async with self.session_factory() as session:
            project = await get_project(session, project_id)
        if project is None:
            raise NotFoundError("project", project_id)
        return project

    async def history(self, project_id: UUID) -> list[ProjectHistoryEntry]:
        """List a project's history, oldest first."""
        async with self.session_factory() as session:
            if await get_project(session, project_id) is None:
                raise NotFoundError("project", project_id)
            return await list_project_history(session, project_id)

    async def find(
        self,
        firm_id: UUID | None = None,
        status_filter: ProjectStatus | None = None,
        under_reclamation: bool | None = None,
    ) -> list[Project]:
        """List projects, newest first."""
        async with self.session_factory() as session:
            return await list_projects(
                session,
                firm_id=firm_id,
                status_filter=status_filter,
                under_reclamation=under_reclamation,
            )

    async def get_suggestion(
        self,
        project_id: UUID,
        today: date | None = None,
    ) -> TransitionSuggestion | None:
        """Suggest the next status for a stored project."""
        project = await self.get(project_id)
        return suggest_next_transition(project, today or self.today())

    async def apply_status(
        self,
        project_id: UUID,
        target: ProjectStatus,
        actor: Actor,
        *,
        fast_forward: bool = False,
    ) -> Project:
        """Move a project to a new lifecycle status.

        If the target is a billed status and the project has no invoice yet,
        the invoice is created first under ``invoice_timeout_seconds``. A
        failed or timed-out invoice call rolls the whole change back.

        Repeating the move to the current billed status when an invoice
        already exists returns the project unchanged.

        Args:
            project_id: Project to change.
            target: Target lifecycle status.
            actor: Admin or leader performing the change.
            fast_forward: Allow an admin to skip intermediate stages.

        Returns:
            The updated Project.

        Raises:
            ForbiddenError: Actor may not change status or fast-forward.
            NotFoundError: Project does not exist.
            InvalidStateError: A reclamation is open on the project.
            InvalidTransitionError: Target is not reachable.
            InvoiceServiceFailure: Invoice creation failed; nothing changed.
            ConflictError: A concurrent writer changed the project first.
        """
        require_role(actor, Role.admin, Role.leader, action="change project status")
        if fast_forward:
            require_role(actor, Role.admin, action="fast-forward project status")

        async with self.locks.hold(project_key(project_id)):
            async with self.session_factory() as session:
                try:
                    async with session.begin():
                        project = await self._load_for_update(session, project_id)
                        previous = project.status

                        if project.under_reclamation:
                            raise InvalidStateError(
                                f"Project {project_id} is under reclamation",
                                reclamation_id=project.active_reclamation_id,
                            )

                        if (
                            target == previous
                            and target in BILLED_STATUSES
                            and project.invoice_number is not None
                        ):
                            logger.info(
                                "already_invoiced",
                                project_id=str(project_id),
                                invoice_number=project.invoice_number,
                            )
                            return project

                        check_transition(project, target, fast_forward=fast_forward)

                        if target in BILLED_STATUSES and project.invoice_number is None:
                            await self._create_invoice(session, project, actor)

                        project.status = target
                        add_project_history(
                            session,
                            project_id=project.id,
                            actor_id=actor.actor_id,
                            change_type=ProjectChangeType.status_change,
                            field_name="status",
                            old_value=previous.value,
                            new_value=target.value,
                            description="fast_forward" if fast_forward else None,
                        )
                except StaleDataError as e:
                    raise ConflictError(
                        f"Project {project_id} was modified concurrently"
                    ) from e

        logger.info(
            "project_status_changed",
            project_id=str(project_id),
            from_status=previous.value,
            to_status=target.value,
            actor_id=actor.actor_id,
            fast_forward=fast_forward,
        )
        self.effects.notify(
            self._recipients(project),
            make_event(
                ChangeEventType.PROJECT_STATUS_CHANGED,
                actor_id=actor.actor_id,
                project_id=project.id,
                from_status=previous.value,
                to_status=target.value,
                invoice_number=project.invoice_number,
            ),
        )
        return project

    async def update_dates(
        self,
        project_id: UUID,
        dates: dict[str, date | None],
        actor: Actor,
    ) -> Project:
        """Set or clear lifecycle dates.

        Args:
            project_id: Project to change.
            dates: Mapping of date field name to new value (None clears).
            actor: Admin or leader performing the change.

        Returns:
            The updated Project.

        Raises:
            ValidationError: Unknown field, or work_end_date before work_start_date.
        """
        require_role(actor, Role.admin, Role.leader, action="change project dates")
        for name in dates:
            if name not in DATE_FIELDS:
                raise ValidationError(name, f"{name} is not a project date")

        async with self.locks.hold(project_key(project_id)):
            async with self.session_factory() as session:
                try:
                    async with session.begin():
                        project = await self._load_for_update(session, project_id)

                        start = dates.get("work_start_date", project.work_start_date)
                        end = dates.get("work_end_date", project.work_end_date)
                        if start is not None and end is not None and end < start:
                            raise ValidationError(
                                "work_end_date",
                                "work_end_date must not precede work_start_date",
                            )

                        changed: dict[str, str | None] = {}
                        for name, value in dates.items():
                            old = getattr(project, name)
                            if old == value:
                                continue
                            setattr(project, name, value)
                            changed[name] = value.isoformat() if value else None
                            add_project_history(
                                session,
                                project_id=project.id,
                                actor_id=actor.actor_id,
                                change_type=ProjectChangeType.dates_update,
                                field_name=name,
                                old_value=old.isoformat() if old else None,
                                new_value=changed[name],
                            )
                except StaleDataError as e:
                    raise ConflictError(
                        f"Project {project_id} was modified concurrently"
                    ) from e

        if changed:
            logger.info(
                "project_dates_updated",
                project_id=str(project_id),
                actor_id=actor.actor_id,
                **changed,
            )
            self.effects.notify(
                self._recipients(project),
                make_event(
                    ChangeEventType.PROJECT_DATES_UPDATED,
                    actor_id=actor.actor_id,
                    project_id=project.id,
                    **changed,
                ),
            )
        return project

    async def override_status(
        self,
        project_id: UUID,
        target: ProjectStatus,
        actor: Actor,
        reason: str,
    ) -> Project:
        """Force a project to another status of its schema, in either direction.

        The move may not cross the billing boundary in either direction:
        a billed project keeps its invoice, and an unbilled one can only
        become billed through ``apply_status``.

        Raises:
            ForbiddenError: Actor is not an admin.
            ValidationError: Reason too short.
            InvalidStateError: A reclamation is open on the project.
            InvalidTransitionError: Target outside the schema, equal to the
                current status, or across the billing boundary.
        """
        require_role(actor, Role.admin, action="override project status")
        reason = require_text("reason", reason, self.config.min_reason_length)

        async with self.locks.hold(project_key(project_id)):
            async with self.session_factory() as session:
                try:
                    async with session.begin():
                        project = await self._load_for_update(session, project_id)
                        previous = project.status

                        if project.under_reclamation:
                            raise InvalidStateError(
                                f"Project {project_id} is under reclamation",
                                reclamation_id=project.active_reclamation_id,
                            )
                        if (
                            target == previous
                            or not in_schema(project.status_schema, target)
                            or (previous in BILLED_STATUSES) != (target in BILLED_STATUSES)
                        ):
                            raise InvalidTransitionError(previous, target, f"project {project_id}")

                        project.status = target
                        add_project_history(
                            session,
                            project_id=project.id,
                            actor_id=actor.actor_id,
                            change_type=ProjectChangeType.override,
                            field_name="status",
                            old_value=previous.value,
                            new_value=target.value,
                            description=reason,
                            irregular=True,
                        )
                except StaleDataError as e:
                    raise ConflictError(
                        f"Project {project_id} was modified concurrently"
                    ) from e

        logger.warning(
            "irregular_status_override",
            project_id=str(project_id),
            from_status=previous.value,
            to_status=target.value,
            actor_id=actor.actor_id,
            reason=reason,
        )
        self.effects.notify(
            self._recipients(project),
            make_event(
                ChangeEventType.PROJECT_STATUS_OVERRIDDEN,
                actor_id=actor.actor_id,
                project_id=project.id,
                from_status=previous.value,
                to_status=target.value,
                reason=reason,
            ),
        )
        return project

    async def _load_for_update(self, session: AsyncSession, project_id: UUID) -> Project:
        project = await get_project_for_update(session, project_id)
        if project is None:
            raise NotFoundError("project", project_id)
        return project

    async def _create_invoice(
        self,
        session: AsyncSession,
        project: Project,
        actor: Actor,
    ) -> None:
        """Create the invoice and stage the invoice fields on the project."""
        timeout = self.config.invoice_timeout_seconds
        try:
            result = await asyncio.wait_for(self.invoices.create_invoice(project), timeout)
        except asyncio.TimeoutError as e:
            logger.error(
                "invoice_timeout",
                project_id=str(project.id),
                timeout_seconds=timeout,
            )
            raise InvoiceServiceFailure(f"no response within {timeout}s") from e
        except InvoiceServiceFailure:
            logger.error("invoice_failed", project_id=str(project.id))
            raise

        project.invoice_number = result.number
        project.invoice_url = result.url
        add_project_history(
            session,
            project_id=project.id,
            actor_id=actor.actor_id,
            change_type=ProjectChangeType.invoice,
            field_name="invoice_number",
            new_value=result.number,
            description=result.url,
        )

    @staticmethod
    def _recipients(project: Project) -> set[str]:
        recipients = {ADMINS}
        if project.crew_id is not None:
            recipients.add(crew_recipient(project.crew_id))
        return recipients
