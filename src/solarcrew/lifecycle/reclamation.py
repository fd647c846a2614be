"""Reclamation (defect remediation) workflow.

A reclamation is filed by an admin against a project whose installation
work is finished, assigned to a crew, and then driven by crews:

    pending --accept--> accepted --start--> in_progress --complete--> completed
    pending --reject--> rejected --take (other crew)--> accepted
    accepted --complete--> completed

Admins can reassign any open reclamation back to ``pending`` for another
crew, or cancel it. While a reclamation is open the project carries a
reclamation overlay that blocks status changes; completing or cancelling
the reclamation lifts it.

Each operation loads its rows with FOR UPDATE inside one transaction and
holds the in-process lock for the reclamation (and then the project), so a
compare-and-set such as ``take`` has exactly one winner.
"""

from __future__ import annotations

import enum
from collections.abc import AsyncIterator, Callable, Hashable
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import date
from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from solarcrew.database.models.base import utcnow
from solarcrew.database.models.firm import Crew
from solarcrew.database.models.history import (
    ProjectChangeType,
    ReclamationAction,
    ReclamationHistoryEntry,
)
from solarcrew.database.models.project import Project
from solarcrew.database.models.reclamation import Reclamation, ReclamationStatus
from solarcrew.database.queries.firm import get_crew
from solarcrew.database.queries.history import (
    add_project_history,
    add_reclamation_history,
    list_reclamation_history,
)
from solarcrew.database.queries.project import get_project, get_project_for_update
from solarcrew.database.queries.reclamation import (
    count_assigned_for_crew,
    count_available_for_crew,
    get_open_reclamation_for_project,
    get_reclamation,
    get_reclamation_for_update,
    list_assigned_for_crew,
    list_available_for_crew,
    list_reclamations_for_project,
)
from solarcrew.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    NotOwnerError,
    ValidationError,
)
from solarcrew.integrations.notifications import (
    ADMINS,
    ChangeEventType,
    crew_recipient,
    make_event,
)
from solarcrew.lifecycle.state_machine import check_reclamation_transition, is_work_finished
from solarcrew.lifecycle.status_engine import project_key
from solarcrew.lifecycle.validation import (
    Actor,
    Role,
    require_not_past,
    require_role,
    require_text,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from solarcrew.config import WorkflowConfig
    from solarcrew.lifecycle.events import SideEffects
    from solarcrew.lifecycle.locks import RecordLocks

logger = structlog.get_logger(__name__)


class CrewScope(str, enum.Enum):
    """Partition of reclamations shown to a crew."""

    assigned = "assigned"
    available = "available"


def reclamation_key(reclamation_id: UUID) -> tuple[str, UUID]:
    """Lock key for a reclamation."""
    return ("reclamation", reclamation_id)


class ReclamationWorkflow:
    """Creates reclamations and drives them through their lifecycle.

    Attributes:
        session_factory: Async session factory for database operations
        locks: Per-record lock registry shared with the status engine
        effects: Post-commit notification and calendar dispatcher
        config: Workflow settings (text lengths)
        today: Clock returning the current date
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: RecordLocks,
        effects: SideEffects,
        config: WorkflowConfig,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.session_factory = session_factory
        self.locks = locks
        self.effects = effects
        self.config = config
        self.today = today

    @asynccontextmanager
    async def _transaction(
        self,
        *keys: Hashable,
        integrity_message: str = "Change conflicts with existing records",
    ) -> AsyncIterator[AsyncSession]:
        """Hold the given record locks and one database transaction.

        Lost version checks and constraint violations surface as
        ConflictError; ``integrity_message`` names the constraint the caller
        expects to trip.
        """
        async with AsyncExitStack() as stack:
            for key in keys:
                await stack.enter_async_context(self.locks.hold(key))
            session = await stack.enter_async_context(self.session_factory())
            try:
                async with session.begin():
                    yield session
            except StaleDataError as e:
                raise ConflictError("Record was modified concurrently") from e
            except IntegrityError as e:
                raise ConflictError(integrity_message) from e

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    async def create(
        self,
        project_id: UUID,
        description: str,
        deadline: date,
        assigned_crew_id: UUID,
        actor: Actor,
    ) -> Reclamation:
        """File a reclamation against a finished project.

        Args:
            project_id: Project the complaint is about.
            description: What is wrong (at least ``min_description_length``).
            deadline: Due date, today or later.
            assigned_crew_id: Active crew of the project's firm.
            actor: Admin filing the complaint.

        Returns:
            The new Reclamation in ``pending``.

        Raises:
            ForbiddenError: Actor is not an admin.
            ValidationError: Description too short, deadline in the past, or
                crew inactive or from another firm.
            NotFoundError: Project or crew does not exist.
            InvalidStateError: Installation work is not finished yet.
            ConflictError: The project already has an open reclamation.
        """
        require_role(actor, Role.admin, action="create reclamations")
        description = require_text(
            "description", description, self.config.min_description_length
        )
        require_not_past("deadline", deadline, self.today())

        async with self._transaction(
            project_key(project_id),
            integrity_message=f"Project {project_id} already has an open reclamation",
        ) as session:
            project = await get_project_for_update(session, project_id)
            if project is None:
                raise NotFoundError("project", project_id)

            await self._require_firm_crew(session, assigned_crew_id, project.firm_id)

            if not is_work_finished(project):
                raise InvalidStateError(
                    f"Project {project_id} is still at {project.status.value}",
                    status=project.status.value,
                )

            open_reclamation = await get_open_reclamation_for_project(session, project_id)
            if project.under_reclamation or open_reclamation is not None:
                raise ConflictError(
                    f"Project {project_id} already has an open reclamation",
                    reclamation_id=project.active_reclamation_id
                    or (open_reclamation.id if open_reclamation else None),
                )

            reclamation = Reclamation(
                project_id=project.id,
                firm_id=project.firm_id,
                description=description,
                deadline=deadline,
                status=ReclamationStatus.pending,
                original_crew_id=assigned_crew_id,
                current_crew_id=assigned_crew_id,
                project_status_at_creation=project.status,
                created_by=actor.actor_id,
            )
            session.add(reclamation)
            await session.flush()

            project.active_reclamation_id = reclamation.id
            add_reclamation_history(
                session,
                reclamation_id=reclamation.id,
                action=ReclamationAction.created,
                actor_id=actor.actor_id,
                crew_id=assigned_crew_id,
                notes=description,
            )
            add_project_history(
                session,
                project_id=project.id,
                actor_id=actor.actor_id,
                change_type=ProjectChangeType.reclamation,
                field_name="active_reclamation_id",
                new_value=str(reclamation.id),
                description="reclamation opened",
            )

        logger.info(
            "reclamation_created",
            reclamation_id=str(reclamation.id),
            project_id=str(project_id),
            crew_id=str(assigned_crew_id),
            deadline=deadline.isoformat(),
        )
        self._emit(
            ChangeEventType.RECLAMATION_CREATED,
            {crew_recipient(assigned_crew_id)},
            reclamation,
            actor.actor_id,
            description=description,
            deadline=deadline.isoformat(),
        )
        return reclamation

    async def reassign(
        self,
        reclamation_id: UUID,
        new_crew_id: UUID,
        actor: Actor,
        deadline: date | None = None,
        description: str | None = None,
    ) -> Reclamation:
        """Hand an open reclamation to a crew as a fresh ``pending`` request.

        Raises:
            ForbiddenError: Actor is not an admin.
            InvalidStateError: Reclamation is completed or cancelled.
            ValidationError: Edits fail the creation rules, or the crew is
                inactive or from another firm.
        """
        require_role(actor, Role.admin, action="reassign reclamations")
        if description is not None:
            description = require_text(
                "description", description, self.config.min_description_length
            )
        if deadline is not None:
            require_not_past("deadline", deadline, self.today())

        async with self._transaction(reclamation_key(reclamation_id)) as session:
            reclamation = await self._load_for_update(session, reclamation_id)
            self._require_open(reclamation, "reassign")
            await self._require_firm_crew(session, new_crew_id, reclamation.firm_id)

            previous_crew = reclamation.current_crew_id
            reclamation.current_crew_id = new_crew_id
            reclamation.status = ReclamationStatus.pending
            reclamation.accepted_at = None
            if deadline is not None:
                reclamation.deadline = deadline
            if description is not None:
                reclamation.description = description

            add_reclamation_history(
                session,
                reclamation_id=reclamation.id,
                action=ReclamationAction.reassigned,
                actor_id=actor.actor_id,
                crew_id=new_crew_id,
                notes=f"from crew {previous_crew}",
            )

        logger.info(
            "reclamation_reassigned",
            reclamation_id=str(reclamation_id),
            from_crew_id=str(previous_crew),
            to_crew_id=str(new_crew_id),
        )
        self._emit(
            ChangeEventType.RECLAMATION_REASSIGNED,
            {crew_recipient(new_crew_id)},
            reclamation,
            actor.actor_id,
            deadline=reclamation.deadline.isoformat(),
        )
        return reclamation

    async def cancel(self, reclamation_id: UUID, actor: Actor) -> Reclamation:
        """Withdraw an open reclamation and lift the project overlay.

        Raises:
            ForbiddenError: Actor is not an admin.
            InvalidStateError: Reclamation is already completed or cancelled.
        """
        require_role(actor, Role.admin, action="cancel reclamations")
        project_id = await self._project_id_of(reclamation_id)

        async with self._transaction(
            reclamation_key(reclamation_id), project_key(project_id)
        ) as session:
            reclamation = await self._load_for_update(session, reclamation_id)
            self._require_open(reclamation, "cancel")

            reclamation.status = ReclamationStatus.cancelled
            add_reclamation_history(
                session,
                reclamation_id=reclamation.id,
                action=ReclamationAction.cancelled,
                actor_id=actor.actor_id,
                crew_id=reclamation.current_crew_id,
            )
            await self._lift_overlay(session, reclamation, actor.actor_id, "reclamation cancelled")

        logger.info("reclamation_cancelled", reclamation_id=str(reclamation_id))
        self._emit(
            ChangeEventType.RECLAMATION_CANCELLED,
            {crew_recipient(reclamation.current_crew_id)},
            reclamation,
            actor.actor_id,
        )
        return reclamation

    # ------------------------------------------------------------------
    # Crew operations
    # ------------------------------------------------------------------

    async def accept(
        self,
        reclamation_id: UUID,
        acting_crew_id: UUID,
        actor_id: str | None = None,
    ) -> Reclamation:
        """Accept a pending reclamation held by the acting crew.

        Raises:
            InvalidStateError: Not pending.
            NotOwnerError: Acting crew does not hold the reclamation.
        """
        async with self._transaction(reclamation_key(reclamation_id)) as session:
            reclamation = await self._load_for_update(session, reclamation_id)
            self._require_open(reclamation, "accept")
            self._require_owner(reclamation, acting_crew_id)
            self._require_status(reclamation, ReclamationStatus.pending, "accept")
            check_reclamation_transition(
                reclamation.status, ReclamationStatus.accepted, str(reclamation.id)
            )

            reclamation.status = ReclamationStatus.accepted
            reclamation.accepted_at = utcnow()
            add_reclamation_history(
                session,
                reclamation_id=reclamation.id,
                action=ReclamationAction.accepted,
                actor_id=actor_id,
                crew_id=acting_crew_id,
            )

        logger.info(
            "reclamation_accepted",
            reclamation_id=str(reclamation_id),
            crew_id=str(acting_crew_id),
        )
        self._schedule(reclamation)
        self._emit(ChangeEventType.RECLAMATION_ACCEPTED, {ADMINS}, reclamation, actor_id)
        return reclamation

    async def reject(
        self,
        reclamation_id: UUID,
        acting_crew_id: UUID,
        reason: str,
        actor_id: str | None = None,
    ) -> Reclamation:
        """Decline a pending reclamation, releasing it to the available pool.

        The rejecting crew stays recorded as ``current_crew_id`` until another
        crew takes the reclamation.

        Raises:
            ValidationError: Reason too short.
            InvalidStateError: Not pending.
            NotOwnerError: Acting crew does not hold the reclamation.
        """
        reason = require_text("reason", reason, self.config.min_reason_length)

        async with self._transaction(reclamation_key(reclamation_id)) as session:
            reclamation = await self._load_for_update(session, reclamation_id)
            self._require_open(reclamation, "reject")
            self._require_owner(reclamation, acting_crew_id)
            self._require_status(reclamation, ReclamationStatus.pending, "reject")
            check_reclamation_transition(
                reclamation.status, ReclamationStatus.rejected, str(reclamation.id)
            )

            reclamation.status = ReclamationStatus.rejected
            reclamation.rejection_reason = reason
            add_reclamation_history(
                session,
                reclamation_id=reclamation.id,
                action=ReclamationAction.rejected,
                actor_id=actor_id,
                crew_id=acting_crew_id,
                reason=reason,
            )

        logger.info(
            "reclamation_rejected",
            reclamation_id=str(reclamation_id),
            crew_id=str(acting_crew_id),
        )
        self._emit(
            ChangeEventType.RECLAMATION_REJECTED,
            {ADMINS},
            reclamation,
            actor_id,
            reason=reason,
        )
        return reclamation

    async def take(
        self,
        reclamation_id: UUID,
        taking_crew_id: UUID,
        actor_id: str | None = None,
    ) -> Reclamation:
        """Take a rejected reclamation from the available pool.

        Exactly one of several concurrent takers wins; the others see the
        reclamation already accepted and get ConflictError.

        Raises:
            InvalidStateError: Reclamation is completed, cancelled, or still
                pending with its assigned crew.
            NotFoundError: Taking crew does not exist.
            ForbiddenError: Taking crew is inactive or belongs to another firm.
            ConflictError: Already taken, or the taker is the crew that
                rejected it.
        """
        async with self._transaction(reclamation_key(reclamation_id)) as session:
            reclamation = await self._load_for_update(session, reclamation_id)
            self._require_open(reclamation, "take")

            crew = await get_crew(session, taking_crew_id)
            if crew is None:
                raise NotFoundError("crew", taking_crew_id)
            if crew.firm_id != reclamation.firm_id:
                raise ForbiddenError(
                    f"Crew {taking_crew_id} belongs to another firm",
                    crew_id=taking_crew_id,
                )
            if not crew.is_active:
                raise ForbiddenError(
                    f"Crew {taking_crew_id} is inactive",
                    crew_id=taking_crew_id,
                )

            if reclamation.status == ReclamationStatus.pending:
                raise InvalidStateError(
                    f"Reclamation {reclamation_id} is not in the available pool",
                    status=reclamation.status.value,
                )
            if not reclamation.in_available_pool:
                raise ConflictError(
                    f"Reclamation {reclamation_id} already taken",
                    status=reclamation.status.value,
                )
            if reclamation.current_crew_id == taking_crew_id:
                raise ConflictError(
                    f"Crew {taking_crew_id} rejected reclamation {reclamation_id}",
                    crew_id=taking_crew_id,
                )
            check_reclamation_transition(
                reclamation.status, ReclamationStatus.accepted, str(reclamation.id)
            )

            previous_crew = reclamation.current_crew_id
            reclamation.current_crew_id = taking_crew_id
            reclamation.status = ReclamationStatus.accepted
            reclamation.accepted_at = utcnow()
            add_reclamation_history(
                session,
                reclamation_id=reclamation.id,
                action=ReclamationAction.accepted,
                actor_id=actor_id,
                crew_id=taking_crew_id,
                notes=f"taken from crew {previous_crew}",
            )

        logger.info(
            "reclamation_taken",
            reclamation_id=str(reclamation_id),
            from_crew_id=str(previous_crew),
            to_crew_id=str(taking_crew_id),
        )
        self._schedule(reclamation)
        self._emit(
            ChangeEventType.RECLAMATION_TAKEN,
            {ADMINS, crew_recipient(taking_crew_id)},
            reclamation,
            actor_id,
            from_crew_id=str(previous_crew),
        )
        return reclamation

    async def start(
        self,
        reclamation_id: UUID,
        acting_crew_id: UUID,
        actor_id: str | None = None,
    ) -> Reclamation:
        """Mark remediation work on an accepted reclamation as started."""
        async with self._transaction(reclamation_key(reclamation_id)) as session:
            reclamation = await self._load_for_update(session, reclamation_id)
            self._require_open(reclamation, "start")
            self._require_owner(reclamation, acting_crew_id)
            self._require_status(reclamation, ReclamationStatus.accepted, "start")
            check_reclamation_transition(
                reclamation.status, ReclamationStatus.in_progress, str(reclamation.id)
            )

            reclamation.status = ReclamationStatus.in_progress
            add_reclamation_history(
                session,
                reclamation_id=reclamation.id,
                action=ReclamationAction.started,
                actor_id=actor_id,
                crew_id=acting_crew_id,
            )

        logger.info("reclamation_started", reclamation_id=str(reclamation_id))
        self._emit(ChangeEventType.RECLAMATION_STARTED, {ADMINS}, reclamation, actor_id)
        return reclamation

    async def complete(
        self,
        reclamation_id: UUID,
        acting_crew_id: UUID,
        notes: str | None = None,
        actor_id: str | None = None,
    ) -> Reclamation:
        """Finish the remediation and hand status control back to the project.

        Raises:
            InvalidStateError: Not accepted or in progress.
            NotOwnerError: Acting crew does not hold the reclamation.
        """
        project_id = await self._project_id_of(reclamation_id)

        async with self._transaction(
            reclamation_key(reclamation_id), project_key(project_id)
        ) as session:
            reclamation = await self._load_for_update(session, reclamation_id)
            self._require_open(reclamation, "complete")
            self._require_owner(reclamation, acting_crew_id)
            self._require_status(
                reclamation,
                (ReclamationStatus.accepted, ReclamationStatus.in_progress),
                "complete",
            )
            check_reclamation_transition(
                reclamation.status, ReclamationStatus.completed, str(reclamation.id)
            )

            reclamation.status = ReclamationStatus.completed
            reclamation.completed_at = utcnow()
            reclamation.resolution_notes = notes.strip() if notes else None
            add_reclamation_history(
                session,
                reclamation_id=reclamation.id,
                action=ReclamationAction.completed,
                actor_id=actor_id,
                crew_id=acting_crew_id,
                notes=reclamation.resolution_notes,
            )
            await self._lift_overlay(
                session, reclamation, actor_id or str(acting_crew_id), "reclamation completed"
            )

        logger.info(
            "reclamation_completed",
            reclamation_id=str(reclamation_id),
            crew_id=str(acting_crew_id),
        )
        self._emit(
            ChangeEventType.RECLAMATION_COMPLETED,
            {ADMINS},
            reclamation,
            actor_id,
            notes=reclamation.resolution_notes,
        )
        return reclamation

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, reclamation_id: UUID) -> Reclamation:
        """Load a reclamation.

        Raises:
            NotFoundError: If it does not exist.
        """
        async with self.session_factory() as session:
            reclamation = await get_reclamation(session, reclamation_id)
        if reclamation is None:
            raise NotFoundError("reclamation", reclamation_id)
        return reclamation

    async def list_for_crew(self, crew_id: UUID, scope: CrewScope) -> list[Reclamation]:
        """List a crew's assigned reclamations or the pool it may take from."""
        async with self.session_factory() as session:
            if scope == CrewScope.assigned:
                return await list_assigned_for_crew(session, crew_id)
            crew = await self._get_crew(session, crew_id)
            return await list_available_for_crew(session, crew_id, crew.firm_id)

    async def count_for_crew(self, crew_id: UUID) -> dict[str, int]:
        """Count a crew's assigned and available reclamations."""
        async with self.session_factory() as session:
            crew = await self._get_crew(session, crew_id)
            return {
                CrewScope.assigned.value: await count_assigned_for_crew(session, crew_id),
                CrewScope.available.value: await count_available_for_crew(
                    session, crew_id, crew.firm_id
                ),
            }

    async def list_for_project(self, project_id: UUID) -> list[Reclamation]:
        """List a project's reclamations, newest first."""
        async with self.session_factory() as session:
            if await get_project(session, project_id) is None:
                raise NotFoundError("project", project_id)
            return await list_reclamations_for_project(session, project_id)

    async def history(self, reclamation_id: UUID) -> list[ReclamationHistoryEntry]:
        """List a reclamation's history, oldest first."""
        async with self.session_factory() as session:
            if await get_reclamation(session, reclamation_id) is None:
                raise NotFoundError("reclamation", reclamation_id)
            return await list_reclamation_history(session, reclamation_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load_for_update(self, session: AsyncSession, reclamation_id: UUID) -> Reclamation:
        reclamation = await get_reclamation_for_update(session, reclamation_id)
        if reclamation is None:
            raise NotFoundError("reclamation", reclamation_id)
        return reclamation

    async def _project_id_of(self, reclamation_id: UUID) -> UUID:
        # project_id never changes, so it is safe to read outside the lock
        return (await self.get(reclamation_id)).project_id

    async def _get_crew(self, session: AsyncSession, crew_id: UUID) -> Crew:
        crew = await get_crew(session, crew_id)
        if crew is None:
            raise NotFoundError("crew", crew_id)
        return crew

    async def _require_firm_crew(
        self, session: AsyncSession, crew_id: UUID, firm_id: UUID
    ) -> Crew:
        crew = await self._get_crew(session, crew_id)
        if not crew.is_active:
            raise ValidationError("crew_id", f"Crew {crew_id} is not active")
        if crew.firm_id != firm_id:
            raise ValidationError("crew_id", f"Crew {crew_id} belongs to another firm")
        return crew

    async def _lift_overlay(
        self,
        session: AsyncSession,
        reclamation: Reclamation,
        actor_id: str,
        description: str,
    ) -> Project | None:
        project = await get_project_for_update(session, reclamation.project_id)
        if project is None or project.active_reclamation_id != reclamation.id:
            return project
        project.active_reclamation_id = None
        add_project_history(
            session,
            project_id=project.id,
            actor_id=actor_id,
            change_type=ProjectChangeType.reclamation,
            field_name="active_reclamation_id",
            old_value=str(reclamation.id),
            description=description,
        )
        return project

    @staticmethod
    def _require_open(reclamation: Reclamation, action: str) -> None:
        if reclamation.is_terminal:
            raise InvalidStateError(
                f"Cannot {action} reclamation {reclamation.id}: it is {reclamation.status.value}",
                status=reclamation.status.value,
            )

    @staticmethod
    def _require_owner(reclamation: Reclamation, crew_id: UUID) -> None:
        if reclamation.current_crew_id != crew_id:
            raise NotOwnerError(
                f"Crew {crew_id} does not hold reclamation {reclamation.id}",
                crew_id=crew_id,
            )

    @staticmethod
    def _require_status(
        reclamation: Reclamation,
        allowed: ReclamationStatus | tuple[ReclamationStatus, ...],
        action: str,
    ) -> None:
        if isinstance(allowed, ReclamationStatus):
            allowed = (allowed,)
        if reclamation.status not in allowed:
            raise InvalidStateError(
                f"Cannot {action} reclamation {reclamation.id}: it is {reclamation.status.value}",
                status=reclamation.status.value,
            )

    def _schedule(self, reclamation: Reclamation) -> None:
        self.effects.schedule(
            reclamation.current_crew_id,
            reclamation.deadline,
            reclamation.deadline,
            {
                "reclamation_id": str(reclamation.id),
                "project_id": str(reclamation.project_id),
                "description": reclamation.description,
            },
        )

    def _emit(
        self,
        event_type: ChangeEventType,
        recipients: set[str],
        reclamation: Reclamation,
        actor_id: str | None,
        **data: Any,
    ) -> None:
        self.effects.notify(
            recipients,
            make_event(
                event_type,
                actor_id=actor_id,
                project_id=reclamation.project_id,
                reclamation_id=reclamation.id,
                status=reclamation.status.value,
                crew_id=str(reclamation.current_crew_id),
                **data,
            ),
        )
