"""Reclamation endpoints for Solarcrew.

Crew members (identified by ``X-Crew-Id``) accept, reject, take, start and
complete reclamations; admins reassign and cancel them. Creation lives on
the projects router (``POST /projects/{id}/reclamation``).

Example:
    >>> from fastapi import FastAPI
    >>> from solarcrew.web.routes.reclamations import create_reclamations_router
    >>>
    >>> app = FastAPI()
    >>> app.include_router(create_reclamations_router())
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from solarcrew.database.models.history import ReclamationAction
from solarcrew.database.models.project import ProjectStatus
from solarcrew.database.models.reclamation import ReclamationStatus
from solarcrew.lifecycle import ReclamationWorkflow
from solarcrew.lifecycle.reclamation import CrewScope
from solarcrew.lifecycle.validation import Actor
from solarcrew.logging import get_logger
from solarcrew.web.deps import get_actor, get_reclamation_workflow, require_crew

logger = get_logger(__name__)


class ReclamationResponse(BaseModel):
    """Response schema for reclamation data."""

    id: UUID
    project_id: UUID
    firm_id: UUID
    description: str
    deadline: date
    status: ReclamationStatus
    original_crew_id: UUID
    current_crew_id: UUID
    project_status_at_creation: ProjectStatus
    created_by: str
    accepted_at: datetime | None
    completed_at: datetime | None
    rejection_reason: str | None
    resolution_notes: str | None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ReclamationHistoryResponse(BaseModel):
    """Response schema for one reclamation history entry."""

    id: UUID
    reclamation_id: UUID
    action: ReclamationAction
    actor_id: str | None
    crew_id: UUID | None
    reason: str | None
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ReclamationCountResponse(BaseModel):
    """Number of assigned and available reclamations for a crew."""

    assigned: int
    available: int


class RejectRequest(BaseModel):
    """Request schema for rejecting a reclamation."""

    reason: str


class CompleteRequest(BaseModel):
    """Request schema for completing a reclamation."""

    notes: str | None = None


class ReassignRequest(BaseModel):
    """Request schema for reassigning a reclamation.

    Attributes:
        crew_id: Crew that receives the reclamation as pending
        deadline: Optional new deadline
        description: Optional new description
    """

    crew_id: UUID
    deadline: date | None = None
    description: str | None = Field(default=None)


def create_reclamations_router() -> APIRouter:
    """Create reclamations router.

    Routes:
        GET /reclamations/ - Crew's assigned or available reclamations
        GET /reclamations/count - Counts for the crew's two lists
        GET /reclamations/{id} - Get reclamation by ID
        GET /reclamations/{id}/history - Reclamation history
        POST /reclamations/{id}/accept - Accept a pending reclamation
        POST /reclamations/{id}/reject - Reject a pending reclamation
        POST /reclamations/{id}/take - Take a rejected reclamation
        POST /reclamations/{id}/start - Start remediation work
        POST /reclamations/{id}/complete - Complete the remediation
        PATCH /reclamations/{id} - Reassign (admin)
        DELETE /reclamations/{id} - Cancel (admin)
    """
    router = APIRouter(prefix="/reclamations", tags=["reclamations"])

    @router.get("/", response_model=list[ReclamationResponse])
    async def list_reclamations(
        scope: CrewScope = Query(default=CrewScope.assigned),  # noqa: B008
        actor: Actor = Depends(get_actor),  # noqa: B008
        workflow: ReclamationWorkflow = Depends(get_reclamation_workflow),  # noqa: B008
    ) -> list[ReclamationResponse]:
        """List the acting crew's assigned reclamations or its available pool."""
        crew_id = require_crew(actor)
        reclamations = await workflow.list_for_crew(crew_id, scope)
        logger.info(
            "reclamations_listed",
            scope=scope.value,
            count=len(reclamations),
        )
        return [ReclamationResponse.model_validate(r) for r in reclamations]

    @router.get("/count", response_model=ReclamationCountResponse)
    async def count_reclamations(
        actor: Actor = Depends(get_actor),  # noqa: B008
        workflow: ReclamationWorkflow = Depends(get_reclamation_workflow),  # noqa: B008
    ) -> ReclamationCountResponse:
        """Count the acting crew's assigned and available reclamations."""
        counts = await workflow.count_for_crew(require_crew(actor))
        return ReclamationCountResponse(**counts)

    @router.get("/{reclamation_id}", response_model=ReclamationResponse)
    async def get_reclamation(
        reclamation_id: UUID,
        actor: Actor = Depends(get_actor),  # noqa: B008
        workflow: ReclamationWorkflow = Depends(get_reclamation_workflow),  # noqa: B008
    ) -> ReclamationResponse:
        """Get a reclamation by ID."""
        reclamation = await workflow.get(reclamation_id)
        return ReclamationResponse.model_validate(reclamation)

    @router.get("/{reclamation_id}/history", response_model=list[ReclamationHistoryResponse])
    async def get_reclamation_history(
        reclamation_id: UUID,
        actor: Actor = Depends(get_actor),  # noqa: B008
        workflow: ReclamationWorkflow = Depends(get_reclamation_workflow),  # noqa: B008
    ) -> list[ReclamationHistoryResponse]:
        """List a reclamation's history, oldest first."""
        entries = await workflow.history(reclamation_id)
        return [ReclamationHistoryResponse.model_validate(e) for e in entries]

    @router.post("/{reclamation_id}/accept", response_model=ReclamationResponse)
    async def accept_reclamation(
        reclamation_id: UUID,
        actor: Actor = Depends(get_actor),  # noqa: B008
        workflow: ReclamationWorkflow = Depends(get_reclamation_workflow),  # noqa: B008
    ) -> ReclamationResponse:
        """Accept a pending reclamation held by the acting crew."""
        reclamation = await workflow.accept(
            reclamation_id, require_crew(actor), actor_id=actor.actor_id
        )
        return ReclamationResponse.model_validate(reclamation)

    @router.post("/{reclamation_id}/reject", response_model=ReclamationResponse)
    async def reject_reclamation(
        reclamation_id: UUID,
        body: RejectRequest,
        actor: Actor = Depends(get_actor),  # noqa: B008
        workflow: ReclamationWorkflow = Depends(get_reclamation_workflow),  # noqa: B008
    ) -> ReclamationResponse:
        """Reject a pending reclamation with a reason."""
        reclamation = await workflow.reject(
            reclamation_id, require_crew(actor), body.reason, actor_id=actor.actor_id
        )
        return ReclamationResponse.model_validate(reclamation)

    @router.post("/{reclamation_id}/take", response_model=ReclamationResponse)
    async def take_reclamation(
        reclamation_id: UUID,
        actor: Actor = Depends(get_actor),  # noqa: B008
        workflow: ReclamationWorkflow = Depends(get_reclamation_workflow),  # noqa: B008
    ) -> ReclamationResponse:
        """Take a rejected reclamation from the available pool."""
        reclamation = await workflow.take(
            reclamation_id, require_crew(actor), actor_id=actor.actor_id
        )
        return ReclamationResponse.model_validate(reclamation)

    @router.post("/{reclamation_id}/start", response_model=ReclamationResponse)
    async def start_reclamation(
        reclamation_id: UUID,
        actor: Actor = Depends(get_actor),  # noqa: B008
        workflow: ReclamationWorkflow = Depends(get_reclamation_workflow),  # noqa: B008
    ) -> ReclamationResponse:
        """Start remediation work on an accepted reclamation."""
        reclamation = await workflow.start(
            reclamation_id, require_crew(actor), actor_id=actor.actor_id
        )
        return ReclamationResponse.model_validate(reclamation)

    @router.post("/{reclamation_id}/complete", response_model=ReclamationResponse)
    async def complete_reclamation(
        reclamation_id: UUID,
        body: CompleteRequest | None = None,
        actor: Actor = Depends(get_actor),  # noqa: B008
        workflow: ReclamationWorkflow = Depends(get_reclamation_workflow),  # noqa: B008
    ) -> ReclamationResponse:
        """Complete the remediation, lifting the project's reclamation overlay."""
        reclamation = await workflow.complete(
            reclamation_id,
            require_crew(actor),
            notes=body.notes if body else None,
            actor_id=actor.actor_id,
        )
        return ReclamationResponse.model_validate(reclamation)

    @router.patch("/{reclamation_id}", response_model=ReclamationResponse)
    async def reassign_reclamation(
        reclamation_id: UUID,
        body: ReassignRequest,
        actor: Actor = Depends(get_actor),  # noqa: B008
        workflow: ReclamationWorkflow = Depends(get_reclamation_workflow),  # noqa: B008
    ) -> ReclamationResponse:
        """Reassign an open reclamation to another crew."""
        reclamation = await workflow.reassign(
            reclamation_id,
            body.crew_id,
            actor,
            deadline=body.deadline,
            description=body.description,
        )
        return ReclamationResponse.model_validate(reclamation)

    @router.delete("/{reclamation_id}", response_model=ReclamationResponse)
    async def cancel_reclamation(
        reclamation_id: UUID,
        actor: Actor = Depends(get_actor),  # noqa: B008
        workflow: ReclamationWorkflow = Depends(get_reclamation_workflow),  # noqa: B008
    ) -> ReclamationResponse:
        """Cancel an open reclamation."""
        reclamation = await workflow.cancel(reclamation_id, actor)
        return ReclamationResponse.model_validate(reclamation)

    return router
