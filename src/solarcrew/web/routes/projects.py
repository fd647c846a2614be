"""Project lifecycle endpoints for Solarcrew.

This module provides REST API endpoints for reading projects and driving
their lifecycle:
- List projects and get a project by ID
- Apply the next status (or fast-forward, for admins)
- Update lifecycle dates and read the date-driven suggestion
- Administrative status override
- Project history and reclamations, and filing a new reclamation

Workflow errors propagate to the app-level handler, which maps them to
409/403/422/404/502 responses.

Example:
    >>> from fastapi import FastAPI
    >>> from solarcrew.web.routes.projects import create_projects_router
    >>>
    >>> app = FastAPI()
    >>> app.include_router(create_projects_router())
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from pydantic import BaseModel

from solarcrew.database.models.history import ProjectChangeType
from solarcrew.database.models.project import ProjectStatus, StatusSchema
from solarcrew.lifecycle import ReclamationWorkflow, StatusTransitionEngine
from solarcrew.lifecycle.validation import Actor
from solarcrew.logging import get_logger
from solarcrew.web.deps import get_actor, get_reclamation_workflow, get_status_engine
from solarcrew.web.routes.reclamations import ReclamationResponse

logger = get_logger(__name__)


class ProjectResponse(BaseModel):
    """Response schema for project data.

    Attributes:
        id: UUID primary key
        status: Underlying lifecycle status
        effective_status: "reclamation" while a reclamation is open, else status
        under_reclamation: Whether a reclamation overlay is active
    """

    id: UUID
    firm_id: UUID
    crew_id: UUID | None
    name: str
    status_schema: StatusSchema
    status: ProjectStatus
    effective_status: str
    under_reclamation: bool
    equipment_expected_date: date | None
    equipment_arrived_date: date | None
    work_start_date: date | None
    work_end_date: date | None
    billing_client_id: str | None
    invoice_number: str | None
    invoice_url: str | None
    active_reclamation_id: UUID | None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class StatusUpdate(BaseModel):
    """Request schema for a status change.

    Attributes:
        status: Target lifecycle status
        fast_forward: Skip intermediate stages (admin only)
    """

    status: ProjectStatus
    fast_forward: bool = False


class StatusOverride(BaseModel):
    """Request schema for an administrative status override."""

    status: ProjectStatus
    reason: str


class DatesUpdate(BaseModel):
    """Request schema for lifecycle dates.

    Only fields present in the body are changed; an explicit null clears
    the date.
    """

    equipment_expected_date: date | None = None
    equipment_arrived_date: date | None = None
    work_start_date: date | None = None
    work_end_date: date | None = None


class SuggestionResponse(BaseModel):
    """Suggested next status, if the project's dates imply one."""

    project_id: UUID
    target: ProjectStatus | None
    reason: str | None


class ProjectHistoryResponse(BaseModel):
    """Response schema for one project history entry."""

    id: UUID
    project_id: UUID
    actor_id: str
    change_type: ProjectChangeType
    field_name: str | None
    old_value: str | None
    new_value: str | None
    description: str | None
    irregular: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ReclamationCreate(BaseModel):
    """Request schema for filing a reclamation.

    Attributes:
        description: What is wrong
        deadline: Date the remediation is due
        crew_id: Crew the reclamation is assigned to
    """

    description: str
    deadline: date
    crew_id: UUID


def create_projects_router() -> APIRouter:
    """Create projects router.

    Routes:
        GET /projects/ - List projects with optional filters
        GET /projects/{id} - Get project by ID
        PATCH /projects/{id}/status - Apply a status change
        POST /projects/{id}/status/override - Irregular status override (admin)
        PATCH /projects/{id}/dates - Update lifecycle dates
        GET /projects/{id}/suggestion - Date-driven next status
        GET /projects/{id}/history - Project history
        GET /projects/{id}/reclamations - Project reclamations
        POST /projects/{id}/reclamation - File a reclamation (admin)
    """
    router = APIRouter(prefix="/projects", tags=["projects"])

    @router.get("/", response_model=list[ProjectResponse])
    async def list_projects(
        status: str | None = None,
        firm_id: UUID | None = None,
        under_reclamation: bool | None = None,
        actor: Actor = Depends(get_actor),  # noqa: B008
        engine: StatusTransitionEngine = Depends(get_status_engine),  # noqa: B008
    ) -> list[ProjectResponse]:
        """List projects with optional status, firm and overlay filters.

        Raises:
            HTTPException: 400 if status filter is invalid
        """
        status_enum = None
        if status is not None:
            try:
                status_enum = ProjectStatus(status)
            except ValueError:
                logger.warning(
                    "invalid_status_filter",
                    status=status,
                    valid_values=[s.value for s in ProjectStatus],
                )
                raise HTTPException(
                    status_code=http_status.HTTP_400_BAD_REQUEST,
                    detail=f"Invalid status: {status}. Valid values: {[s.value for s in ProjectStatus]}",
                ) from None

        projects = await engine.find(
            firm_id=firm_id,
            status_filter=status_enum,
            under_reclamation=under_reclamation,
        )
        logger.info("projects_listed", count=len(projects), status_filter=status)
        return [ProjectResponse.model_validate(p) for p in projects]

    @router.get("/{project_id}", response_model=ProjectResponse)
    async def get_project(
        project_id: UUID,
        actor: Actor = Depends(get_actor),  # noqa: B008
        engine: StatusTransitionEngine = Depends(get_status_engine),  # noqa: B008
    ) -> ProjectResponse:
        """Get a project by ID."""
        project = await engine.get(project_id)
        return ProjectResponse.model_validate(project)

    @router.patch("/{project_id}/status", response_model=ProjectResponse)
    async def apply_status(
        project_id: UUID,
        body: StatusUpdate,
        actor: Actor = Depends(get_actor),  # noqa: B008
        engine: StatusTransitionEngine = Depends(get_status_engine),  # noqa: B008
    ) -> ProjectResponse:
        """Move the project to the next (or, fast-forwarding, a later) status."""
        project = await engine.apply_status(
            project_id, body.status, actor, fast_forward=body.fast_forward
        )
        return ProjectResponse.model_validate(project)

    @router.post("/{project_id}/status/override", response_model=ProjectResponse)
    async def override_status(
        project_id: UUID,
        body: StatusOverride,
        actor: Actor = Depends(get_actor),  # noqa: B008
        engine: StatusTransitionEngine = Depends(get_status_engine),  # noqa: B008
    ) -> ProjectResponse:
        """Force the project to another status of its schema."""
        project = await engine.override_status(project_id, body.status, actor, body.reason)
        return ProjectResponse.model_validate(project)

    @router.patch("/{project_id}/dates", response_model=ProjectResponse)
    async def update_dates(
        project_id: UUID,
        body: DatesUpdate,
        actor: Actor = Depends(get_actor),  # noqa: B008
        engine: StatusTransitionEngine = Depends(get_status_engine),  # noqa: B008
    ) -> ProjectResponse:
        """Set or clear lifecycle dates."""
        project = await engine.update_dates(
            project_id, body.model_dump(exclude_unset=True), actor
        )
        return ProjectResponse.model_validate(project)

    @router.get("/{project_id}/suggestion", response_model=SuggestionResponse)
    async def get_suggestion(
        project_id: UUID,
        actor: Actor = Depends(get_actor),  # noqa: B008
        engine: StatusTransitionEngine = Depends(get_status_engine),  # noqa: B008
    ) -> SuggestionResponse:
        """Return the date-driven next status, if any."""
        suggestion = await engine.get_suggestion(project_id)
        return SuggestionResponse(
            project_id=project_id,
            target=suggestion.target if suggestion else None,
            reason=suggestion.reason if suggestion else None,
        )

    @router.get("/{project_id}/history", response_model=list[ProjectHistoryResponse])
    async def get_history(
        project_id: UUID,
        actor: Actor = Depends(get_actor),  # noqa: B008
        engine: StatusTransitionEngine = Depends(get_status_engine),  # noqa: B008
    ) -> list[ProjectHistoryResponse]:
        """List the project's history, oldest first."""
        entries = await engine.history(project_id)
        return [ProjectHistoryResponse.model_validate(e) for e in entries]

    @router.get("/{project_id}/reclamations", response_model=list[ReclamationResponse])
    async def list_project_reclamations(
        project_id: UUID,
        actor: Actor = Depends(get_actor),  # noqa: B008
        workflow: ReclamationWorkflow = Depends(get_reclamation_workflow),  # noqa: B008
    ) -> list[ReclamationResponse]:
        """List the project's reclamations, newest first."""
        reclamations = await workflow.list_for_project(project_id)
        return [ReclamationResponse.model_validate(r) for r in reclamations]

    @router.post(
        "/{project_id}/reclamation",
        response_model=ReclamationResponse,
        status_code=http_status.HTTP_201_CREATED,
    )
    async def create_reclamation(
        project_id: UUID,
        body: ReclamationCreate,
        actor: Actor = Depends(get_actor),  # noqa: B008
        workflow: ReclamationWorkflow = Depends(get_reclamation_workflow),  # noqa: B008
    ) -> ReclamationResponse:
        """File a reclamation against a finished project."""
        reclamation = await workflow.create(
            project_id, body.description, body.deadline, body.crew_id, actor
        )
        return ReclamationResponse.model_validate(reclamation)

    return router
