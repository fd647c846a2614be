"""Request dependencies shared by the API routers.

The acting user is identified by headers set by the authenticating proxy:
``X-Actor-Id``, ``X-Actor-Role`` (admin, leader or worker) and, for crew
members, ``X-Crew-Id``.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import Header, HTTPException, Request
from fastapi import status as http_status

from solarcrew.errors import ForbiddenError
from solarcrew.lifecycle import ReclamationWorkflow, StatusTransitionEngine
from solarcrew.lifecycle.validation import Actor, Role
from solarcrew.logging import bind_actor_context


async def get_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
    x_crew_id: str | None = Header(default=None),
) -> Actor:
    """Build the Actor from identity headers.

    Raises:
        HTTPException: 401 if identity headers are missing or malformed.
    """
    if not x_actor_id or not x_actor_role:
        raise HTTPException(
            status_code=http_status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-Id and X-Actor-Role headers are required",
        )

    try:
        role = Role(x_actor_role.lower())
    except ValueError:
        raise HTTPException(
            status_code=http_status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown role: {x_actor_role}",
        ) from None

    crew_id = None
    if x_crew_id:
        try:
            crew_id = UUID(x_crew_id)
        except ValueError:
            raise HTTPException(
                status_code=http_status.HTTP_401_UNAUTHORIZED,
                detail=f"Malformed crew id: {x_crew_id}",
            ) from None

    bind_actor_context(x_actor_id, role.value, str(crew_id) if crew_id else None)
    return Actor(actor_id=x_actor_id, role=role, crew_id=crew_id)


def require_crew(actor: Actor) -> UUID:
    """Return the actor's crew, or raise if the actor is not in a crew."""
    if actor.crew_id is None:
        raise ForbiddenError("Only crew members may act on reclamations", role=actor.role.value)
    return actor.crew_id


def get_status_engine(request: Request) -> StatusTransitionEngine:
    """Dependency that retrieves the status engine from app state."""
    return request.app.state.services.status_engine


def get_reclamation_workflow(request: Request) -> ReclamationWorkflow:
    """Dependency that retrieves the reclamation workflow from app state."""
    return request.app.state.services.reclamations
