"""FastAPI route definitions for Solarcrew.

This module contains API route handlers for health checks, project
lifecycle operations and reclamations.
"""

from __future__ import annotations

from solarcrew.web.routes.health import (
    HealthResponse,
    ReadinessResponse,
    create_health_router,
)
from solarcrew.web.routes.projects import (
    DatesUpdate,
    ProjectResponse,
    ReclamationCreate,
    StatusOverride,
    StatusUpdate,
    create_projects_router,
)
from solarcrew.web.routes.reclamations import (
    ReassignRequest,
    ReclamationResponse,
    RejectRequest,
    create_reclamations_router,
)

__all__ = [
    # Health
    "HealthResponse",
    "ReadinessResponse",
    "create_health_router",
    # Projects
    "DatesUpdate",
    "ProjectResponse",
    "ReclamationCreate",
    "StatusOverride",
    "StatusUpdate",
    "create_projects_router",
    # Reclamations
    "ReassignRequest",
    "ReclamationResponse",
    "RejectRequest",
    "create_reclamations_router",
]
