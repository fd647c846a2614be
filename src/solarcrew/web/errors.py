"""Mapping of workflow errors to HTTP responses."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi import status as http_status
from fastapi.responses import JSONResponse

from solarcrew.errors import WorkflowError
from solarcrew.logging import get_logger

logger = get_logger(__name__)

STATUS_BY_CATEGORY = {
    "conflict": http_status.HTTP_409_CONFLICT,
    "validation": http_status.HTTP_422_UNPROCESSABLE_ENTITY,
    "permission": http_status.HTTP_403_FORBIDDEN,
    "not_found": http_status.HTTP_404_NOT_FOUND,
    "external": http_status.HTTP_502_BAD_GATEWAY,
}


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    """Render a WorkflowError as a JSON error body."""
    status_code = STATUS_BY_CATEGORY.get(exc.category, http_status.HTTP_400_BAD_REQUEST)

    log = logger.error if exc.category == "external" else logger.warning
    log(
        "workflow_error",
        method=request.method,
        path=request.url.path,
        error=exc.code,
        category=exc.category,
        message=exc.message,
        status_code=status_code,
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    """Install the workflow error handler on the app."""
    app.add_exception_handler(WorkflowError, workflow_error_handler)
