"""FastAPI application factory for Solarcrew.

This module provides the main application factory function that creates
and configures a FastAPI application with:
- CORS middleware for cross-origin requests
- Request logging middleware with correlation IDs
- Database connection and workflow service lifecycle management
- The workflow error handler (409/403/422/404/502 mapping)
- Health, project and reclamation routers

Example usage:
    >>> from solarcrew.config import SolarcrewConfig
    >>> from solarcrew.web.app import create_app
    >>>
    >>> app = create_app(SolarcrewConfig())
    >>>
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from solarcrew import __version__
from solarcrew.config import SolarcrewConfig
from solarcrew.database.connection import get_engine, get_session_factory
from solarcrew.lifecycle import build_services
from solarcrew.logging import get_logger
from solarcrew.web.errors import register_error_handlers
from solarcrew.web.middleware import RequestLoggingMiddleware
from solarcrew.web.routes.health import create_health_router
from solarcrew.web.routes.projects import create_projects_router
from solarcrew.web.routes.reclamations import create_reclamations_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage database connections and workflow services.

    On startup creates the engine, session factory and workflow services
    and stores them in app.state; on shutdown drains pending side effects,
    closes collaborator clients and disposes of the engine.

    Args:
        app: FastAPI application instance

    Yields:
        None after startup, cleans up on context exit
    """
    config: SolarcrewConfig = app.state.config

    logger.info("app_startup_begin", host=config.web.host, port=config.web.port)

    engine = get_engine(config.database)
    session_factory = get_session_factory(engine)
    services = build_services(config, session_factory)

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.services = services

    logger.info(
        "services_initialized",
        invoice_enabled=config.invoice.enabled,
        calendar_enabled=config.calendar.enabled,
        notifications_enabled=config.notifications.enabled,
    )

    yield

    logger.info("app_shutdown_begin")
    await services.close()
    await engine.dispose()
    logger.info("database_pool_disposed")


def create_app(config: SolarcrewConfig | None = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Args:
        config: Optional SolarcrewConfig. If None, creates default config.

    Returns:
        Configured FastAPI application instance.
    """
    if config is None:
        config = SolarcrewConfig()

    app = FastAPI(
        title="Solarcrew",
        version=__version__,
        description="Project lifecycle and reclamation workflow service",
        lifespan=lifespan,
    )

    # Store config in app.state for lifespan access
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_error_handlers(app)

    app.include_router(create_health_router())
    app.include_router(create_projects_router())
    app.include_router(create_reclamations_router())

    logger.info(
        "app_created",
        cors_origins=config.web.cors_origins,
        version=__version__,
    )

    return app
