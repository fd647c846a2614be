"""Database layer for Solarcrew.

This module handles database connections, session management, and provides
the SQLAlchemy async engine configuration.

Public API:
    get_engine: Create an AsyncEngine from DatabaseConfig.
    get_session_factory: Create an async_sessionmaker from an engine.
    Base: SQLAlchemy declarative base for all models.
"""

from solarcrew.database.connection import get_engine, get_session_factory
from solarcrew.database.models import (
    Base,
    Crew,
    Firm,
    Project,
    ProjectHistoryEntry,
    ProjectStatus,
    Reclamation,
    ReclamationHistoryEntry,
    ReclamationStatus,
    StatusSchema,
    TimestampMixin,
)

__all__ = [
    "get_engine",
    "get_session_factory",
    "Base",
    "TimestampMixin",
    "Firm",
    "Crew",
    "Project",
    "ProjectStatus",
    "StatusSchema",
    "Reclamation",
    "ReclamationStatus",
    "ProjectHistoryEntry",
    "ReclamationHistoryEntry",
]
