"""SQLAlchemy ORM models for Solarcrew.

This module defines the database schema: firms, crews, projects,
reclamations, and their audit history tables.

All models use SQLAlchemy 2.0 declarative style with Mapped[] type annotations.
"""

from solarcrew.database.models.base import Base, TimestampMixin
from solarcrew.database.models.firm import Crew, Firm
from solarcrew.database.models.history import (
    ProjectChangeType,
    ProjectHistoryEntry,
    ReclamationAction,
    ReclamationHistoryEntry,
)
from solarcrew.database.models.project import Project, ProjectStatus, StatusSchema
from solarcrew.database.models.reclamation import Reclamation, ReclamationStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "Firm",
    "Crew",
    "Project",
    "ProjectStatus",
    "StatusSchema",
    "Reclamation",
    "ReclamationStatus",
    "ProjectChangeType",
    "ProjectHistoryEntry",
    "ReclamationAction",
    "ReclamationHistoryEntry",
]
