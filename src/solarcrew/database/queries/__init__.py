"""Database query functions for Solarcrew.

This module provides async query functions for all database entities:
- Firm and crew lookups and seeding
- Project reads, row-locking reads, and seeding
- Reclamation reads and the crew assigned/available partition
- Project and reclamation history
"""

from solarcrew.database.queries.firm import (
    create_crew,
    create_firm,
    get_crew,
    get_firm,
    list_crews,
)
from solarcrew.database.queries.history import (
    add_project_history,
    add_reclamation_history,
    list_project_history,
    list_reclamation_history,
)
from solarcrew.database.queries.project import (
    create_project,
    get_project,
    get_project_for_update,
    list_projects,
)
from solarcrew.database.queries.reclamation import (
    count_assigned_for_crew,
    count_available_for_crew,
    get_open_reclamation_for_project,
    get_reclamation,
    get_reclamation_for_update,
    list_assigned_for_crew,
    list_available_for_crew,
    list_reclamations_for_firm,
    list_reclamations_for_project,
)

__all__ = [
    # Firm and crew queries
    "create_firm",
    "create_crew",
    "get_firm",
    "get_crew",
    "list_crews",
    # Project queries
    "create_project",
    "get_project",
    "get_project_for_update",
    "list_projects",
    # Reclamation queries
    "get_reclamation",
    "get_reclamation_for_update",
    "get_open_reclamation_for_project",
    "list_reclamations_for_project",
    "list_reclamations_for_firm",
    "list_assigned_for_crew",
    "list_available_for_crew",
    "count_assigned_for_crew",
    "count_available_for_crew",
    # History queries
    "add_project_history",
    "add_reclamation_history",
    "list_project_history",
    "list_reclamation_history",
]
