"""Transition tables for project lifecycle and reclamation states.

This module is the single authoritative definition of which status changes
are legal. Project statuses form a forward-only chain per status schema;
only the next stage is reachable without an administrator fast-forward.
Reclamation statuses follow their own table, including the rejected pool
re-entry through ``take``.

It also holds ``suggest_next_transition``, the pure function that proposes
a date-driven next step for a project.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from solarcrew.database.models.project import Project, ProjectStatus, StatusSchema
from solarcrew.database.models.reclamation import ReclamationStatus
from solarcrew.errors import InvalidTransitionError

# Ordered lifecycle per schema variant
SCHEMA_SEQUENCES: dict[StatusSchema, tuple[ProjectStatus, ...]] = {
    StatusSchema.extended: (
        ProjectStatus.planning,
        ProjectStatus.equipment_waiting,
        ProjectStatus.equipment_arrived,
        ProjectStatus.work_scheduled,
        ProjectStatus.work_in_progress,
        ProjectStatus.work_completed,
        ProjectStatus.invoiced,
        ProjectStatus.send_invoice,
        ProjectStatus.invoice_sent,
        ProjectStatus.paid,
    ),
    StatusSchema.simplified: (
        ProjectStatus.planning,
        ProjectStatus.in_progress,
        ProjectStatus.done,
        ProjectStatus.invoiced,
        ProjectStatus.paid,
    ),
}

VALID_TRANSITIONS: dict[StatusSchema, dict[ProjectStatus, set[ProjectStatus]]] = {
    StatusSchema.extended: {
        ProjectStatus.planning: {ProjectStatus.equipment_waiting},
        ProjectStatus.equipment_waiting: {ProjectStatus.equipment_arrived},
        ProjectStatus.equipment_arrived: {ProjectStatus.work_scheduled},
        ProjectStatus.work_scheduled: {ProjectStatus.work_in_progress},
        ProjectStatus.work_in_progress: {ProjectStatus.work_completed},
        ProjectStatus.work_completed: {ProjectStatus.invoiced},
        ProjectStatus.invoiced: {ProjectStatus.send_invoice},
        ProjectStatus.send_invoice: {ProjectStatus.invoice_sent},
        ProjectStatus.invoice_sent: {ProjectStatus.paid},
        ProjectStatus.paid: set(),  # Terminal
    },
    StatusSchema.simplified: {
        ProjectStatus.planning: {ProjectStatus.in_progress},
        ProjectStatus.in_progress: {ProjectStatus.done},
        ProjectStatus.done: {ProjectStatus.invoiced},
        ProjectStatus.invoiced: {ProjectStatus.paid},
        ProjectStatus.paid: set(),  # Terminal
    },
}

# invoice_number is present exactly in these statuses
BILLED_STATUSES = frozenset(
    {
        ProjectStatus.invoiced,
        ProjectStatus.send_invoice,
        ProjectStatus.invoice_sent,
        ProjectStatus.paid,
    }
)

# First status at which installation work counts as finished
WORK_FINISHED_STATUS: dict[StatusSchema, ProjectStatus] = {
    StatusSchema.extended: ProjectStatus.work_completed,
    StatusSchema.simplified: ProjectStatus.done,
}

RECLAMATION_TRANSITIONS: dict[ReclamationStatus, set[ReclamationStatus]] = {
    ReclamationStatus.pending: {ReclamationStatus.accepted, ReclamationStatus.rejected},
    ReclamationStatus.rejected: {ReclamationStatus.accepted},
    ReclamationStatus.accepted: {ReclamationStatus.in_progress, ReclamationStatus.completed},
    ReclamationStatus.in_progress: {ReclamationStatus.completed},
    ReclamationStatus.completed: set(),  # Terminal
    ReclamationStatus.cancelled: set(),  # Terminal
}


def validate_transition(
    schema: StatusSchema,
    current: ProjectStatus,
    target: ProjectStatus,
) -> bool:
    """Validate a single-step project status change.

    Args:
        schema: The project's status schema.
        current: Current project status.
        target: Target project status.

    Returns:
        True if target is the next stage of current in this schema.
    """
    return target in VALID_TRANSITIONS[schema].get(current, set())


def status_rank(schema: StatusSchema, status: ProjectStatus) -> int:
    """Position of a status in its schema's sequence.

    Raises:
        ValueError: If the status does not belong to the schema.
    """
    return SCHEMA_SEQUENCES[schema].index(status)


def in_schema(schema: StatusSchema, status: ProjectStatus) -> bool:
    """Whether a status belongs to the schema's vocabulary."""
    return status in SCHEMA_SEQUENCES[schema]


def is_forward(schema: StatusSchema, current: ProjectStatus, target: ProjectStatus) -> bool:
    """Whether target lies strictly after current in the same schema."""
    if not (in_schema(schema, current) and in_schema(schema, target)):
        return False
    return status_rank(schema, target) > status_rank(schema, current)


def check_transition(
    project: Project,
    target: ProjectStatus,
    fast_forward: bool = False,
) -> None:
    """Raise unless the project may move to target.

    Without fast_forward only the next stage is allowed; with it any later
    stage of the project's own schema is.

    Raises:
        InvalidTransitionError: If the move is not allowed.
    """
    schema = project.status_schema
    current = project.status
    allowed = (
        is_forward(schema, current, target)
        if fast_forward
        else validate_transition(schema, current, target)
    )
    if not allowed:
        raise InvalidTransitionError(current, target, f"project {project.id}")


def is_work_finished(project: Project) -> bool:
    """Whether installation work on the project is finished."""
    schema = project.status_schema
    return status_rank(schema, project.status) >= status_rank(
        schema, WORK_FINISHED_STATUS[schema]
    )


def check_reclamation_transition(
    current: ReclamationStatus,
    target: ReclamationStatus,
    reclamation_id: str | None = None,
) -> None:
    """Raise unless the reclamation status change is in the table.

    Raises:
        InvalidTransitionError: If the change is not allowed.
    """
    if target not in RECLAMATION_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(
            current,
            target,
            f"reclamation {reclamation_id}" if reclamation_id else None,
        )


@dataclass(frozen=True)
class TransitionSuggestion:
    """A proposed next status derived from a project's dates.

    Attributes:
        target: Suggested next status.
        reason: Machine-readable reason key for UI prompts.
    """

    target: ProjectStatus
    reason: str


def suggest_next_transition(project: Project, today: date) -> TransitionSuggestion | None:
    """Suggest the next status from the project's dates.

    Pure function: reads the project, never writes to it.

    Rules:
        equipment_waiting with equipment_arrived_date <= today -> equipment_arrived
        equipment_arrived with work_start_date set -> work_scheduled
        work_scheduled with work_start_date <= today -> work_in_progress

    Args:
        project: Project to inspect.
        today: Reference date.

    Returns:
        One suggestion, or None when the next step needs a human decision.
    """
    status = project.status

    if status == ProjectStatus.equipment_waiting:
        arrived = project.equipment_arrived_date
        if arrived is not None and arrived <= today:
            return TransitionSuggestion(ProjectStatus.equipment_arrived, "equipment_arrived_date_reached")

    elif status == ProjectStatus.equipment_arrived:
        # Assigning a start date is the act of scheduling
        if project.work_start_date is not None:
            return TransitionSuggestion(ProjectStatus.work_scheduled, "work_start_date_assigned")

    elif status == ProjectStatus.work_scheduled:
        start = project.work_start_date
        if start is not None and start <= today:
            return TransitionSuggestion(ProjectStatus.work_in_progress, "work_start_date_reached")

    return None
