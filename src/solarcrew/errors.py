"""Error taxonomy for the lifecycle and reclamation workflows.

Every error raised by the workflow layer derives from WorkflowError and
carries a stable machine-readable ``code``, a ``category`` that tells a
client whether to refetch state (``conflict``) or fix its input
(``validation``), and a ``retryable`` flag.

Categories:
    conflict: The record changed or is in the wrong state; refetch and retry.
    validation: Input violated a field constraint; correct the input.
    permission: The actor may not perform the operation.
    not_found: A referenced record does not exist.
    external: A collaborator service failed; the operation was rolled back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from enum import Enum


class WorkflowError(Exception):
    """Base class for all workflow errors.

    Attributes:
        code: Stable error identifier used in API responses.
        category: One of conflict, validation, permission, not_found, external.
        retryable: Whether repeating the same request may succeed.
        message: Human-readable description.
        details: Extra structured context for API responses and logs.
    """

    code = "workflow_error"
    category = "conflict"
    retryable = False

    def __init__(self, message: str, **details: Any) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Render the error for API responses."""
        payload: dict[str, Any] = {
            "error": self.code,
            "message": self.message,
            "category": self.category,
            "retryable": self.retryable,
        }
        if self.details:
            payload["details"] = {k: _plain(v) for k, v in self.details.items()}
        return payload


class InvalidTransitionError(WorkflowError):
    """Raised when a status change is not an edge of the transition table.

    Attributes:
        current: The current status.
        target: The attempted target status.
        record_id: The ID of the record that failed to transition.
    """

    code = "invalid_transition"

    def __init__(self, current: Enum, target: Enum, record_id: str | None = None):
        self.current = current
        self.target = target
        self.record_id = record_id
        msg = f"Invalid transition from {current.value} to {target.value}"
        if record_id:
            msg += f" for {record_id}"
        super().__init__(msg, current=current.value, target=target.value)


class InvalidStateError(WorkflowError):
    """Raised when a record is not in a state that allows the operation."""

    code = "invalid_state"


class ConflictError(WorkflowError):
    """Raised when a concurrent writer won or an exclusivity rule is violated."""

    code = "conflict"


class ForbiddenError(WorkflowError):
    """Raised when the actor's role does not permit the operation."""

    code = "forbidden"
    category = "permission"


class NotOwnerError(WorkflowError):
    """Raised when a crew acts on a reclamation it does not currently hold."""

    code = "not_owner"
    category = "permission"


class ValidationError(WorkflowError):
    """Raised when a field constraint is violated.

    Attributes:
        field: Name of the offending field.
    """

    code = "validation_error"
    category = "validation"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message, field=field)


class NotFoundError(WorkflowError):
    """Raised when a referenced record does not exist."""

    code = "not_found"
    category = "not_found"

    def __init__(self, kind: str, record_id: Any) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind.capitalize()} {record_id} not found", kind=kind)


class ExternalServiceFailure(WorkflowError):
    """Raised when a collaborator service call fails.

    Attributes:
        service: Name of the failing collaborator.
    """

    code = "external_service_failure"
    category = "external"
    retryable = True

    def __init__(self, service: str, message: str) -> None:
        self.service = service
        super().__init__(f"{service} failed: {message}", service=service)


class InvoiceServiceFailure(ExternalServiceFailure):
    """Raised when invoice creation fails or times out."""

    code = "invoice_service_failure"

    def __init__(self, message: str) -> None:
        super().__init__("invoice_service", message)


def _plain(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)
