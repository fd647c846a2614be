"""Unit tests for the workflow error taxonomy."""

from __future__ import annotations

import uuid

import pytest

from solarcrew.database.models.project import ProjectStatus
from solarcrew.errors import (
    ConflictError,
    ExternalServiceFailure,
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    InvoiceServiceFailure,
    NotFoundError,
    NotOwnerError,
    ValidationError,
    WorkflowError,
)


@pytest.mark.parametrize(
    "error,code,category,retryable",
    [
        (InvalidTransitionError(ProjectStatus.planning, ProjectStatus.paid), "invalid_transition", "conflict", False),
        (InvalidStateError("closed"), "invalid_state", "conflict", False),
        (ConflictError("already taken"), "conflict", "conflict", False),
        (ForbiddenError("admins only"), "forbidden", "permission", False),
        (NotOwnerError("not yours"), "not_owner", "permission", False),
        (ValidationError("reason", "too short"), "validation_error", "validation", False),
        (NotFoundError("project", "p-1"), "not_found", "not_found", False),
        (ExternalServiceFailure("calendar", "down"), "external_service_failure", "external", True),
        (InvoiceServiceFailure("timed out"), "invoice_service_failure", "external", True),
    ],
)
def test_error_classification(error: WorkflowError, code: str, category: str, retryable: bool):
    assert isinstance(error, WorkflowError)
    assert error.code == code
    assert error.category == category
    assert error.retryable is retryable


def test_invalid_transition_message_and_details():
    error = InvalidTransitionError(ProjectStatus.planning, ProjectStatus.paid, "project p-9")

    assert str(error) == "Invalid transition from planning to paid for project p-9"
    assert error.to_dict() == {
        "error": "invalid_transition",
        "message": "Invalid transition from planning to paid for project p-9",
        "category": "conflict",
        "retryable": False,
        "details": {"current": "planning", "target": "paid"},
    }


def test_to_dict_omits_empty_details():
    payload = ConflictError("Record was modified concurrently").to_dict()
    assert "details" not in payload
    assert payload["message"] == "Record was modified concurrently"


def test_validation_error_names_field():
    error = ValidationError("description", "description must be at least 10 characters")
    assert error.field == "description"
    assert error.to_dict()["details"] == {"field": "description"}


def test_not_found_stringifies_ids():
    record_id = uuid.uuid4()
    error = NotFoundError("reclamation", record_id)

    assert str(error) == f"Reclamation {record_id} not found"
    assert error.to_dict()["details"] == {"kind": "reclamation"}


def test_invoice_failure_is_external_failure():
    error = InvoiceServiceFailure("request timed out")

    assert isinstance(error, ExternalServiceFailure)
    assert error.service == "invoice_service"
    assert str(error) == "invoice_service failed: request timed out"
