"""Project lifecycle and reclamation workflow engine.

``build_services`` wires the status engine and the reclamation workflow to
one shared lock registry and the configured collaborator clients.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from solarcrew.integrations.calendar import build_calendar_service
from solarcrew.integrations.invoice_ninja import InvoiceService, build_invoice_service
from solarcrew.integrations.notifications import build_notification_relay
from solarcrew.lifecycle.events import SideEffects
from solarcrew.lifecycle.locks import RecordLocks
from solarcrew.lifecycle.reclamation import CrewScope, ReclamationWorkflow
from solarcrew.lifecycle.state_machine import (
    BILLED_STATUSES,
    TransitionSuggestion,
    suggest_next_transition,
    validate_transition,
)
from solarcrew.lifecycle.status_engine import StatusTransitionEngine
from solarcrew.lifecycle.validation import Actor, Role

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from solarcrew.config import SolarcrewConfig


@dataclass
class WorkflowServices:
    """The wired workflow components of one process."""

    status_engine: StatusTransitionEngine
    reclamations: ReclamationWorkflow
    effects: SideEffects
    invoices: InvoiceService

    async def close(self) -> None:
        """Finish pending side effects and close collaborator clients."""
        await self.effects.close()
        await self.invoices.close()


def build_services(
    config: SolarcrewConfig,
    session_factory: async_sessionmaker[AsyncSession],
    invoices: InvoiceService | None = None,
    effects: SideEffects | None = None,
    today: Callable[[], date] = date.today,
) -> WorkflowServices:
    """Build the status engine and reclamation workflow.

    Args:
        config: Application configuration.
        session_factory: Async session factory.
        invoices: Invoice service override (defaults to the configured one).
        effects: Side-effect dispatcher override.
        today: Clock returning the current date.

    Returns:
        WorkflowServices sharing one RecordLocks registry.
    """
    locks = RecordLocks()
    invoices = invoices or build_invoice_service(config.invoice)
    effects = effects or SideEffects(
        build_notification_relay(config.notifications),
        build_calendar_service(config.calendar),
    )
    return WorkflowServices(
        status_engine=StatusTransitionEngine(
            session_factory, locks, invoices, effects, config.workflow, today=today
        ),
        reclamations=ReclamationWorkflow(
            session_factory, locks, effects, config.workflow, today=today
        ),
        effects=effects,
        invoices=invoices,
    )


__all__ = [
    "Actor",
    "BILLED_STATUSES",
    "CrewScope",
    "ReclamationWorkflow",
    "RecordLocks",
    "Role",
    "SideEffects",
    "StatusTransitionEngine",
    "TransitionSuggestion",
    "WorkflowServices",
    "build_services",
    "suggest_next_transition",
    "validate_transition",
]
