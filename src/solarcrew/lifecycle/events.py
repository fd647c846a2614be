"""Background delivery of post-commit side effects.

Notifications and calendar scheduling run after the database transaction
has committed and must never block or fail the request that caused them.
``SideEffects`` starts them as tracked asyncio tasks and logs their
failures.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from datetime import date
from typing import Any
from uuid import UUID

import structlog

from solarcrew.integrations.calendar import CalendarService, DateRange
from solarcrew.integrations.notifications import ChangeEvent, NotificationRelay

logger = structlog.get_logger(__name__)


class SideEffects:
    """Fire-and-forget dispatcher for notifications and calendar requests.

    Attributes:
        relay: Notification relay receiving change events
        calendar: Calendar service receiving scheduling requests
    """

    def __init__(self, relay: NotificationRelay, calendar: CalendarService) -> None:
        self.relay = relay
        self.calendar = calendar
        self._tasks: set[asyncio.Task] = set()

    def notify(self, recipients: set[str], event: ChangeEvent) -> None:
        """Deliver a change event in the background."""
        self._spawn(
            self.relay.notify(recipients, event),
            name=f"notify:{event.event_type.value}",
        )

    def schedule(
        self,
        crew_id: UUID,
        start: date,
        end: date,
        metadata: dict[str, Any],
    ) -> None:
        """Request a calendar event in the background."""
        self._spawn(
            self.calendar.schedule_event(crew_id, DateRange(start, end), metadata),
            name=f"calendar:{crew_id}",
        )

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "side_effect_failed",
                task=task.get_name(),
                error=str(exc),
                error_type=type(exc).__name__,
            )

    @property
    def pending(self) -> int:
        """Number of side effects still running."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every started side effect to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Drain outstanding work and close the collaborator clients."""
        if self.pending:
            logger.info("side_effects_draining", pending=self.pending)
        await self.drain()
        await self.relay.close()
        await self.calendar.close()
