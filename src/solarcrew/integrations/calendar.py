"""Crew calendar scheduling.

Accepted or taken reclamations are put on the crew's calendar. The call is
fire-and-forget from the workflow's point of view: a failure is logged and
never undoes the reclamation change.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol
from uuid import UUID

import httpx
import structlog

from solarcrew.config import CalendarConfig

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days."""

    start: date
    end: date

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


class CalendarService(Protocol):
    """Schedules events on a crew's calendar."""

    async def schedule_event(
        self, crew_id: UUID, date_range: DateRange, metadata: dict[str, Any]
    ) -> bool: ...

    async def close(self) -> None: ...


class NullCalendarService:
    """Calendar used when scheduling is disabled."""

    async def schedule_event(
        self, crew_id: UUID, date_range: DateRange, metadata: dict[str, Any]
    ) -> bool:
        logger.debug("calendar_skipped", crew_id=str(crew_id))
        return True

    async def close(self) -> None:
        return None


class WebhookCalendarClient:
    """Posts scheduling requests to a calendar bridge webhook."""

    def __init__(self, config: CalendarConfig) -> None:
        self.config = config
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def schedule_event(
        self, crew_id: UUID, date_range: DateRange, metadata: dict[str, Any]
    ) -> bool:
        """Request a calendar event for the crew.

        Returns True if the bridge accepted the request, False otherwise.
        """
        payload = {
            "crew_id": str(crew_id),
            "range": date_range.to_dict(),
            "metadata": metadata,
        }
        try:
            client = await self._get_client()
            response = await client.post(self.config.webhook_url, json=payload)
        except httpx.RequestError as e:
            logger.error("calendar_error", crew_id=str(crew_id), error=str(e))
            return False

        if not response.is_success:
            logger.warning(
                "calendar_failed",
                crew_id=str(crew_id),
                status_code=response.status_code,
            )
            return False

        logger.info("calendar_event_scheduled", crew_id=str(crew_id), **date_range.to_dict())
        return True


def build_calendar_service(config: CalendarConfig) -> CalendarService:
    """Return the configured calendar service."""
    if config.enabled:
        return WebhookCalendarClient(config)
    return NullCalendarService()
