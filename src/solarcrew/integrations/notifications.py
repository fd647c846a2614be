"""Notification relay for workflow change events.

Change events are delivered to a relay endpoint (an automation webhook that
fans out to email, push, or chat). Delivery is best effort: the workflow
never waits on it and failures are only logged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

import httpx

from solarcrew.config import NotificationConfig
from solarcrew.logging import get_logger

logger = get_logger(__name__)

ADMINS = "role:admin"


def crew_recipient(crew_id: UUID) -> str:
    """Recipient address for everyone in a crew."""
    return f"crew:{crew_id}"


class ChangeEventType(str, Enum):
    """Types of events emitted by the workflows."""

    PROJECT_STATUS_CHANGED = "project.status_changed"
    PROJECT_STATUS_OVERRIDDEN = "project.status_overridden"
    PROJECT_DATES_UPDATED = "project.dates_updated"
    RECLAMATION_CREATED = "reclamation.created"
    RECLAMATION_ACCEPTED = "reclamation.accepted"
    RECLAMATION_REJECTED = "reclamation.rejected"
    RECLAMATION_TAKEN = "reclamation.taken"
    RECLAMATION_STARTED = "reclamation.started"
    RECLAMATION_COMPLETED = "reclamation.completed"
    RECLAMATION_REASSIGNED = "reclamation.reassigned"
    RECLAMATION_CANCELLED = "reclamation.cancelled"


@dataclass
class ChangeEvent:
    """Standard payload for change notifications."""

    event_type: ChangeEventType
    timestamp: datetime
    actor_id: str | None = None
    project_id: UUID | None = None
    reclamation_id: UUID | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert the event to a dictionary for JSON serialization."""
        return {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "actor_id": self.actor_id,
            "project_id": str(self.project_id) if self.project_id else None,
            "reclamation_id": str(self.reclamation_id) if self.reclamation_id else None,
            "data": self.data,
        }


def make_event(
    event_type: ChangeEventType,
    actor_id: str | None = None,
    project_id: UUID | None = None,
    reclamation_id: UUID | None = None,
    **data: Any,
) -> ChangeEvent:
    """Build a ChangeEvent stamped with the current UTC time."""
    return ChangeEvent(
        event_type=event_type,
        timestamp=datetime.now(timezone.utc),
        actor_id=actor_id,
        project_id=project_id,
        reclamation_id=reclamation_id,
        data=data,
    )


class NotificationRelay(Protocol):
    """Delivers change events to a set of recipients."""

    async def notify(self, recipients: set[str], event: ChangeEvent) -> bool: ...

    async def close(self) -> None: ...


class NullNotificationRelay:
    """Relay used when notifications are disabled."""

    async def notify(self, recipients: set[str], event: ChangeEvent) -> bool:
        logger.debug(
            "notification_skipped",
            event_type=event.event_type.value,
            recipients=sorted(recipients),
        )
        return True

    async def close(self) -> None:
        return None


class WebhookNotificationRelay:
    """Posts change events to a relay webhook."""

    def __init__(self, config: NotificationConfig) -> None:
        self.config = config
        self.logger = get_logger(__name__)
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def notify(self, recipients: set[str], event: ChangeEvent) -> bool:
        """Send the event to the relay.

        Returns True if the relay accepted it, False otherwise.
        """
        if not self.config.enabled:
            self.logger.debug("notifications_disabled", event_type=event.event_type.value)
            return True

        try:
            client = await self._get_client()
            headers = {"Content-Type": "application/json"}
            if self.config.auth_header:
                headers["Authorization"] = self.config.auth_header

            response = await client.post(
                self.config.webhook_url,
                json={"recipients": sorted(recipients), "event": event.to_dict()},
                headers=headers,
            )

            if response.is_success:
                self.logger.info(
                    "notification_sent",
                    event_type=event.event_type.value,
                    status_code=response.status_code,
                )
                return True
            else:
                self.logger.warning(
                    "notification_failed",
                    event_type=event.event_type.value,
                    status_code=response.status_code,
                    response_text=response.text[:200],
                )
                return False

        except httpx.RequestError as e:
            self.logger.error(
                "notification_error",
                event_type=event.event_type.value,
                error=str(e),
            )
            return False


def build_notification_relay(config: NotificationConfig) -> NotificationRelay:
    """Return the configured notification relay."""
    if config.enabled:
        return WebhookNotificationRelay(config)
    return NullNotificationRelay()
