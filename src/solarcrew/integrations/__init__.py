"""Clients for the external collaborators of the workflows."""

from __future__ import annotations

from solarcrew.integrations.calendar import (
    CalendarService,
    DateRange,
    NullCalendarService,
    WebhookCalendarClient,
    build_calendar_service,
)
from solarcrew.integrations.invoice_ninja import (
    DisabledInvoiceService,
    InvoiceNinjaClient,
    InvoiceResult,
    InvoiceService,
    build_invoice_service,
)
from solarcrew.integrations.notifications import (
    ChangeEvent,
    ChangeEventType,
    NotificationRelay,
    NullNotificationRelay,
    WebhookNotificationRelay,
    build_notification_relay,
)

__all__ = [
    "CalendarService",
    "ChangeEvent",
    "ChangeEventType",
    "DateRange",
    "DisabledInvoiceService",
    "InvoiceNinjaClient",
    "InvoiceResult",
    "InvoiceService",
    "NotificationRelay",
    "NullCalendarService",
    "NullNotificationRelay",
    "WebhookCalendarClient",
    "WebhookNotificationRelay",
    "build_calendar_service",
    "build_invoice_service",
    "build_notification_relay",
]
