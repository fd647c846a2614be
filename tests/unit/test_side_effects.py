"""Unit tests for background side-effect delivery."""

from __future__ import annotations

import asyncio
import uuid
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from solarcrew.integrations.calendar import DateRange
from solarcrew.integrations.notifications import ADMINS, ChangeEventType, make_event
from solarcrew.lifecycle.events import SideEffects


@pytest.fixture
def relay() -> AsyncMock:
    mock = AsyncMock()
    mock.notify.return_value = True
    return mock


@pytest.fixture
def calendar() -> AsyncMock:
    mock = AsyncMock()
    mock.schedule_event.return_value = True
    return mock


@pytest.mark.asyncio
async def test_notify_runs_in_background(relay: AsyncMock, calendar: AsyncMock):
    effects = SideEffects(relay, calendar)
    event = make_event(ChangeEventType.RECLAMATION_CREATED, actor_id="admin-1")

    effects.notify({ADMINS}, event)
    assert effects.pending == 1

    await effects.drain()

    relay.notify.assert_awaited_once_with({ADMINS}, event)
    assert effects.pending == 0


@pytest.mark.asyncio
async def test_schedule_builds_date_range(relay: AsyncMock, calendar: AsyncMock):
    effects = SideEffects(relay, calendar)
    crew_id = uuid.uuid4()

    effects.schedule(crew_id, date(2026, 11, 2), date(2026, 11, 2), {"reclamation_id": "r-1"})
    await effects.drain()

    calendar.schedule_event.assert_awaited_once_with(
        crew_id,
        DateRange(date(2026, 11, 2), date(2026, 11, 2)),
        {"reclamation_id": "r-1"},
    )


@pytest.mark.asyncio
async def test_failure_is_logged_not_raised(relay: AsyncMock, calendar: AsyncMock):
    relay.notify.side_effect = RuntimeError("relay exploded")
    effects = SideEffects(relay, calendar)

    with patch("solarcrew.lifecycle.events.logger") as mock_logger:
        effects.notify({ADMINS}, make_event(ChangeEventType.PROJECT_STATUS_CHANGED))
        await effects.drain()
        # Done callbacks run on the next loop iteration
        await asyncio.sleep(0)

    mock_logger.error.assert_called_once()
    args, kwargs = mock_logger.error.call_args
    assert args == ("side_effect_failed",)
    assert kwargs["error_type"] == "RuntimeError"
    assert kwargs["task"] == "notify:project.status_changed"


@pytest.mark.asyncio
async def test_close_drains_and_closes_clients(relay: AsyncMock, calendar: AsyncMock):
    effects = SideEffects(relay, calendar)
    effects.notify({ADMINS}, make_event(ChangeEventType.RECLAMATION_CANCELLED))

    with patch("solarcrew.lifecycle.events.logger") as mock_logger:
        await effects.close()

    mock_logger.info.assert_called_once_with("side_effects_draining", pending=1)
    relay.notify.assert_awaited_once()
    relay.close.assert_awaited_once()
    calendar.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_when_idle_skips_drain_log(relay: AsyncMock, calendar: AsyncMock):
    effects = SideEffects(relay, calendar)

    with patch("solarcrew.lifecycle.events.logger") as mock_logger:
        await effects.close()

    mock_logger.info.assert_not_called()
    relay.close.assert_awaited_once()
