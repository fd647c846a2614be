"""Concurrency tests for taking reclamations from the available pool."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
import pytest_asyncio

from solarcrew.database.models import (
    ProjectChangeType,
    ProjectStatus,
    ReclamationAction,
    ReclamationStatus,
)
from solarcrew.database.queries.reclamation import get_reclamation
from solarcrew.errors import ConflictError, InvalidStateError, InvalidTransitionError
from solarcrew.lifecycle import build_services


@pytest.mark.asyncio
async def test_exactly_one_concurrent_take_wins(
    services, make_project, session_factory, admin, crew_a, crew_b, crew_c, today
):
    """Two crews race for one rejected reclamation; one wins, one conflicts."""
    project = await make_project(ProjectStatus.work_completed)
    reclamation = await services.reclamations.create(
        project.id, "Roof leak near the mounting rails", today + timedelta(days=3), crew_a.id, admin
    )
    await services.reclamations.reject(reclamation.id, crew_a.id, "Crew is booked out all week")

    results = await asyncio.gather(
        services.reclamations.take(reclamation.id, crew_b.id),
        services.reclamations.take(reclamation.id, crew_c.id),
        return_exceptions=True,
    )

    winners = [r for r in results if not isinstance(r, BaseException)]
    losers = [r for r in results if isinstance(r, BaseException)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], ConflictError)

    async with session_factory() as session:
        stored = await get_reclamation(session, reclamation.id)
    assert stored is not None
    assert stored.status == ReclamationStatus.accepted
    assert stored.current_crew_id == winners[0].current_crew_id
    assert stored.current_crew_id in {crew_b.id, crew_c.id}

    history = await services.reclamations.history(reclamation.id)
    assert [e.crew_id for e in history].count(stored.current_crew_id) == 1


@pytest.mark.asyncio
async def test_status_change_queued_behind_reclamation_create(
    services, make_project, reload_project, admin, crew_a, today
):
    """A status change queued behind a reclamation create sees the overlay."""
    project = await make_project(ProjectStatus.work_completed)

    created, changed = await asyncio.gather(
        services.reclamations.create(
            project.id, "Cracked panel on the east side", today, crew_a.id, admin
        ),
        services.status_engine.apply_status(project.id, ProjectStatus.invoiced, admin),
        return_exceptions=True,
    )

    assert created.status == ReclamationStatus.pending
    assert isinstance(changed, InvalidStateError)

    stored = await reload_project(project.id)
    assert stored.under_reclamation is True
    assert stored.status == ProjectStatus.work_completed
    assert stored.invoice_number is None


@pytest_asyncio.fixture
async def other_instance(config, session_factory, invoices, services, today):
    """A second service instance on the same database with its own record locks.

    Stands in for another worker process: in-process locks are not shared,
    so only the version check on each row keeps the writers apart.
    """
    return build_services(
        config,
        session_factory,
        invoices=invoices,
        effects=services.effects,
        today=lambda: today,
    )


@pytest.mark.asyncio
async def test_take_across_instances_has_one_winner(
    services, other_instance, make_project, session_factory, admin, crew_a, crew_b, crew_c, today
):
    """Takers on separate instances still yield one winner and one conflict."""
    assert other_instance.reclamations.locks is not services.reclamations.locks
    project = await make_project(ProjectStatus.work_completed)
    reclamation = await services.reclamations.create(
        project.id, "Inverter trips every afternoon", today + timedelta(days=3), crew_a.id, admin
    )
    rejected = await services.reclamations.reject(
        reclamation.id, crew_a.id, "Crew is booked out all week"
    )

    results = await asyncio.gather(
        services.reclamations.take(reclamation.id, crew_b.id),
        other_instance.reclamations.take(reclamation.id, crew_c.id),
        return_exceptions=True,
    )

    winners = [r for r in results if not isinstance(r, BaseException)]
    losers = [r for r in results if isinstance(r, BaseException)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], ConflictError)
    assert "modified concurrently" in losers[0].message or "already taken" in losers[0].message

    async with session_factory() as session:
        stored = await get_reclamation(session, reclamation.id)
    assert stored.current_crew_id == winners[0].current_crew_id
    assert stored.version == rejected.version + 1

    history = await services.reclamations.history(reclamation.id)
    assert [e.action for e in history].count(ReclamationAction.accepted) == 1


@pytest.mark.asyncio
async def test_status_change_across_instances_applies_once(
    services, other_instance, make_project, reload_project, leader
):
    """Concurrent status writes on separate instances record one change."""
    project = await make_project(ProjectStatus.planning)

    results = await asyncio.gather(
        services.status_engine.apply_status(project.id, ProjectStatus.equipment_waiting, leader),
        other_instance.status_engine.apply_status(
            project.id, ProjectStatus.equipment_waiting, leader
        ),
        return_exceptions=True,
    )

    winners = [r for r in results if not isinstance(r, BaseException)]
    losers = [r for r in results if isinstance(r, BaseException)]
    assert len(winners) == 1
    assert len(losers) == 1
    # The loser either lost the version check or saw the winner's commit
    assert isinstance(losers[0], (ConflictError, InvalidTransitionError))

    stored = await reload_project(project.id)
    assert stored.status == ProjectStatus.equipment_waiting
    assert stored.version == project.version + 1

    history = await services.status_engine.history(project.id)
    assert [e.change_type for e in history].count(ProjectChangeType.status_change) == 1
