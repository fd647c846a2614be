"""End-to-end tests for the project lifecycle.

Drives a project from planning to paid over the HTTP API, following the
date-driven suggestions, and checks the audit trail, invoicing and
notifications along the way.
"""

from __future__ import annotations

from datetime import timedelta

import pytest


async def _advance(api, project_id, target, headers):
    response = await api.patch(
        f"/projects/{project_id}/status", json={"status": target}, headers=headers
    )
    assert response.status_code == 200, response.text
    return response.json()


async def _suggested(api, project_id, headers):
    response = await api.get(f"/projects/{project_id}/suggestion", headers=headers)
    assert response.status_code == 200
    return response.json()["target"]


@pytest.mark.e2e
@pytest.mark.asyncio
class TestProjectLifecycle:
    """Walk a project through every stage of the extended schema."""

    async def test_equipment_arrival_suggestion_and_guarded_jump(
        self, api, new_project, as_leader, today
    ) -> None:
        """Test recording arrival suggests the next stage and skipping ahead is refused."""
        project_id = new_project["id"]

        waiting = await _advance(api, project_id, "equipment_waiting", as_leader)
        assert waiting["status"] == "equipment_waiting"

        dates = await api.patch(
            f"/projects/{project_id}/dates",
            json={"equipment_arrived_date": (today - timedelta(days=1)).isoformat()},
            headers=as_leader,
        )
        assert dates.status_code == 200
        assert dates.json()["status"] == "equipment_waiting"

        assert await _suggested(api, project_id, as_leader) == "equipment_arrived"
        arrived = await _advance(api, project_id, "equipment_arrived", as_leader)
        assert arrived["status"] == "equipment_arrived"

        jump = await api.patch(
            f"/projects/{project_id}/status", json={"status": "paid"}, headers=as_leader
        )
        assert jump.status_code == 409
        assert jump.json()["error"] == "invalid_transition"

        current = await api.get(f"/projects/{project_id}", headers=as_leader)
        assert current.json()["status"] == "equipment_arrived"

    async def test_planning_to_paid(
        self, api, new_project, services, invoices, relay, as_leader, today
    ) -> None:
        """Test the full walk to paid creates exactly one invoice."""
        project_id = new_project["id"]

        await _advance(api, project_id, "equipment_waiting", as_leader)
        await api.patch(
            f"/projects/{project_id}/dates",
            json={"equipment_arrived_date": today.isoformat(), "work_start_date": today.isoformat()},
            headers=as_leader,
        )
        for expected in ("equipment_arrived", "work_scheduled", "work_in_progress"):
            assert await _suggested(api, project_id, as_leader) == expected
            await _advance(api, project_id, expected, as_leader)

        assert await _suggested(api, project_id, as_leader) is None
        await _advance(api, project_id, "work_completed", as_leader)

        invoiced = await _advance(api, project_id, "invoiced", as_leader)
        assert invoiced["invoice_number"] == "INV-0001"
        assert invoiced["invoice_url"] == "https://invoices.test/invoices/1"

        await _advance(api, project_id, "send_invoice", as_leader)
        await _advance(api, project_id, "invoice_sent", as_leader)
        paid = await _advance(api, project_id, "paid", as_leader)

        assert paid["status"] == "paid"
        assert paid["invoice_number"] == "INV-0001"
        assert len(invoices.calls) == 1

        history = await api.get(f"/projects/{project_id}/history", headers=as_leader)
        status_changes = [
            e["new_value"] for e in history.json() if e["change_type"] == "status_change"
        ]
        assert status_changes == [
            "equipment_waiting",
            "equipment_arrived",
            "work_scheduled",
            "work_in_progress",
            "work_completed",
            "invoiced",
            "send_invoice",
            "invoice_sent",
            "paid",
        ]

        await services.effects.drain()
        assert relay.event_types().count("project.status_changed") == 9

        repeat = await api.patch(
            f"/projects/{project_id}/status", json={"status": "paid"}, headers=as_leader
        )
        assert repeat.status_code == 200
        assert repeat.json()["version"] == paid["version"]
        assert len(invoices.calls) == 1

        backwards = await api.patch(
            f"/projects/{project_id}/status", json={"status": "invoiced"}, headers=as_leader
        )
        assert backwards.status_code == 409
