"""Integration tests for reclamation API endpoints."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest
import pytest_asyncio

from solarcrew.database.models import ProjectStatus


@pytest_asyncio.fixture
async def pending(services, make_project, admin, crew_a, today):
    """A pending reclamation held by crew A, created through the workflow."""
    project = await make_project(ProjectStatus.work_completed)
    return await services.reclamations.create(
        project.id, "Junction box is not sealed", today + timedelta(days=4), crew_a.id, admin
    )


class TestCrewFlow:
    """Test the crew-facing reclamation endpoints."""

    @pytest.mark.asyncio
    async def test_assigned_list_and_accept(self, client, pending, crew_a, crew_headers):
        headers = crew_headers(crew_a)

        listed = await client.get("/reclamations/", headers=headers)
        assert [r["id"] for r in listed.json()] == [str(pending.id)]

        response = await client.post(f"/reclamations/{pending.id}/accept", headers=headers)

        assert response.status_code == 200
        assert response.json()["status"] == "accepted"
        assert response.json()["accepted_at"] is not None

    @pytest.mark.asyncio
    async def test_accept_by_other_crew_forbidden(self, client, pending, crew_b, crew_headers):
        response = await client.post(f"/reclamations/{pending.id}/accept", headers=crew_headers(crew_b))

        assert response.status_code == 403
        assert response.json()["error"] == "not_owner"

    @pytest.mark.asyncio
    async def test_actor_without_crew_forbidden(self, client, pending, admin_headers):
        response = await client.post(f"/reclamations/{pending.id}/accept", headers=admin_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_reject_take_start_complete(
        self, client, pending, crew_a, crew_b, crew_headers, admin_headers
    ):
        rejected = await client.post(
            f"/reclamations/{pending.id}/reject",
            json={"reason": "Our lift is in for repairs"},
            headers=crew_headers(crew_a),
        )
        assert rejected.status_code == 200
        assert rejected.json()["status"] == "rejected"

        pool = await client.get(
            "/reclamations/", params={"scope": "available"}, headers=crew_headers(crew_b)
        )
        assert [r["id"] for r in pool.json()] == [str(pending.id)]

        counts = await client.get("/reclamations/count", headers=crew_headers(crew_b))
        assert counts.json() == {"assigned": 0, "available": 1}

        taken = await client.post(f"/reclamations/{pending.id}/take", headers=crew_headers(crew_b))
        assert taken.status_code == 200
        assert taken.json()["current_crew_id"] == str(crew_b.id)

        started = await client.post(f"/reclamations/{pending.id}/start", headers=crew_headers(crew_b))
        assert started.json()["status"] == "in_progress"

        completed = await client.post(
            f"/reclamations/{pending.id}/complete",
            json={"notes": "Resealed the box"},
            headers=crew_headers(crew_b),
        )
        assert completed.status_code == 200
        assert completed.json()["status"] == "completed"
        assert completed.json()["resolution_notes"] == "Resealed the box"

        project = await client.get(f"/projects/{pending.project_id}", headers=admin_headers)
        assert project.json()["under_reclamation"] is False

        history = await client.get(f"/reclamations/{pending.id}/history", headers=admin_headers)
        assert [e["action"] for e in history.json()] == [
            "created",
            "rejected",
            "accepted",
            "started",
            "completed",
        ]

    @pytest.mark.asyncio
    async def test_reject_short_reason(self, client, pending, crew_a, crew_headers):
        response = await client.post(
            f"/reclamations/{pending.id}/reject",
            json={"reason": "no"},
            headers=crew_headers(crew_a),
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_complete_without_body(self, client, pending, crew_a, crew_headers):
        await client.post(f"/reclamations/{pending.id}/accept", headers=crew_headers(crew_a))

        response = await client.post(f"/reclamations/{pending.id}/complete", headers=crew_headers(crew_a))

        assert response.status_code == 200
        assert response.json()["resolution_notes"] is None

    @pytest.mark.asyncio
    async def test_actions_on_completed_are_conflicts(self, client, pending, crew_a, crew_b, crew_headers):
        await client.post(f"/reclamations/{pending.id}/accept", headers=crew_headers(crew_a))
        await client.post(f"/reclamations/{pending.id}/complete", headers=crew_headers(crew_a))

        accept = await client.post(f"/reclamations/{pending.id}/accept", headers=crew_headers(crew_a))
        take = await client.post(f"/reclamations/{pending.id}/take", headers=crew_headers(crew_b))

        assert accept.status_code == 409
        assert accept.json()["error"] == "invalid_state"
        assert take.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_reclamation(self, client, crew_a, crew_headers):
        response = await client.get(f"/reclamations/{uuid4()}", headers=crew_headers(crew_a))

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_scope(self, client, crew_a, crew_headers):
        response = await client.get(
            "/reclamations/", params={"scope": "everything"}, headers=crew_headers(crew_a)
        )

        assert response.status_code == 422


class TestAdminFlow:
    """Test reassign and cancel endpoints."""

    @pytest.mark.asyncio
    async def test_reassign(self, client, pending, crew_b, admin_headers, today):
        new_deadline = (today + timedelta(days=10)).isoformat()

        response = await client.patch(
            f"/reclamations/{pending.id}",
            json={"crew_id": str(crew_b.id), "deadline": new_deadline},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["current_crew_id"] == str(crew_b.id)
        assert data["status"] == "pending"
        assert data["deadline"] == new_deadline

    @pytest.mark.asyncio
    async def test_reassign_to_foreign_crew(self, client, pending, foreign_crew, admin_headers):
        response = await client.patch(
            f"/reclamations/{pending.id}",
            json={"crew_id": str(foreign_crew.id)},
            headers=admin_headers,
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_cancel(self, client, pending, admin_headers):
        response = await client.delete(f"/reclamations/{pending.id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        project = await client.get(f"/projects/{pending.project_id}", headers=admin_headers)
        assert project.json()["effective_status"] == "work_completed"

    @pytest.mark.asyncio
    async def test_cancel_requires_admin(self, client, pending, leader_headers):
        response = await client.delete(f"/reclamations/{pending.id}", headers=leader_headers)

        assert response.status_code == 403
