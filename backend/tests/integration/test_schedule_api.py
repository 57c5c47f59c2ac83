"""
Integration tests for the scheduling and enrollment HTTP API.

Runs the FastAPI app in-process against an in-memory SQLite database.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from classbook.api.deps import (
    get_enrollment_service,
    get_meeting_repository,
    get_section_repository,
)
from classbook.infrastructure.local.meeting_repository import SqliteMeetingRepository
from classbook.infrastructure.local.section_repository import SqliteSectionRepository
from classbook.main import create_app
from classbook.services.enrollment_service import EnrollmentService

ADMIN = {"X-Viewer-Id": "admin1", "X-Viewer-Role": "admin"}


@pytest.fixture
async def client(session_factory):
    meeting_repo = SqliteMeetingRepository(session_factory=session_factory)
    section_repo = SqliteSectionRepository(session_factory=session_factory)
    service = EnrollmentService(section_repo)

    app = create_app()
    app.dependency_overrides[get_meeting_repository] = lambda: meeting_repo
    app.dependency_overrides[get_section_repository] = lambda: section_repo
    app.dependency_overrides[get_enrollment_service] = lambda: service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def _create_section(client, capacity: int) -> str:
    response = await client.post("/api/sections", json={"name": "Physics", "capacity": capacity})
    assert response.status_code == 201, response.text
    return response.json()["id"]


async def _create_meeting(client, section_id: str, **overrides) -> dict:
    payload = {
        "section_id": section_id,
        "start_time": "2024-10-25T16:00:00",
        "end_time": "2024-10-25T17:30:00",
        "is_recurring": True,
        "recurrence_rule": "FREQ=WEEKLY;INTERVAL=1;BYDAY=FR;COUNT=16",
        "exceptions": ["2024-11-29"],
        "room_id": "room_a",
        "teacher_ids": ["t1"],
    }
    payload.update(overrides)
    response = await client.post("/api/meetings", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_build_rule_endpoint(client):
    response = await client.post(
        "/api/recurrence/build",
        json={"frequency": "weekly", "weekdays": [5], "count": 16},
    )

    assert response.status_code == 200
    assert response.json() == {
        "rule": "FREQ=WEEKLY;INTERVAL=1;BYDAY=FR;COUNT=16",
        "description": "every week on Friday for 16 times",
    }


@pytest.mark.asyncio
async def test_schedule_visibility_by_role(client):
    section_id = await _create_section(client, capacity=1)
    await _create_meeting(client, section_id)

    enroll = await client.post(f"/api/sections/{section_id}/enrollments", json={"student_id": "kid"})
    assert enroll.status_code == 201
    waitlisted = await client.post(f"/api/sections/{section_id}/enrollments", json={"student_id": "late"})
    assert waitlisted.json()["status"] == "waitlisted"

    params = {"start": "2024-10-01T00:00:00", "end": "2025-03-01T00:00:00"}
    admin = await client.get("/api/schedule", params=params, headers=ADMIN)
    student = await client.get(
        "/api/schedule", params=params, headers={"X-Viewer-Id": "kid", "X-Viewer-Role": "student"}
    )
    waiting = await client.get(
        "/api/schedule", params=params, headers={"X-Viewer-Id": "late", "X-Viewer-Role": "student"}
    )
    parent = await client.get(
        "/api/schedule",
        params=params,
        headers={"X-Viewer-Id": "p1", "X-Viewer-Role": "parent", "X-Linked-Student-Ids": "kid"},
    )

    assert len(admin.json()["occurrences"]) == 15
    assert len(student.json()["occurrences"]) == 15
    assert waiting.json()["occurrences"] == []
    assert len(parent.json()["occurrences"]) == 15


@pytest.mark.asyncio
async def test_schedule_requires_viewer(client):
    response = await client.get("/api/schedule", params={"start": "2024-10-01T00:00:00"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_schedule_rejects_inverted_window(client):
    response = await client.get(
        "/api/schedule",
        params={"start": "2024-10-02T00:00:00", "end": "2024-10-01T00:00:00"},
        headers=ADMIN,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_conflict_check(client):
    section_id = await _create_section(client, capacity=5)
    existing = await _create_meeting(client, section_id)

    response = await client.post(
        "/api/meetings/conflicts",
        json={
            "candidate": {
                "section_id": "other",
                "start_time": "2024-11-08T17:00:00",
                "end_time": "2024-11-08T18:00:00",
                "room_id": "room_a",
            }
        },
    )

    assert response.status_code == 200
    conflicts = response.json()["conflicts"]
    assert len(conflicts) == 1
    assert conflicts[0]["meeting_id"] == existing["id"]
    assert conflicts[0]["resource_type"] == "room"


@pytest.mark.asyncio
async def test_withdraw_promotes_waitlist(client):
    section_id = await _create_section(client, capacity=1)
    first = await client.post(f"/api/sections/{section_id}/enrollments", json={"student_id": "A"})
    await client.post(f"/api/sections/{section_id}/enrollments", json={"student_id": "B"})

    duplicate = await client.post(f"/api/sections/{section_id}/enrollments", json={"student_id": "A"})
    assert duplicate.status_code == 409

    response = await client.post(f"/api/enrollments/{first.json()['id']}/withdraw", headers=ADMIN)

    assert response.status_code == 200
    body = response.json()
    assert body["withdrawn"]["cancelled_by"] == "admin1"
    assert [p["student_id"] for p in body["promoted"]] == ["B"]

    stats = await client.get(f"/api/sections/{section_id}/stats")
    assert stats.json()["enrolled_count"] == 1
    assert stats.json()["cancelled_count"] == 1


@pytest.mark.asyncio
async def test_next_occurrence_endpoint(client):
    section_id = await _create_section(client, capacity=1)
    meeting = await _create_meeting(client, section_id)

    response = await client.get(
        f"/api/meetings/{meeting['id']}/next-occurrence",
        params={"after": "2024-11-22T16:00:00"},
    )

    assert response.status_code == 200
    assert response.json()["start"] == "2024-12-06T16:00:00"


@pytest.mark.asyncio
async def test_stats_use_room_capacity(client):
    response = await client.post(
        "/api/sections", json={"name": "Lab", "capacity": 10, "room_id": "lab", "room_capacity": 1}
    )
    section_id = response.json()["id"]
    await client.post(f"/api/sections/{section_id}/enrollments", json={"student_id": "A"})
    second = await client.post(f"/api/sections/{section_id}/enrollments", json={"student_id": "B"})

    assert second.json()["status"] == "waitlisted"
    stats = await client.get(f"/api/sections/{section_id}/stats")
    assert stats.json()["capacity"] == 1
    assert stats.json()["waitlisted_count"] == 1
