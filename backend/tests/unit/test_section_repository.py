"""
Unit tests for section repository.
"""

from datetime import datetime, timezone

import pytest

from classbook.core.exceptions import NotFoundError
from classbook.infrastructure.local.section_repository import SqliteSectionRepository
from classbook.models.enrollment import Enrollment, SectionCreate
from classbook.models.enums import EnrollmentStatus


def _enrollment(section_id: str, enrollment_id: str, student_id: str, sequence: int, **kwargs) -> Enrollment:
    return Enrollment(
        id=enrollment_id,
        section_id=section_id,
        student_id=student_id,
        status=kwargs.pop("status", EnrollmentStatus.ENROLLED),
        enrolled_at=datetime(2024, 9, 1, 8, sequence, tzinfo=timezone.utc),
        sequence=sequence,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_create_and_get_section(session_factory):
    """Test creating a section."""
    repo = SqliteSectionRepository(session_factory=session_factory)

    created = await repo.create(SectionCreate(name="Algebra I", capacity=25, room_id="room_a", room_capacity=20))
    fetched = await repo.get(created.id)

    assert fetched.name == "Algebra I"
    assert fetched.capacity == 25
    assert fetched.room_id == "room_a"
    assert fetched.room_capacity == 20
    assert fetched.enrollments == []


@pytest.mark.asyncio
async def test_save_enrollments_inserts_and_updates(session_factory):
    """Test that saving enrollments upserts by id."""
    repo = SqliteSectionRepository(session_factory=session_factory)
    section = await repo.create(SectionCreate(capacity=1))

    first = _enrollment(section.id, "e1", "A", 0)
    second = _enrollment(section.id, "e2", "B", 1, status=EnrollmentStatus.WAITLISTED)
    await repo.save_enrollments(section.id, [second, first])

    fetched = await repo.get(section.id)
    assert [e.id for e in fetched.enrollments] == ["e1", "e2"]
    assert fetched.enrollments[0].enrolled_at == datetime(2024, 9, 1, 8, 0, tzinfo=timezone.utc)

    cancelled_at = datetime(2024, 9, 2, 12, 0, tzinfo=timezone.utc)
    await repo.save_enrollments(
        section.id,
        [
            first.model_copy(
                update={
                    "status": EnrollmentStatus.CANCELLED,
                    "cancelled_at": cancelled_at,
                    "cancelled_by": "admin",
                }
            )
        ],
    )

    fetched = await repo.get(section.id)
    assert fetched.enrollments[0].status == EnrollmentStatus.CANCELLED
    assert fetched.enrollments[0].cancelled_at == cancelled_at
    assert fetched.enrollments[0].cancelled_by == "admin"
    assert fetched.enrollments[1].status == EnrollmentStatus.WAITLISTED


@pytest.mark.asyncio
async def test_save_enrollments_for_missing_section(session_factory):
    repo = SqliteSectionRepository(session_factory=session_factory)
    with pytest.raises(NotFoundError):
        await repo.save_enrollments("missing", [_enrollment("missing", "e1", "A", 0)])


@pytest.mark.asyncio
async def test_get_by_enrollment(session_factory):
    """Test finding the section that owns an enrollment."""
    repo = SqliteSectionRepository(session_factory=session_factory)
    section = await repo.create(SectionCreate(capacity=2))
    await repo.save_enrollments(section.id, [_enrollment(section.id, "e1", "A", 0)])

    owner = await repo.get_by_enrollment("e1")

    assert owner.id == section.id
    assert await repo.get_by_enrollment("missing") is None


@pytest.mark.asyncio
async def test_list_sections(session_factory):
    repo = SqliteSectionRepository(session_factory=session_factory)
    a = await repo.create(SectionCreate(name="A", capacity=1))
    b = await repo.create(SectionCreate(name="B", capacity=1))

    assert {s.id for s in await repo.list()} == {a.id, b.id}
    assert [s.id for s in await repo.list(section_ids=[b.id])] == [b.id]
    assert await repo.list(section_ids=[]) == []
