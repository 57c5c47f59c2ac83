"""
Section and enrollment API endpoints.
"""

from fastapi import APIRouter, HTTPException, status

from classbook.api.deps import EnrollmentSvc, SectionRepo
from classbook.core.exceptions import DuplicateError, NotFoundError
from classbook.models.enrollment import (
    Enrollment,
    EnrollmentRequest,
    EnrollmentStats,
    Section,
    SectionCreate,
)

router = APIRouter()


@router.post("", response_model=Section, status_code=status.HTTP_201_CREATED)
async def create_section(payload: SectionCreate, repo: SectionRepo) -> Section:
    """Create a section."""
    return await repo.create(payload)


@router.get("/{section_id}", response_model=Section)
async def get_section(section_id: str, repo: SectionRepo) -> Section:
    """Get a section with all of its enrollment records."""
    section = await repo.get(section_id)
    if not section:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Section {section_id} not found",
        )
    return section


@router.get("/{section_id}/stats", response_model=EnrollmentStats)
async def get_section_stats(section_id: str, service: EnrollmentSvc) -> EnrollmentStats:
    """Get enrollment statistics for a section."""
    try:
        return await service.stats(section_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.post(
    "/{section_id}/enrollments",
    response_model=Enrollment,
    status_code=status.HTTP_201_CREATED,
)
async def request_enrollment(
    section_id: str,
    payload: EnrollmentRequest,
    service: EnrollmentSvc,
) -> Enrollment:
    """Enroll a student, or waitlist them when the section is full."""
    try:
        return await service.request_enrollment(
            section_id,
            payload.student_id,
            requested_at=payload.requested_at,
        )
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except DuplicateError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )


@router.post("/{section_id}/promote", response_model=list[Enrollment])
async def promote_from_waitlist(section_id: str, service: EnrollmentSvc) -> list[Enrollment]:
    """Fill free seats from the waitlist in FIFO order."""
    try:
        return await service.promote_from_waitlist(section_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
