"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the correct
infrastructure implementations based on environment configuration.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from classbook.interfaces.meeting_repository import IMeetingRepository
from classbook.interfaces.section_repository import ISectionRepository
from classbook.models.enums import ViewerRole
from classbook.models.schedule import Viewer
from classbook.services.enrollment_service import EnrollmentService


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_meeting_repository() -> IMeetingRepository:
    """Get meeting repository instance."""
    from classbook.infrastructure.local.meeting_repository import SqliteMeetingRepository

    return SqliteMeetingRepository()


@lru_cache()
def get_section_repository() -> ISectionRepository:
    """Get section repository instance."""
    from classbook.infrastructure.local.section_repository import SqliteSectionRepository

    return SqliteSectionRepository()


@lru_cache()
def get_enrollment_service() -> EnrollmentService:
    """Get the process-wide enrollment service.

    A single instance owns the per-section locks, so it must be shared.
    """
    return EnrollmentService(get_section_repository())


# ===========================================
# Viewer Identity
# ===========================================


async def get_current_viewer(
    x_viewer_id: Annotated[str | None, Header()] = None,
    x_viewer_role: Annotated[str | None, Header()] = None,
    x_linked_student_ids: Annotated[str | None, Header()] = None,
) -> Viewer:
    """
    Get the viewer resolved by the upstream auth layer.

    The gateway authenticates the caller and forwards identity headers;
    this service trusts them as given.
    """
    if not x_viewer_id or not x_viewer_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Viewer identity headers required",
        )

    try:
        role = ViewerRole(x_viewer_role.strip().lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown viewer role '{x_viewer_role}'",
        )

    linked = [s.strip() for s in (x_linked_student_ids or "").split(",") if s.strip()]
    return Viewer(id=x_viewer_id, role=role, linked_student_ids=linked)


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

MeetingRepo = Annotated[IMeetingRepository, Depends(get_meeting_repository)]
SectionRepo = Annotated[ISectionRepository, Depends(get_section_repository)]
EnrollmentSvc = Annotated[EnrollmentService, Depends(get_enrollment_service)]
CurrentViewer = Annotated[Viewer, Depends(get_current_viewer)]
