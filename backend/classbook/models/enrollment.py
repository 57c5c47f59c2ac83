"""
Section and enrollment models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from classbook.models.enums import ACTIVE_ENROLLMENT_STATUSES, EnrollmentStatus
from classbook.utils.datetime_utils import ensure_utc


class Enrollment(BaseModel):
    """One enrollment attempt of a student in a section.

    Records are never deleted; cancellation is a status transition.
    """

    id: str
    section_id: str
    student_id: str
    status: EnrollmentStatus
    enrolled_at: datetime = Field(..., description="When enrollment was requested (FIFO key)")
    sequence: int = Field(0, ge=0, description="Insertion order within the section")
    promoted_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None

    class Config:
        from_attributes = True

    @field_validator("enrolled_at", "promoted_at", "cancelled_at")
    @classmethod
    def normalize_to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_ENROLLMENT_STATUSES

    @property
    def fifo_key(self) -> tuple[datetime, int]:
        return (self.enrolled_at, self.sequence)


class SectionBase(BaseModel):
    """Base fields for sections."""

    name: Optional[str] = Field(None, max_length=200)
    capacity: int = Field(..., ge=0)
    room_id: Optional[str] = None
    room_capacity: Optional[int] = Field(None, ge=0, description="Capacity of the assigned room, when known")


class SectionCreate(SectionBase):
    """Create a new section."""

    pass


class Section(SectionBase):
    """Section with its enrollment records."""

    id: str
    enrollments: list[Enrollment] = Field(default_factory=list)

    class Config:
        from_attributes = True

    def active_enrollment_for(self, student_id: str) -> Optional[Enrollment]:
        for enrollment in self.enrollments:
            if enrollment.student_id == student_id and enrollment.is_active:
                return enrollment
        return None

    def has_enrolled(self, student_ids) -> bool:
        """Return True if any of the given students holds an enrolled seat."""
        wanted = set(student_ids)
        return any(
            e.status == EnrollmentStatus.ENROLLED and e.student_id in wanted
            for e in self.enrollments
        )


class EnrollmentStats(BaseModel):
    """Read-only enrollment statistics for a section."""

    capacity: int
    enrolled_count: int
    waitlisted_count: int
    cancelled_count: int
    available_slots: int
    utilization_rate: float = Field(..., description="enrolled / capacity, 0 when capacity is 0")
    is_over_capacity: bool = False


class WithdrawalResult(BaseModel):
    """Outcome of a withdrawal: the cancelled record plus any promotions."""

    withdrawn: Enrollment
    promoted: list[Enrollment] = Field(default_factory=list)


class EnrollmentRequest(BaseModel):
    """Request body for creating an enrollment."""

    student_id: str = Field(..., min_length=1)
    requested_at: Optional[datetime] = None
