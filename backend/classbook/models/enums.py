"""
Enum definitions for the application.

These enums are used across models and provide type-safe status values.
"""

from enum import Enum


class RecurrenceFrequency(str, Enum):
    """Supported recurrence frequencies."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class EnrollmentStatus(str, Enum):
    """
    Enrollment status.

    ENROLLED and WAITLISTED are active; CANCELLED is terminal for the record.
    """

    ENROLLED = "enrolled"
    WAITLISTED = "waitlisted"
    CANCELLED = "cancelled"


ACTIVE_ENROLLMENT_STATUSES = frozenset(
    {EnrollmentStatus.ENROLLED, EnrollmentStatus.WAITLISTED}
)


class ViewerRole(str, Enum):
    """Role of the person looking at a schedule."""

    ADMIN = "admin"
    STAFF = "staff"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"


FULL_VISIBILITY_ROLES = frozenset({ViewerRole.ADMIN, ViewerRole.STAFF})


class ConflictResource(str, Enum):
    """Resource shared by two overlapping meetings."""

    ROOM = "room"
    TEACHER = "teacher"
