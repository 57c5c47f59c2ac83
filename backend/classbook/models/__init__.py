"""Pydantic models (schemas) for the application."""

from classbook.models.enums import (
    ConflictResource,
    EnrollmentStatus,
    RecurrenceFrequency,
    ViewerRole,
)
from classbook.models.recurrence import RecurrenceDescriptor, ScheduleParams
from classbook.models.meeting import (
    DegradedRecurrenceWarning,
    Meeting,
    MeetingCreate,
    Occurrence,
)
from classbook.models.enrollment import (
    Enrollment,
    EnrollmentStats,
    Section,
    SectionCreate,
    WithdrawalResult,
)
from classbook.models.schedule import Conflict, ConflictReport, ScheduleResult, Viewer

__all__ = [
    # Enums
    "ConflictResource",
    "EnrollmentStatus",
    "RecurrenceFrequency",
    "ViewerRole",
    # Recurrence
    "RecurrenceDescriptor",
    "ScheduleParams",
    # Meeting
    "DegradedRecurrenceWarning",
    "Meeting",
    "MeetingCreate",
    "Occurrence",
    # Enrollment
    "Enrollment",
    "EnrollmentStats",
    "Section",
    "SectionCreate",
    "WithdrawalResult",
    # Schedule
    "Conflict",
    "ConflictReport",
    "ScheduleResult",
    "Viewer",
]
