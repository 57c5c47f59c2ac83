"""
Custom exceptions for the application.
"""

from typing import Any, Optional


class ClassbookError(Exception):
    """Base exception for classbook."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(ClassbookError):
    """Resource not found."""

    pass


class DuplicateError(ClassbookError):
    """Duplicate resource detected."""

    pass


class DuplicateActiveEnrollmentError(DuplicateError):
    """Student already holds an enrolled or waitlisted record in the section."""

    def __init__(self, section_id: str, student_id: str, enrollment_id: str):
        super().__init__(
            f"Student {student_id} already has an active enrollment in section {section_id}",
            details={
                "section_id": section_id,
                "student_id": student_id,
                "enrollment_id": enrollment_id,
            },
        )
        self.section_id = section_id
        self.student_id = student_id
        self.enrollment_id = enrollment_id


class ValidationError(ClassbookError):
    """Validation error."""

    pass


class InvalidRecurrenceError(ValidationError):
    """Recurrence parameters or encoded rule text are invalid."""

    pass


class InvalidWindowError(ValidationError):
    """Query window starts after it ends."""

    def __init__(self, window_start: Any, window_end: Any):
        super().__init__(
            f"Window start {window_start} is after window end {window_end}",
            details={"window_start": str(window_start), "window_end": str(window_end)},
        )


class InfrastructureError(ClassbookError):
    """Infrastructure-related error (DB, external services, etc.)."""

    pass


class BusinessLogicError(ClassbookError):
    """Business logic constraint violation."""

    pass
