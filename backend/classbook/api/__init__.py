"""API routers."""

from classbook.api import (
    enrollments,
    meetings,
    recurrence,
    schedule,
    sections,
)

__all__ = [
    "enrollments",
    "meetings",
    "recurrence",
    "schedule",
    "sections",
]
