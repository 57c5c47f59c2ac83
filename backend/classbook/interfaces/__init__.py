"""Abstract interfaces for infrastructure abstraction."""

from classbook.interfaces.meeting_repository import IMeetingRepository
from classbook.interfaces.section_repository import ISectionRepository

__all__ = [
    "IMeetingRepository",
    "ISectionRepository",
]
