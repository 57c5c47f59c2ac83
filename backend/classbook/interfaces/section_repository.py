"""
Section repository interface.

Defines contract for section and enrollment persistence operations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from classbook.models.enrollment import Enrollment, Section, SectionCreate


class ISectionRepository(ABC):
    """Abstract interface for sections and their enrollment records."""

    @abstractmethod
    async def create(self, data: SectionCreate) -> Section:
        """Create a new section with no enrollments."""
        pass

    @abstractmethod
    async def get(self, section_id: str) -> Optional[Section]:
        """Get a section with all of its enrollment records."""
        pass

    @abstractmethod
    async def list(self, section_ids: Optional[list[str]] = None) -> list[Section]:
        """List sections, optionally restricted to the given ids."""
        pass

    @abstractmethod
    async def get_by_enrollment(self, enrollment_id: str) -> Optional[Section]:
        """Get the section owning an enrollment record."""
        pass

    @abstractmethod
    async def save_enrollments(self, section_id: str, enrollments: list[Enrollment]) -> None:
        """Insert or update the given enrollment records of a section."""
        pass
