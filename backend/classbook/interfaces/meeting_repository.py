"""
Meeting repository interface.

Defines contract for meeting persistence operations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from classbook.models.meeting import Meeting, MeetingCreate


class IMeetingRepository(ABC):
    """Abstract interface for meeting persistence."""

    @abstractmethod
    async def create(self, data: MeetingCreate) -> Meeting:
        """Create a new meeting."""
        pass

    @abstractmethod
    async def get(self, meeting_id: str) -> Optional[Meeting]:
        """Get a meeting by ID."""
        pass

    @abstractmethod
    async def list(
        self,
        section_id: Optional[str] = None,
        room_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> list[Meeting]:
        """List meetings, optionally filtered by section, room or teacher."""
        pass

    @abstractmethod
    async def update(self, meeting_id: str, data: MeetingCreate) -> Meeting:
        """Replace a meeting's schedule and assignments."""
        pass

    @abstractmethod
    async def delete(self, meeting_id: str) -> bool:
        """Delete a meeting."""
        pass
