"""
Schedule query models: viewers, aggregated schedules and conflict reports.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from classbook.models.enums import ConflictResource, ViewerRole
from classbook.models.meeting import DegradedRecurrenceWarning, MeetingCreate, Occurrence


class Viewer(BaseModel):
    """Identity and role of whoever is looking at a schedule.

    Resolved upstream by the auth collaborator.
    """

    id: str
    role: ViewerRole
    linked_student_ids: list[str] = Field(
        default_factory=list, description="Students a parent/guardian may see"
    )


class ScheduleResult(BaseModel):
    """Occurrences visible to a viewer within a window."""

    window_start: datetime
    window_end: datetime
    occurrences: list[Occurrence] = Field(default_factory=list)
    warnings: list[DegradedRecurrenceWarning] = Field(default_factory=list)


class Conflict(BaseModel):
    """An overlap between a candidate occurrence and an existing one on one resource."""

    meeting_id: str = Field(..., description="Existing meeting that conflicts")
    candidate_meeting_id: str
    conflict_time: datetime = Field(..., description="Start of the candidate occurrence")
    candidate_end: datetime
    existing_start: datetime
    existing_end: datetime
    resource_type: ConflictResource
    resource_id: str


class ConflictReport(BaseModel):
    """Conflicts found for a candidate meeting within a comparison window."""

    window_start: datetime
    window_end: datetime
    conflicts: list[Conflict] = Field(default_factory=list)
    warnings: list[DegradedRecurrenceWarning] = Field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


class ConflictCheckRequest(BaseModel):
    """Request body for checking a hypothetical meeting."""

    candidate: MeetingCreate
    candidate_id: Optional[str] = Field(
        None, description="Id of the meeting being rescheduled, if it already exists"
    )
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None


class RecurrenceBuildResponse(BaseModel):
    """Encoded rule plus its human readable description."""

    rule: str
    description: str
