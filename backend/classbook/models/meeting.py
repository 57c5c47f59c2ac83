"""
Meeting models.

A meeting is the scheduled definition of a section's class time; an
occurrence is one concrete dated instance generated from it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from classbook.models.recurrence import RecurrenceDescriptor


class MeetingBase(BaseModel):
    """Base fields for meetings."""

    section_id: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    is_recurring: bool = False
    recurrence_rule: Optional[str] = Field(
        None, description="Encoded RecurrenceDescriptor, required when is_recurring"
    )
    exceptions: list[date] = Field(
        default_factory=list, description="Calendar dates with no occurrence"
    )
    room_id: Optional[str] = None
    teacher_ids: list[str] = Field(default_factory=list)

    @field_validator("recurrence_rule", mode="before")
    @classmethod
    def encode_descriptor(cls, value):
        if isinstance(value, RecurrenceDescriptor):
            return value.encode()
        return value

    @field_validator("exceptions", mode="before")
    @classmethod
    def reduce_exceptions_to_dates(cls, value):
        if value is None:
            return []
        return [item.date() if isinstance(item, datetime) else item for item in value]

    @field_validator("exceptions")
    @classmethod
    def dedupe_exceptions(cls, value: list[date]) -> list[date]:
        return sorted(set(value))

    @field_validator("teacher_ids")
    @classmethod
    def dedupe_teacher_ids(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    @model_validator(mode="after")
    def validate_time_range(self):
        if (self.start_time.tzinfo is None) != (self.end_time.tzinfo is None):
            raise ValueError("start_time and end_time must both be naive or both be aware")
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self

    @property
    def duration(self):
        return self.end_time - self.start_time


class MeetingCreate(MeetingBase):
    """Create a new meeting."""

    pass


class Meeting(MeetingBase):
    """Meeting definition with identity."""

    id: str = Field(..., min_length=1)

    class Config:
        from_attributes = True


@dataclass(frozen=True)
class Occurrence:
    """One concrete instance of a meeting.

    Two occurrences are equal when they come from the same meeting and start
    at the same instant.
    """

    meeting_id: str
    start: datetime
    end: datetime = field(compare=False)
    section_id: Optional[str] = field(default=None, compare=False)


class DegradedRecurrenceWarning(BaseModel):
    """A recurring meeting whose rule could not be used.

    The meeting was expanded as a single occurrence instead.
    """

    meeting_id: str
    rule: Optional[str] = None
    reason: str
