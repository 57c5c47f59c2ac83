"""
Recurrence models.

Defines the repeating schedule rule attached to recurring meetings.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from classbook.core.exceptions import InvalidRecurrenceError
from classbook.models.enums import RecurrenceFrequency


class ScheduleParams(BaseModel):
    """Raw schedule parameters as entered by a scheduler."""

    frequency: RecurrenceFrequency
    interval: Optional[int] = Field(None, description="Repeat every N periods, default 1")
    weekdays: Optional[list[int]] = Field(
        None, description="0=Sunday ... 6=Saturday, required for WEEKLY"
    )
    end_date: Optional[date] = None
    count: Optional[int] = None


class RecurrenceDescriptor(BaseModel):
    """Canonical, immutable recurrence rule.

    Built through ``build_descriptor`` or ``parse_descriptor``; both produce
    normalized values so equal rules compare equal.
    """

    model_config = ConfigDict(frozen=True)

    frequency: RecurrenceFrequency
    interval: int = Field(1, ge=1)
    weekdays: tuple[int, ...] = Field(
        default=(), description="0=Sunday ... 6=Saturday, only used for WEEKLY"
    )
    until: Optional[date] = None
    count: Optional[int] = Field(None, ge=1)

    @model_validator(mode="before")
    @classmethod
    def drop_weekdays_unless_weekly(cls, data):
        if isinstance(data, dict) and data.get("frequency") is not None:
            if RecurrenceFrequency(data["frequency"]) != RecurrenceFrequency.WEEKLY:
                data = {**data, "weekdays": ()}
        return data

    @field_validator("weekdays", mode="before")
    @classmethod
    def normalize_weekdays(cls, value):
        if value is None:
            return ()
        days = tuple(sorted(set(value)))
        if any(day < 0 or day > 6 for day in days):
            raise ValueError("weekdays must be between 0 (Sunday) and 6 (Saturday)")
        return days

    @model_validator(mode="after")
    def validate_bounds(self):
        if self.until is not None and self.count is not None:
            raise ValueError("until and count are mutually exclusive")
        return self

    @property
    def is_open_ended(self) -> bool:
        return self.until is None and self.count is None

    # -------------------------------------------
    # Encoded rule text
    # -------------------------------------------

    def encode(self) -> str:
        """Encode as ``FREQ=WEEKLY;INTERVAL=1;BYDAY=MO,FR;COUNT=16``."""
        parts = [f"FREQ={self.frequency.value.upper()}", f"INTERVAL={self.interval}"]
        if self.weekdays:
            parts.append("BYDAY=" + ",".join(WEEKDAY_CODES[day] for day in self.weekdays))
        if self.until is not None:
            parts.append(f"UNTIL={self.until.strftime('%Y%m%d')}")
        if self.count is not None:
            parts.append(f"COUNT={self.count}")
        return ";".join(parts)

    @classmethod
    def decode(cls, text: str) -> "RecurrenceDescriptor":
        """Decode rule text produced by ``encode``.

        Keys are case-insensitive and may appear in any order. An optional
        ``RRULE:`` prefix is tolerated.
        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidRecurrenceError("Recurrence rule is empty")

        body = text.strip()
        if body.upper().startswith("RRULE:"):
            body = body[len("RRULE:"):]

        fields: dict[str, str] = {}
        for part in body.split(";"):
            if not part:
                continue
            key, sep, value = part.partition("=")
            key = key.strip().upper()
            if not sep or not key or not value.strip():
                raise InvalidRecurrenceError(f"Malformed rule part '{part}'")
            if key in fields:
                raise InvalidRecurrenceError(f"Duplicate rule key '{key}'")
            fields[key] = value.strip()

        unknown = set(fields) - _RULE_KEYS
        if unknown:
            raise InvalidRecurrenceError(f"Unsupported rule keys: {', '.join(sorted(unknown))}")
        if "FREQ" not in fields:
            raise InvalidRecurrenceError("Rule is missing FREQ")

        try:
            data: dict = {"frequency": RecurrenceFrequency(fields["FREQ"].lower())}
            if "INTERVAL" in fields:
                data["interval"] = int(fields["INTERVAL"])
            if "BYDAY" in fields:
                data["weekdays"] = [
                    WEEKDAY_CODES.index(code.strip().upper())
                    for code in fields["BYDAY"].split(",")
                ]
            if "UNTIL" in fields:
                data["until"] = datetime.strptime(fields["UNTIL"][:8], "%Y%m%d").date()
            if "COUNT" in fields:
                data["count"] = int(fields["COUNT"])
            return cls(**data)
        except (ValueError, PydanticValidationError) as exc:
            raise InvalidRecurrenceError(f"Invalid recurrence rule '{text}': {exc}") from exc


WEEKDAY_CODES = ("SU", "MO", "TU", "WE", "TH", "FR", "SA")
WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

_RULE_KEYS = {"FREQ", "INTERVAL", "BYDAY", "UNTIL", "COUNT"}
