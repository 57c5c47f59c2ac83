"""
Conflict detector.

Finds occurrences of existing meetings that overlap a candidate meeting on a
shared room or teacher.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Optional

from classbook.core.config import get_settings
from classbook.core.exceptions import InvalidWindowError, ValidationError
from classbook.core.logger import setup_logger
from classbook.models.enums import ConflictResource
from classbook.models.meeting import Meeting, Occurrence
from classbook.models.schedule import Conflict, ConflictReport
from classbook.services.recurrence_expander import (
    awareness_mismatch,
    expand,
    last_occurrence_end,
    same_awareness,
)

logger = setup_logger(__name__)


def shared_resources(candidate: Meeting, other: Meeting) -> list[tuple[ConflictResource, str]]:
    """Resources assigned to both meetings: the room first, then teachers in sorted order.

    Unassigned resources are never shared, so two meetings without a room
    and without teachers have nothing in common.
    """
    shared: list[tuple[ConflictResource, str]] = []
    if candidate.room_id and candidate.room_id == other.room_id:
        shared.append((ConflictResource.ROOM, candidate.room_id))
    for teacher_id in sorted(set(candidate.teacher_ids) & set(other.teacher_ids)):
        shared.append((ConflictResource.TEACHER, teacher_id))
    return shared


def overlaps(a: Occurrence, b: Occurrence) -> bool:
    """Half-open overlap; back-to-back occurrences do not overlap."""
    return a.start < b.end and a.end > b.start


class ConflictDetector:
    """Detects room and teacher double-booking for a candidate meeting."""

    def __init__(self, horizon_days: Optional[int] = None):
        """
        Initialize detector.

        Args:
            horizon_days: Cap on the derived comparison window
                (default: CONFLICT_HORIZON_DAYS setting)
        """
        if horizon_days is None:
            horizon_days = get_settings().CONFLICT_HORIZON_DAYS
        self.horizon = timedelta(days=horizon_days)

    def default_window(
        self,
        candidate: Meeting,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> tuple[datetime, datetime]:
        """Fill in missing window bounds from the candidate's active range.

        Every conflict involves a candidate occurrence, so the range of the
        candidate bounds the search; existing occurrences that straddle its
        start still intersect the window. The start defaults to the
        candidate's base start. The end defaults to the end of its last
        occurrence, capped at ``start + horizon``; an open-ended candidate
        reaches the cap.
        """
        if window_start is None:
            window_start = candidate.start_time
            if window_end is not None:
                window_start = min(window_start, window_end)
        if window_end is None:
            cap = window_start + self.horizon
            candidate_end = last_occurrence_end(candidate)
            window_end = cap if candidate_end is None else min(candidate_end, cap)
            window_end = max(window_end, window_start)
        return window_start, window_end

    def find_conflicts(
        self,
        candidate: Meeting,
        existing_meetings: Iterable[Meeting],
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> ConflictReport:
        """
        Report every overlap between the candidate and existing meetings.

        One Conflict is produced per occurrence pair and per shared resource.
        The candidate may be hypothetical; an existing meeting with the
        candidate's id is ignored so a meeting never conflicts with itself.

        Existing meetings whose times cannot be compared with the window
        (naive against aware) are skipped and reported in ``warnings``.

        Raises:
            InvalidWindowError: if window_start is after window_end.
            ValidationError: if a given bound and the candidate are not both
                naive or both aware.
        """
        for bound in (window_start, window_end):
            if bound is not None and not same_awareness(bound, candidate.start_time):
                raise ValidationError(
                    f"Meeting {candidate.id} and the comparison window must both be naive or both be aware"
                )
        if window_start is not None and window_end is not None and window_start > window_end:
            raise InvalidWindowError(window_start, window_end)

        relevant: list[tuple[Meeting, list[tuple[ConflictResource, str]]]] = []
        for other in existing_meetings:
            if other.id == candidate.id:
                continue
            resources = shared_resources(candidate, other)
            if resources:
                relevant.append((other, resources))

        window_start, window_end = self.default_window(candidate, window_start, window_end)
        report = ConflictReport(window_start=window_start, window_end=window_end)

        candidate_expansion = expand(candidate, window_start, window_end)
        if candidate_expansion.warning:
            report.warnings.append(candidate_expansion.warning)
        candidate_occurrences = list(candidate_expansion)
        if not relevant:
            return report

        for other, resources in relevant:
            mismatch = awareness_mismatch(other, window_start)
            if mismatch:
                report.warnings.append(mismatch)
                continue
            other_expansion = expand(other, window_start, window_end)
            if other_expansion.warning:
                report.warnings.append(other_expansion.warning)
            if not candidate_occurrences:
                continue
            other_occurrences = list(other_expansion)
            for mine in candidate_occurrences:
                for theirs in other_occurrences:
                    if theirs.start >= mine.end:
                        break
                    if not overlaps(mine, theirs):
                        continue
                    for resource_type, resource_id in resources:
                        report.conflicts.append(
                            Conflict(
                                meeting_id=other.id,
                                candidate_meeting_id=candidate.id,
                                conflict_time=mine.start,
                                candidate_end=mine.end,
                                existing_start=theirs.start,
                                existing_end=theirs.end,
                                resource_type=resource_type,
                                resource_id=resource_id,
                            )
                        )

        resource_rank = {ConflictResource.ROOM: 0, ConflictResource.TEACHER: 1}
        report.conflicts.sort(
            key=lambda c: (
                c.conflict_time,
                c.existing_start,
                c.meeting_id,
                resource_rank[c.resource_type],
                c.resource_id,
            )
        )
        if report.conflicts:
            logger.info(
                "Meeting %s has %d conflict(s) between %s and %s",
                candidate.id,
                len(report.conflicts),
                window_start.isoformat(),
                window_end.isoformat(),
            )
        return report


def find_conflicts(
    candidate: Meeting,
    existing_meetings: Iterable[Meeting],
    window_start: Optional[datetime] = None,
    window_end: Optional[datetime] = None,
) -> ConflictReport:
    """Module-level shortcut using the configured horizon."""
    return ConflictDetector().find_conflicts(candidate, existing_meetings, window_start, window_end)
