"""
Schedule aggregator.

Builds the chronological occurrence list a viewer is allowed to see.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from classbook.models.enrollment import Section
from classbook.models.enums import FULL_VISIBILITY_ROLES, ViewerRole
from classbook.models.meeting import Meeting
from classbook.models.schedule import ScheduleResult, Viewer
from classbook.services.recurrence_expander import expand_many


def is_visible(viewer: Viewer, meeting: Meeting, sections_by_id: dict[str, Section]) -> bool:
    """Whether the viewer may see a meeting.

    Students and parents only see meetings of sections where the student
    holds an enrolled seat; waitlisted and cancelled records do not count.
    """
    if viewer.role in FULL_VISIBILITY_ROLES:
        return True
    if viewer.role == ViewerRole.TEACHER:
        return viewer.id in meeting.teacher_ids

    section = sections_by_id.get(meeting.section_id)
    if section is None:
        return False
    if viewer.role == ViewerRole.STUDENT:
        return section.has_enrolled([viewer.id])
    if viewer.role == ViewerRole.PARENT:
        return section.has_enrolled(viewer.linked_student_ids)
    return False


def visible_meetings(
    viewer: Viewer, meetings: Iterable[Meeting], sections: Iterable[Section]
) -> list[Meeting]:
    sections_by_id = {section.id: section for section in sections}
    return [m for m in meetings if is_visible(viewer, m, sections_by_id)]


def visible_occurrences(
    viewer: Viewer,
    meetings: Iterable[Meeting],
    sections: Iterable[Section],
    window_start: datetime,
    window_end: datetime,
) -> ScheduleResult:
    """
    Expand every meeting the viewer may see into one chronological list.

    Occurrences are ordered by (start, meeting id). Meetings with unusable
    recurrence rules are reported in ``warnings`` and still contribute their
    base occurrence. Meetings that are naive where the window is aware (or
    the reverse) are reported there and left out.

    Raises:
        InvalidWindowError: if window_start is after window_end.
    """
    batch = expand_many(visible_meetings(viewer, meetings, sections), window_start, window_end)
    return ScheduleResult(
        window_start=window_start,
        window_end=window_end,
        occurrences=list(batch.occurrences()),
        warnings=batch.warnings,
    )
