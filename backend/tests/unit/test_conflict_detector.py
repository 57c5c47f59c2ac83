"""
Tests for room and teacher conflict detection.
"""

from datetime import datetime, timedelta, timezone

import pytest

from classbook.core.exceptions import InvalidWindowError, ValidationError
from classbook.models.enums import ConflictResource
from classbook.models.meeting import Meeting
from classbook.services.conflict_detector import ConflictDetector, find_conflicts


def _meeting(
    meeting_id: str,
    start: datetime,
    end: datetime,
    rule: str | None = None,
    room_id: str | None = "room_a",
    teacher_ids: list[str] | None = None,
) -> Meeting:
    return Meeting(
        id=meeting_id,
        section_id=f"sec_{meeting_id}",
        start_time=start,
        end_time=end,
        is_recurring=rule is not None,
        recurrence_rule=rule,
        room_id=room_id,
        teacher_ids=teacher_ids or [],
    )


def _wednesday_series(**kwargs) -> Meeting:
    """Wednesdays 19:00-20:30 from January 3rd 2024, four times."""
    return _meeting(
        "existing",
        datetime(2024, 1, 3, 19, 0),
        datetime(2024, 1, 3, 20, 30),
        rule="FREQ=WEEKLY;BYDAY=WE;COUNT=4",
        **kwargs,
    )


def _candidate(start_hour: int, start_minute: int, minutes: int, **kwargs) -> Meeting:
    start = datetime(2024, 1, 10, start_hour, start_minute)
    return _meeting("candidate", start, start + timedelta(minutes=minutes), **kwargs)


class TestFindConflicts:
    """Tests for ConflictDetector.find_conflicts."""

    def test_overlap_in_shared_room(self):
        report = find_conflicts(_candidate(19, 30, 30), [_wednesday_series()])

        assert report.has_conflicts
        assert len(report.conflicts) == 1
        conflict = report.conflicts[0]
        assert conflict.meeting_id == "existing"
        assert conflict.candidate_meeting_id == "candidate"
        assert conflict.conflict_time == datetime(2024, 1, 10, 19, 30)
        assert conflict.existing_start == datetime(2024, 1, 10, 19, 0)
        assert conflict.existing_end == datetime(2024, 1, 10, 20, 30)
        assert conflict.resource_type == ConflictResource.ROOM
        assert conflict.resource_id == "room_a"

    def test_back_to_back_meetings_do_not_conflict(self):
        report = find_conflicts(_candidate(20, 30, 30), [_wednesday_series()])
        assert report.conflicts == []
        assert not report.has_conflicts

    def test_detection_is_symmetric(self):
        single = _meeting("single", datetime(2024, 1, 10, 19, 30), datetime(2024, 1, 10, 20, 0))
        series = _wednesday_series()

        forward = find_conflicts(single, [series])
        backward = find_conflicts(series, [single])

        assert len(forward.conflicts) == len(backward.conflicts) == 1
        assert backward.conflicts[0].conflict_time == datetime(2024, 1, 10, 19, 0)
        assert backward.conflicts[0].existing_start == datetime(2024, 1, 10, 19, 30)

    def test_one_conflict_per_shared_resource(self):
        candidate = _candidate(19, 30, 30, teacher_ids=["t2", "t1", "t3"])
        existing = _wednesday_series(teacher_ids=["t1", "t2"])

        report = find_conflicts(candidate, [existing])

        assert [(c.resource_type, c.resource_id) for c in report.conflicts] == [
            (ConflictResource.ROOM, "room_a"),
            (ConflictResource.TEACHER, "t1"),
            (ConflictResource.TEACHER, "t2"),
        ]

    def test_shared_teacher_in_different_rooms(self):
        candidate = _candidate(19, 30, 30, room_id="room_b", teacher_ids=["t1"])
        existing = _wednesday_series(teacher_ids=["t1"])

        report = find_conflicts(candidate, [existing])

        assert [(c.resource_type, c.resource_id) for c in report.conflicts] == [
            (ConflictResource.TEACHER, "t1"),
        ]

    def test_different_rooms_do_not_conflict(self):
        report = find_conflicts(_candidate(19, 30, 30, room_id="room_b"), [_wednesday_series()])
        assert report.conflicts == []

    def test_unassigned_meetings_never_conflict(self):
        candidate = _candidate(19, 30, 30, room_id=None)
        existing = _wednesday_series(room_id=None)
        assert find_conflicts(candidate, [existing]).conflicts == []

    def test_meeting_is_not_compared_with_itself(self):
        series = _wednesday_series()
        moved = series.model_copy(update={"start_time": datetime(2024, 1, 3, 19, 15)})
        assert find_conflicts(moved, [series]).conflicts == []

    def test_every_overlapping_occurrence_is_reported(self):
        candidate = _meeting(
            "candidate",
            datetime(2024, 1, 3, 20, 0),
            datetime(2024, 1, 3, 21, 0),
            rule="FREQ=WEEKLY;BYDAY=WE;COUNT=2",
        )
        report = find_conflicts(candidate, [_wednesday_series()])

        assert [c.conflict_time for c in report.conflicts] == [
            datetime(2024, 1, 3, 20, 0),
            datetime(2024, 1, 10, 20, 0),
        ]

    def test_explicit_window_limits_comparison(self):
        report = find_conflicts(
            _candidate(19, 30, 30),
            [_wednesday_series()],
            window_start=datetime(2024, 1, 1),
            window_end=datetime(2024, 1, 5),
        )
        assert report.conflicts == []
        assert report.window_start == datetime(2024, 1, 1)
        assert report.window_end == datetime(2024, 1, 5)

    def test_inverted_window_rejected(self):
        with pytest.raises(InvalidWindowError):
            find_conflicts(
                _candidate(19, 30, 30),
                [_wednesday_series()],
                window_start=datetime(2024, 2, 1),
                window_end=datetime(2024, 1, 1),
            )

    def test_degraded_rule_is_reported(self):
        broken = _meeting(
            "broken",
            datetime(2024, 1, 10, 19, 0),
            datetime(2024, 1, 10, 20, 0),
            rule="FREQ=SOMETIMES",
        )
        report = find_conflicts(_candidate(19, 30, 30), [broken])

        assert [w.meeting_id for w in report.warnings] == ["broken"]
        assert len(report.conflicts) == 1

    def test_conflicts_sorted_by_time(self):
        late = _meeting("late", datetime(2024, 1, 10, 19, 45), datetime(2024, 1, 10, 20, 15))
        early = _meeting("early", datetime(2024, 1, 10, 19, 0), datetime(2024, 1, 10, 19, 40))
        report = find_conflicts(_candidate(19, 30, 30), [late, early])

        assert [c.meeting_id for c in report.conflicts] == ["early", "late"]


    def test_same_room_different_teachers_is_one_room_conflict(self):
        candidate = _candidate(19, 30, 30, teacher_ids=["t2"])
        existing = _wednesday_series(teacher_ids=["t1"])

        report = find_conflicts(candidate, [existing])

        assert len(report.conflicts) == 1
        assert report.conflicts[0].resource_type == ConflictResource.ROOM
        assert report.conflicts[0].resource_id == "room_a"

    def test_old_open_series_still_conflicts(self):
        old_series = _meeting(
            "old",
            datetime(2020, 1, 1, 9, 0),
            datetime(2020, 1, 1, 10, 0),
            rule="FREQ=WEEKLY;BYDAY=WE",
            room_id="R1",
        )
        candidate = _candidate(9, 30, 60, room_id="R1")

        report = find_conflicts(candidate, [old_series])

        assert len(report.conflicts) == 1
        assert report.conflicts[0].existing_start == datetime(2024, 1, 10, 9, 0)
        assert report.window_start == datetime(2024, 1, 10, 9, 30)

    def test_aware_meeting_against_naive_candidate_is_skipped(self):
        aware = _meeting(
            "aware",
            datetime(2024, 1, 10, 19, 0, tzinfo=timezone.utc),
            datetime(2024, 1, 10, 20, 0, tzinfo=timezone.utc),
        )
        naive = _meeting("naive", datetime(2024, 1, 10, 19, 0), datetime(2024, 1, 10, 19, 45))

        report = find_conflicts(_candidate(19, 30, 30), [aware, naive])

        assert [c.meeting_id for c in report.conflicts] == ["naive"]
        assert [w.meeting_id for w in report.warnings] == ["aware"]

    def test_window_awareness_must_match_candidate(self):
        with pytest.raises(ValidationError):
            find_conflicts(
                _candidate(19, 30, 30),
                [_wednesday_series()],
                window_start=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )


class TestDefaultWindow:
    """Tests for ConflictDetector.default_window."""

    def test_spans_bounded_candidate(self):
        start, end = ConflictDetector(horizon_days=365).default_window(_candidate(19, 30, 30))

        assert start == datetime(2024, 1, 10, 19, 30)
        assert end == datetime(2024, 1, 10, 20, 0)

    def test_recurring_candidate_reaches_last_occurrence(self):
        start, end = ConflictDetector(horizon_days=365).default_window(_wednesday_series())

        assert start == datetime(2024, 1, 3, 19, 0)
        assert end == datetime(2024, 1, 24, 20, 30)

    def test_open_candidate_is_capped_by_horizon(self):
        open_series = _meeting(
            "open", datetime(2024, 1, 3, 19, 0), datetime(2024, 1, 3, 20, 30), rule="FREQ=DAILY"
        )
        start, end = ConflictDetector(horizon_days=30).default_window(open_series)

        assert start == datetime(2024, 1, 3, 19, 0)
        assert end == start + timedelta(days=30)

    def test_given_start_is_kept(self):
        start, end = ConflictDetector(horizon_days=365).default_window(
            _candidate(19, 30, 30), window_start=datetime(2024, 1, 9)
        )
        assert start == datetime(2024, 1, 9)
        assert end == datetime(2024, 1, 10, 20, 0)

    def test_existing_meetings_far_apart_do_not_move_window(self):
        old_series = _meeting(
            "old", datetime(2019, 9, 4, 8, 0), datetime(2019, 9, 4, 9, 0), rule="FREQ=WEEKLY;BYDAY=WE"
        )
        future = _meeting("future", datetime(2031, 1, 1, 8, 0), datetime(2031, 1, 1, 9, 0))
        candidate = _candidate(8, 30, 60)

        report = ConflictDetector(horizon_days=30).find_conflicts(candidate, [old_series, future])

        assert report.window_start == datetime(2024, 1, 10, 8, 30)
        assert report.window_end == datetime(2024, 1, 10, 9, 30)
        assert [c.meeting_id for c in report.conflicts] == ["old"]
