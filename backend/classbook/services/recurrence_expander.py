"""
Recurrence expander.

Builds, encodes and describes recurrence rules, and expands meetings into
concrete occurrences within a query window.
"""

from __future__ import annotations

import calendar
import heapq
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, Optional

from pydantic import ValidationError as PydanticValidationError

from classbook.core.config import get_settings
from classbook.core.exceptions import InvalidRecurrenceError, InvalidWindowError, ValidationError
from classbook.core.logger import setup_logger
from classbook.models.enums import RecurrenceFrequency
from classbook.models.meeting import DegradedRecurrenceWarning, Meeting, Occurrence
from classbook.models.recurrence import WEEKDAY_NAMES, RecurrenceDescriptor, ScheduleParams

logger = setup_logger(__name__)


# ===========================================
# Descriptor construction and encoding
# ===========================================


def build_descriptor(params: Optional[ScheduleParams] = None, **kwargs) -> RecurrenceDescriptor:
    """Build a canonical descriptor from schedule parameters.

    Accepts either a ``ScheduleParams`` instance or the same fields as
    keyword arguments.

    Raises:
        InvalidRecurrenceError: if both an end date and a count are given, a
            weekly rule has no weekdays, or a numeric field is out of range.
    """
    if params is None:
        try:
            params = ScheduleParams(**kwargs)
        except PydanticValidationError as exc:
            raise InvalidRecurrenceError(f"Invalid schedule parameters: {exc}") from exc

    if params.end_date is not None and params.count is not None:
        raise InvalidRecurrenceError("A recurrence may have an end date or a count, not both")
    if params.frequency == RecurrenceFrequency.WEEKLY and not params.weekdays:
        raise InvalidRecurrenceError("Weekly recurrence requires at least one weekday")

    interval = 1 if params.interval is None else params.interval
    if interval < 1:
        raise InvalidRecurrenceError(f"Interval must be at least 1, got {interval}")
    if params.count is not None and params.count < 1:
        raise InvalidRecurrenceError(f"Count must be at least 1, got {params.count}")

    try:
        return RecurrenceDescriptor(
            frequency=params.frequency,
            interval=interval,
            weekdays=params.weekdays or (),
            until=params.end_date,
            count=params.count,
        )
    except PydanticValidationError as exc:
        raise InvalidRecurrenceError(f"Invalid recurrence: {exc}") from exc


def format_descriptor(descriptor: RecurrenceDescriptor) -> str:
    """Encode a descriptor to its stored string form."""
    return descriptor.encode()


def parse_descriptor(text: str) -> RecurrenceDescriptor:
    """Decode a stored rule string. Raises InvalidRecurrenceError if malformed."""
    return RecurrenceDescriptor.decode(text)


def describe(descriptor: RecurrenceDescriptor) -> str:
    """Human readable rule text, e.g. "every week on Friday for 16 times"."""
    unit = {
        RecurrenceFrequency.DAILY: ("day", "days"),
        RecurrenceFrequency.WEEKLY: ("week", "weeks"),
        RecurrenceFrequency.MONTHLY: ("month", "months"),
    }[descriptor.frequency]
    if descriptor.interval == 1:
        text = f"every {unit[0]}"
    else:
        text = f"every {descriptor.interval} {unit[1]}"

    if descriptor.weekdays:
        names = [WEEKDAY_NAMES[day] for day in descriptor.weekdays]
        if len(names) == 1:
            text += f" on {names[0]}"
        else:
            text += f" on {', '.join(names[:-1])} and {names[-1]}"

    if descriptor.count is not None:
        text += " for 1 time" if descriptor.count == 1 else f" for {descriptor.count} times"
    elif descriptor.until is not None:
        until = descriptor.until
        text += f" until {until:%B} {until.day}, {until.year}"
    return text


def format_meeting_time(start: datetime, end: datetime) -> str:
    """Display text such as "Oct 25, 2024 • 4:00 PM - 5:30 PM"."""

    def clock(value: datetime) -> str:
        return value.strftime("%I:%M %p").lstrip("0")

    return f"{start:%b} {start.day}, {start.year} • {clock(start)} - {clock(end)}"


# ===========================================
# Rule date generation
# ===========================================


def _python_weekday(day: int) -> int:
    """Convert 0=Sunday numbering to Python's 0=Monday numbering."""
    return (day + 6) % 7


def _candidate_dates(
    descriptor: RecurrenceDescriptor, anchor: date, from_date: date, stop: date
) -> Iterator[date]:
    """Every rule date on or after the anchor, ascending, until ``stop``.

    Starts at the period containing ``from_date`` so far-away windows do not
    walk the whole series.
    """
    interval = descriptor.interval
    from_date = max(from_date, anchor)

    if descriptor.frequency == RecurrenceFrequency.DAILY:
        step = (from_date - anchor).days // interval
        while True:
            candidate = anchor + timedelta(days=step * interval)
            if candidate > stop:
                return
            yield candidate
            step += 1

    elif descriptor.frequency == RecurrenceFrequency.WEEKLY:
        # A parsed weekly rule without BYDAY repeats on the anchor's weekday.
        offsets = sorted(_python_weekday(day) for day in descriptor.weekdays) or [anchor.weekday()]
        first_week = anchor - timedelta(days=anchor.weekday())
        week = ((from_date - first_week).days // 7) // interval * interval
        while True:
            week_start = first_week + timedelta(weeks=week)
            for offset in offsets:
                candidate = week_start + timedelta(days=offset)
                if candidate > stop:
                    return
                if candidate >= anchor:
                    yield candidate
            week += interval

    elif descriptor.frequency == RecurrenceFrequency.MONTHLY:
        first_month = anchor.year * 12 + anchor.month - 1
        from_month = from_date.year * 12 + from_date.month - 1
        month = first_month + (from_month - first_month) // interval * interval
        while True:
            year, month_index = divmod(month, 12)
            if date(year, month_index + 1, 1) > stop:
                return
            # Months without the anchor's day of month are skipped, not clamped.
            if anchor.day <= calendar.monthrange(year, month_index + 1)[1]:
                candidate = date(year, month_index + 1, anchor.day)
                if candidate > stop:
                    return
                yield candidate
            month += interval


def _iter_rule_dates(
    descriptor: RecurrenceDescriptor,
    anchor: date,
    from_date: date,
    last_date: date,
) -> Iterator[date]:
    """Yield rule dates in ascending order up to ``last_date``.

    Dates before ``from_date`` may be skipped when the rule has no count;
    counted rules always walk from the anchor so the count stays exact.
    """
    stop = last_date
    if descriptor.until is not None:
        stop = min(stop, descriptor.until)
    if descriptor.count is not None:
        from_date = anchor

    produced = 0
    for candidate in _candidate_dates(descriptor, anchor, from_date, stop):
        if descriptor.count is not None and produced >= descriptor.count:
            return
        produced += 1
        yield candidate


def _intersects(start: datetime, end: datetime, window_start: datetime, window_end: datetime) -> bool:
    """Half-open occurrence [start, end) against the closed window."""
    if start > window_end:
        return False
    if end == start:
        return start >= window_start
    return end > window_start


def _local_date(value: datetime, reference: datetime) -> date:
    """Calendar date of ``value`` seen in the timezone of ``reference``."""
    if reference.tzinfo is not None and value.tzinfo is not None:
        return value.astimezone(reference.tzinfo).date()
    return value.date()


def same_awareness(a: datetime, b: datetime) -> bool:
    """Whether two datetimes are both naive or both aware, so they compare."""
    return (a.tzinfo is None) == (b.tzinfo is None)


def _validate_window(window_start: datetime, window_end: datetime) -> None:
    if not same_awareness(window_start, window_end):
        raise ValidationError("window_start and window_end must both be naive or both be aware")
    if window_start > window_end:
        raise InvalidWindowError(window_start, window_end)


# ===========================================
# Expansion
# ===========================================


class Expansion:
    """Lazily generated occurrences of one meeting within a window.

    Iterating twice restarts generation from scratch. ``warning`` is set when
    the meeting's rule could not be used and the meeting was treated as a
    single occurrence.
    """

    def __init__(
        self,
        meeting: Meeting,
        window_start: datetime,
        window_end: datetime,
        descriptor: Optional[RecurrenceDescriptor] = None,
        warning: Optional[DegradedRecurrenceWarning] = None,
    ):
        self.meeting = meeting
        self.window_start = window_start
        self.window_end = window_end
        self.descriptor = descriptor
        self.warning = warning

    @property
    def meeting_id(self) -> str:
        return self.meeting.id

    @property
    def is_degraded(self) -> bool:
        return self.warning is not None

    def __iter__(self) -> Iterator[Occurrence]:
        if self.descriptor is None:
            return self._single()
        return self._recurring()

    def _single(self) -> Iterator[Occurrence]:
        meeting = self.meeting
        if _intersects(meeting.start_time, meeting.end_time, self.window_start, self.window_end):
            yield Occurrence(
                meeting_id=meeting.id,
                start=meeting.start_time,
                end=meeting.end_time,
                section_id=meeting.section_id,
            )

    def _recurring(self) -> Iterator[Occurrence]:
        meeting = self.meeting
        base = meeting.start_time
        duration = meeting.duration
        if self.window_end < base:
            return

        anchor = base.date()
        from_date = _local_date(self.window_start - duration, base) - timedelta(days=1)
        last_date = _local_date(self.window_end, base) + timedelta(days=1)
        excluded = set(meeting.exceptions)
        start_of_day = base.timetz()

        for rule_date in _iter_rule_dates(self.descriptor, anchor, from_date, last_date):
            if rule_date in excluded:
                continue
            start = datetime.combine(rule_date, start_of_day)
            end = start + duration
            if start > self.window_end:
                return
            if _intersects(start, end, self.window_start, self.window_end):
                yield Occurrence(
                    meeting_id=meeting.id,
                    start=start,
                    end=end,
                    section_id=meeting.section_id,
                )


def _resolve_descriptor(meeting: Meeting):
    """Return (descriptor, warning) for a meeting."""
    if not meeting.is_recurring:
        return None, None
    if not meeting.recurrence_rule:
        reason = "Recurring meeting has no recurrence rule"
    else:
        try:
            return parse_descriptor(meeting.recurrence_rule), None
        except InvalidRecurrenceError as exc:
            reason = exc.message
    logger.warning(
        "Meeting %s: %s; treating it as a single occurrence", meeting.id, reason
    )
    warning = DegradedRecurrenceWarning(
        meeting_id=meeting.id, rule=meeting.recurrence_rule, reason=reason
    )
    return None, warning


def expand(meeting: Meeting, window_start: datetime, window_end: datetime) -> Expansion:
    """Expand a meeting into its occurrences within ``[window_start, window_end]``.

    Occurrences are ordered by start time. A recurring meeting yields every
    rule date whose occurrence intersects the window, projected with the
    base duration and skipping exception dates. A malformed rule never
    raises; it is reported through ``Expansion.warning``.

    Raises:
        InvalidWindowError: if ``window_start`` is after ``window_end``.
    """
    _validate_window(window_start, window_end)
    if not same_awareness(meeting.start_time, window_start):
        raise ValidationError(
            f"Meeting {meeting.id} and the query window must both be naive or both be aware"
        )
    descriptor, warning = _resolve_descriptor(meeting)
    return Expansion(meeting, window_start, window_end, descriptor, warning)


def awareness_mismatch(
    meeting: Meeting, reference: datetime
) -> Optional[DegradedRecurrenceWarning]:
    """Warning for a meeting whose times cannot be compared with ``reference``.

    Returns None when both are naive or both are aware.
    """
    if same_awareness(meeting.start_time, reference):
        return None
    reason = "Meeting time and query window must both be naive or both be aware"
    logger.warning("Meeting %s: %s; skipping it", meeting.id, reason)
    return DegradedRecurrenceWarning(
        meeting_id=meeting.id, rule=meeting.recurrence_rule, reason=reason
    )


class ExpansionBatch:
    """Expansions of many meetings over one window."""

    def __init__(
        self,
        expansions: list[Expansion],
        skipped: Optional[list[DegradedRecurrenceWarning]] = None,
    ):
        self.expansions = expansions
        self.skipped = skipped or []

    @property
    def warnings(self) -> list[DegradedRecurrenceWarning]:
        return self.skipped + [e.warning for e in self.expansions if e.warning is not None]

    def occurrences(self) -> Iterator[Occurrence]:
        """All occurrences merged in (start, meeting_id) order."""
        return heapq.merge(*self.expansions, key=lambda o: (o.start, o.meeting_id))


def expand_many(
    meetings: Iterable[Meeting], window_start: datetime, window_end: datetime
) -> ExpansionBatch:
    """Expand several meetings; a degraded meeting does not affect the others.

    A meeting that is naive where the window is aware (or the reverse) is
    left out and reported in ``warnings``.
    """
    _validate_window(window_start, window_end)
    expansions: list[Expansion] = []
    skipped: list[DegradedRecurrenceWarning] = []
    for meeting in meetings:
        mismatch = awareness_mismatch(meeting, window_start)
        if mismatch:
            skipped.append(mismatch)
            continue
        expansions.append(expand(meeting, window_start, window_end))
    return ExpansionBatch(expansions, skipped)


def next_occurrence(
    meeting: Meeting, after: datetime, horizon_days: Optional[int] = None
) -> Optional[Occurrence]:
    """First occurrence starting strictly after ``after`` within the horizon."""
    if horizon_days is None:
        horizon_days = get_settings().NEXT_OCCURRENCE_HORIZON_DAYS
    for occurrence in expand(meeting, after, after + timedelta(days=horizon_days)):
        if occurrence.start > after:
            return occurrence
    return None


def last_occurrence_end(meeting: Meeting) -> Optional[datetime]:
    """End of the final occurrence of a meeting, None for an open-ended series.

    Exception dates are ignored, so the result bounds the series from above.
    A meeting whose rule cannot be used spans only its base interval.
    """
    descriptor = None
    if meeting.is_recurring and meeting.recurrence_rule:
        try:
            descriptor = parse_descriptor(meeting.recurrence_rule)
        except InvalidRecurrenceError:
            descriptor = None
    if descriptor is None:
        return meeting.end_time
    if descriptor.is_open_ended:
        return None

    last = None
    for rule_date in _iter_rule_dates(descriptor, meeting.start_time.date(), date.min, date.max):
        last = rule_date
    if last is None:
        return meeting.end_time
    return datetime.combine(last, meeting.start_time.timetz()) + meeting.duration
