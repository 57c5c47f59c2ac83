"""
Meeting API endpoints.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from classbook.api.deps import MeetingRepo
from classbook.core.exceptions import (
    InvalidRecurrenceError,
    InvalidWindowError,
    NotFoundError,
    ValidationError,
)
from classbook.models.meeting import Meeting, MeetingCreate, Occurrence
from classbook.models.schedule import ConflictCheckRequest, ConflictReport
from classbook.services.conflict_detector import ConflictDetector
from classbook.services.recurrence_expander import next_occurrence, parse_descriptor

router = APIRouter()


def _ensure_rule_is_valid(payload: MeetingCreate) -> None:
    if not payload.is_recurring:
        return
    if not payload.recurrence_rule:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="recurrence_rule is required for recurring meetings",
        )
    try:
        parse_descriptor(payload.recurrence_rule)
    except InvalidRecurrenceError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )


@router.post("", response_model=Meeting, status_code=status.HTTP_201_CREATED)
async def create_meeting(payload: MeetingCreate, repo: MeetingRepo) -> Meeting:
    """Create a meeting. Conflicts are not checked here; see /conflicts."""
    _ensure_rule_is_valid(payload)
    return await repo.create(payload)


@router.get("", response_model=list[Meeting])
async def list_meetings(
    repo: MeetingRepo,
    section_id: Optional[str] = Query(None),
    room_id: Optional[str] = Query(None),
    teacher_id: Optional[str] = Query(None),
    limit: int = Query(500, ge=1, le=2000),
    offset: int = Query(0, ge=0),
) -> list[Meeting]:
    """List meetings."""
    return await repo.list(
        section_id=section_id,
        room_id=room_id,
        teacher_id=teacher_id,
        limit=limit,
        offset=offset,
    )


@router.post("/conflicts", response_model=ConflictReport)
async def check_conflicts(payload: ConflictCheckRequest, repo: MeetingRepo) -> ConflictReport:
    """
    Check a hypothetical meeting against every stored meeting.

    Pass ``candidate_id`` when rescheduling an existing meeting so it is not
    compared with its own stored version.
    """
    candidate = Meeting(
        id=payload.candidate_id or "candidate",
        **payload.candidate.model_dump(),
    )
    existing = await repo.list(limit=100_000)
    try:
        return ConflictDetector().find_conflicts(
            candidate, existing, payload.window_start, payload.window_end
        )
    except (InvalidWindowError, ValidationError) as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )


@router.get("/{meeting_id}", response_model=Meeting)
async def get_meeting(meeting_id: str, repo: MeetingRepo) -> Meeting:
    """Get a meeting by ID."""
    meeting = await repo.get(meeting_id)
    if not meeting:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Meeting {meeting_id} not found",
        )
    return meeting


@router.put("/{meeting_id}", response_model=Meeting)
async def update_meeting(meeting_id: str, payload: MeetingCreate, repo: MeetingRepo) -> Meeting:
    """Replace a meeting's schedule and assignments."""
    _ensure_rule_is_valid(payload)
    try:
        return await repo.update(meeting_id, payload)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


@router.get("/{meeting_id}/next-occurrence", response_model=Optional[Occurrence])
async def get_next_occurrence(
    meeting_id: str,
    repo: MeetingRepo,
    after: Optional[datetime] = Query(None),
) -> Optional[Occurrence]:
    """Next occurrence after ``after`` (default: now in the meeting's timezone)."""
    meeting = await repo.get(meeting_id)
    if not meeting:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Meeting {meeting_id} not found",
        )
    if after is None:
        after = datetime.now(meeting.start_time.tzinfo)
    try:
        return next_occurrence(meeting, after)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )


@router.delete("/{meeting_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_meeting(meeting_id: str, repo: MeetingRepo) -> None:
    """Delete a meeting."""
    deleted = await repo.delete(meeting_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Meeting {meeting_id} not found",
        )
