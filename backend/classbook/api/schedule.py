"""
Schedule API endpoints.
"""

from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from classbook.api.deps import CurrentViewer, MeetingRepo, SectionRepo
from classbook.core.config import get_settings
from classbook.core.exceptions import ValidationError
from classbook.models.schedule import ScheduleResult
from classbook.services.schedule_aggregator import visible_occurrences

router = APIRouter()


@router.get("", response_model=ScheduleResult)
async def get_schedule(
    viewer: CurrentViewer,
    meeting_repo: MeetingRepo,
    section_repo: SectionRepo,
    start: datetime = Query(..., description="Window start"),
    end: Optional[datetime] = Query(None, description="Window end, defaults to start + 7 days"),
) -> ScheduleResult:
    """Occurrences visible to the viewer within [start, end]."""
    if end is None:
        end = start + timedelta(days=get_settings().DEFAULT_SCHEDULE_WINDOW_DAYS)

    meetings = await meeting_repo.list(limit=100_000)
    section_ids = sorted({m.section_id for m in meetings})
    sections = await section_repo.list(section_ids=section_ids)
    try:
        return visible_occurrences(viewer, meetings, sections, start, end)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )
