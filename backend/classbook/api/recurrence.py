"""
Recurrence rule API endpoints.
"""

from fastapi import APIRouter, HTTPException, status

from classbook.core.exceptions import InvalidRecurrenceError
from classbook.models.recurrence import ScheduleParams
from classbook.models.schedule import RecurrenceBuildResponse
from classbook.services.recurrence_expander import build_descriptor, describe, format_descriptor

router = APIRouter()


@router.post("/build", response_model=RecurrenceBuildResponse)
async def build_rule(params: ScheduleParams) -> RecurrenceBuildResponse:
    """Turn schedule parameters into a stored rule string."""
    try:
        descriptor = build_descriptor(params)
    except InvalidRecurrenceError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )
    return RecurrenceBuildResponse(
        rule=format_descriptor(descriptor),
        description=describe(descriptor),
    )
