"""
Enrollment API endpoints.
"""

from fastapi import APIRouter, HTTPException, status

from classbook.api.deps import CurrentViewer, EnrollmentSvc
from classbook.core.exceptions import NotFoundError
from classbook.models.enrollment import WithdrawalResult

router = APIRouter()


@router.post("/{enrollment_id}/withdraw", response_model=WithdrawalResult)
async def withdraw_enrollment(
    enrollment_id: str,
    viewer: CurrentViewer,
    service: EnrollmentSvc,
) -> WithdrawalResult:
    """Cancel an enrollment. Freed seats go to the waitlist immediately."""
    try:
        return await service.withdraw(enrollment_id, actor_id=viewer.id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
