"""
Side-by-side comparison of several devices
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import get_db, User
from app.schemas import CompareRequest
from app.core.security import get_current_user
from app.api.errors import resolve_range
from app.services import comparison_service, ComparisonError

router = APIRouter(prefix="/compare", tags=["Comparison"])


def _comparison_error(error: ComparisonError) -> HTTPException:
    if str(error) == "No devices found":
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))


@router.post("/history")
async def compare_history(
    request: CompareRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    History of up to four devices over the same range.
    """
    time_range = resolve_range(request.rangeType or "day")
    try:
        return await comparison_service.compare_history(db, request.device_ids, current_user.id, time_range)
    except ComparisonError as e:
        raise _comparison_error(e)


@router.post("/realtime")
async def compare_realtime(
    request: CompareRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Current readings of up to four devices.
    """
    try:
        return await comparison_service.compare_realtime(db, request.device_ids, current_user.id)
    except ComparisonError as e:
        raise _comparison_error(e)
