"""
Translation of service exceptions into HTTP errors
"""
from fastapi import HTTPException, status

from app.services import EcowittAPIError, EcowittValidationError
from app.services.time_ranges import TimeRange, InvalidRange, get_time_range


def vendor_http_error(error: EcowittAPIError) -> HTTPException:
    """400 for a rejected parameter set, 502 for a vendor failure"""
    if isinstance(error, EcowittValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.errors)
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(error))


def resolve_range(tag: str) -> TimeRange:
    try:
        return get_time_range(tag)
    except InvalidRange as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
