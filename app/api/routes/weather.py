"""
OpenWeather proxy routes
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query

from app.models import User
from app.core.security import get_current_user
from app.services import weather_service, WeatherServiceError

router = APIRouter(prefix="/weather", tags=["Weather"])


def _check_coordinates(lat: float, lon: float):
    if not weather_service.validate_coordinates(lat, lon):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid coordinates"
        )


@router.get("/overview")
async def get_weather_overview(
    lat: float = Query(...),
    lon: float = Query(...),
    lang: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user)
):
    """
    Current conditions plus daily and hourly forecast for a coordinate.
    """
    _check_coordinates(lat, lon)
    try:
        return await weather_service.get_weather_overview(lat, lon, lang)
    except WeatherServiceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.get("/timestamp")
async def get_weather_for_timestamp(
    lat: float = Query(...),
    lon: float = Query(...),
    dt: int = Query(..., ge=0, description="Unix timestamp"),
    lang: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user)
):
    """
    Recorded conditions at a point in time.
    """
    _check_coordinates(lat, lon)
    try:
        return await weather_service.get_weather_for_timestamp(lat, lon, dt, lang)
    except WeatherServiceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.get("/daily")
async def get_daily_aggregation(
    lat: float = Query(...),
    lon: float = Query(...),
    day: date = Query(..., alias="date"),
    lang: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user)
):
    """
    Aggregated temperature, humidity, pressure, precipitation and wind for one day.
    """
    _check_coordinates(lat, lon)
    try:
        return await weather_service.get_daily_aggregation(lat, lon, day.isoformat(), lang)
    except WeatherServiceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
