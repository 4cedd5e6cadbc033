"""
Device registry and per-device vendor data routes
"""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import get_db, User, Device, DeviceType
from app.schemas import DeviceCreate, DeviceUpdate, DeviceResponse, DeviceListResponse
from app.core.security import get_current_user
from app.api.errors import vendor_http_error, resolve_range
from app.services import device_service, ecowitt_service, DeviceConflictError, EcowittAPIError
from app.services.device_service import device_info
from app.services.extractors import normalize_realtime
from app.services.report_service import build_characteristics

router = APIRouter(prefix="/devices", tags=["Devices"])


async def get_owned_device(
    device_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Device:
    """Dependency resolving a device owned by the caller"""
    device = await device_service.get_user_device(db, device_id, current_user.id)
    if not device:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Device not found"
        )
    return device


@router.get("", response_model=DeviceListResponse)
async def list_devices(
    device_type: Optional[DeviceType] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List the caller's devices, optionally filtered by type.
    """
    devices = await device_service.list_user_devices(db, current_user.id, device_type)
    return DeviceListResponse(devices=devices, total=len(devices))


@router.post("", response_model=DeviceResponse, status_code=status.HTTP_201_CREATED)
async def create_device(
    device_data: DeviceCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new weather station.
    """
    try:
        device = await device_service.create_device(db, current_user.id, device_data.model_dump())
    except DeviceConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    await db.commit()
    return device


@router.get("/{device_id}", response_model=DeviceResponse)
async def get_device(device: Device = Depends(get_owned_device)):
    """
    Get a specific device by ID.
    """
    return device


@router.put("/{device_id}", response_model=DeviceResponse)
async def update_device(
    device_data: DeviceUpdate,
    device: Device = Depends(get_owned_device),
    db: AsyncSession = Depends(get_db)
):
    """
    Partially update a device.
    """
    try:
        device = await device_service.update_device(db, device, device_data.model_dump(exclude_unset=True))
    except DeviceConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    await db.commit()
    return device


@router.delete("/{device_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_device(
    device: Device = Depends(get_owned_device),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a device and its group memberships.
    """
    await device_service.delete_device(db, device)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{device_id}/realtime")
async def get_device_realtime(device: Device = Depends(get_owned_device)):
    """
    Current vendor snapshot with the deviceInfo envelope.
    """
    try:
        payload = await ecowitt_service.get_realtime(device.application_key, device.api_key, device.mac)
    except EcowittAPIError as e:
        raise vendor_http_error(e)
    return {**payload, "deviceInfo": device_info(device)}


@router.get("/{device_id}/history")
async def get_device_history(
    rangeType: str = Query("day"),
    device: Device = Depends(get_owned_device)
):
    """
    Vendor history for a range tag (hour, day, week, month, 3months).
    """
    time_range = resolve_range(rangeType)
    start, end = time_range.as_vendor_strings()
    try:
        payload = await ecowitt_service.get_history(device.application_key, device.api_key, device.mac, start, end)
    except EcowittAPIError as e:
        raise vendor_http_error(e)
    return {**payload, "deviceInfo": device_info(device), "timeRange": time_range.to_dict()}


@router.get("/{device_id}/info")
async def get_device_info(device: Device = Depends(get_owned_device)):
    """
    Registry row merged with vendor info and the current readings.
    """
    try:
        info = await ecowitt_service.get_info(device.application_key, device.api_key, device.mac)
    except EcowittAPIError as e:
        raise vendor_http_error(e)

    current_data = None
    try:
        realtime = await ecowitt_service.get_realtime(device.application_key, device.api_key, device.mac)
        current_data = normalize_realtime(realtime)
    except EcowittAPIError:
        pass

    return {
        "device": {
            "id": str(device.id),
            "name": device.name,
            "mac": device.mac,
            "type": device.device_type.value,
            "status": device.status.value,
            "createdAt": device.created_at.isoformat() if device.created_at else None,
        },
        "vendorInfo": info.get("data"),
        "currentData": current_data,
    }


@router.get("/{device_id}/characteristics")
async def get_device_characteristics(device: Device = Depends(get_owned_device)):
    """
    Merged characteristics block as used in reports.
    """
    info = None
    try:
        info = await ecowitt_service.get_info(device.application_key, device.api_key, device.mac)
    except EcowittAPIError:
        pass
    return build_characteristics(device, info)
