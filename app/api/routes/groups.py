"""
Device group routes
"""
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import get_db, User, DeviceGroup
from app.schemas import GroupCreate, GroupUpdate, GroupResponse, DeviceResponse
from app.core.security import get_current_user
from app.api.errors import resolve_range
from app.services import group_service, MissingDevicesError

router = APIRouter(prefix="/groups", tags=["Device Groups"])


def _missing_devices(error: MissingDevicesError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "message": "One or more devices not found or not owned by the user",
            "missingDeviceIds": [str(i) for i in error.missing_ids],
        }
    )


async def get_owned_group(
    group_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> DeviceGroup:
    """Dependency resolving a group owned by the caller"""
    group = await group_service.get_user_group(db, group_id, current_user.id)
    if not group:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Group not found"
        )
    return group


@router.get("", response_model=list[GroupResponse])
async def list_groups(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List the caller's groups.
    """
    groups = await group_service.list_user_groups(db, current_user.id)
    return [group_service.to_summary(g) for g in groups]


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    group_data: GroupCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a group from devices the caller owns.
    """
    try:
        group = await group_service.create_group(
            db,
            current_user.id,
            group_data.name,
            group_data.device_ids,
            group_data.description
        )
    except MissingDevicesError as e:
        raise _missing_devices(e)

    summary = group_service.to_summary(group)
    await db.commit()
    return summary


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(group: DeviceGroup = Depends(get_owned_group)):
    """
    Get a group with its member ids.
    """
    return group_service.to_summary(group)


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_data: GroupUpdate,
    group: DeviceGroup = Depends(get_owned_group),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Rename a group or replace its membership.
    """
    try:
        group = await group_service.update_group(
            db,
            group,
            current_user.id,
            name=group_data.name,
            description=group_data.description,
            device_ids=group_data.device_ids
        )
    except MissingDevicesError as e:
        raise _missing_devices(e)

    summary = group_service.to_summary(group)
    await db.commit()
    return summary


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
    group: DeviceGroup = Depends(get_owned_group),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a group. Member devices are left untouched.
    """
    await group_service.delete_group(db, group)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{group_id}/devices", response_model=list[DeviceResponse])
async def get_group_devices(group: DeviceGroup = Depends(get_owned_group)):
    """
    Registry rows of the group's members.
    """
    return group_service.group_devices(group)


@router.get("/{group_id}/realtime")
async def get_group_realtime(group: DeviceGroup = Depends(get_owned_group)):
    """
    Realtime data for every member, keyed by device name.
    """
    return await group_service.get_group_realtime(group)


@router.get("/{group_id}/history")
async def get_group_history(
    rangeType: str = Query("day"),
    group: DeviceGroup = Depends(get_owned_group)
):
    """
    History for every member over one range, keyed by device name.
    """
    time_range = resolve_range(rangeType)
    return await group_service.get_group_history(group, time_range)
