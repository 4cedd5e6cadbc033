"""
Device groups: membership management and group-wide vendor aggregation
"""
import logging
from collections import Counter
from typing import Iterable, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from app.models import Device, DeviceGroup, DeviceGroupMember
from app.services.device_service import device_service, device_info
from app.services.ecowitt_service import ecowitt_service
from app.services.time_ranges import TimeRange

logger = logging.getLogger(__name__)


class MissingDevicesError(Exception):
    """One or more referenced devices do not exist or are not owned by the caller"""

    def __init__(self, missing_ids: list[UUID]):
        self.missing_ids = missing_ids
        super().__init__(f"Devices not found: {', '.join(str(i) for i in missing_ids)}")


def rekey_by_device(devices: Iterable[Device], results_by_mac: dict) -> dict:
    """
    Re-key a MAC-keyed fan-out result by device name and attach the
    deviceInfo envelope to each entry. Every device whose name is shared
    is keyed "name (mac)", whatever the member order.
    """
    devices = list(devices)
    name_counts = Counter(device.name for device in devices)
    rekeyed = {}
    for device in devices:
        payload = results_by_mac.get(device.mac) or {"error": "No response"}
        key = device.name
        if name_counts[device.name] > 1:
            key = f"{device.name} ({device.mac})"
        rekeyed[key] = {**payload, "deviceInfo": device_info(device)}
    return rekeyed


class GroupService:
    """Groups owned by one user and the devices in them"""

    async def get_user_group(self, db: AsyncSession, group_id: UUID, user_id: UUID) -> Optional[DeviceGroup]:
        result = await db.execute(
            select(DeviceGroup).where(DeviceGroup.id == group_id, DeviceGroup.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_user_groups(self, db: AsyncSession, user_id: UUID) -> list[DeviceGroup]:
        result = await db.execute(
            select(DeviceGroup).where(DeviceGroup.user_id == user_id).order_by(DeviceGroup.created_at)
        )
        return list(result.scalars().all())

    @staticmethod
    def group_devices(group: DeviceGroup) -> list[Device]:
        return [m.device for m in group.members if m.device is not None]

    @staticmethod
    def to_summary(group: DeviceGroup) -> dict:
        device_ids = [m.device_id for m in group.members]
        return {
            "id": group.id,
            "user_id": group.user_id,
            "name": group.name,
            "description": group.description,
            "device_ids": device_ids,
            "device_count": len(device_ids),
            "created_at": group.created_at,
            "updated_at": group.updated_at,
        }

    async def _resolve_devices(self, db: AsyncSession, device_ids: list[UUID], user_id: UUID) -> list[Device]:
        unique_ids = list(dict.fromkeys(device_ids))
        devices = await device_service.get_user_devices_by_ids(db, unique_ids, user_id)
        found = {d.id for d in devices}
        missing = [i for i in unique_ids if i not in found]
        if missing:
            raise MissingDevicesError(missing)
        return devices

    async def create_group(
        self,
        db: AsyncSession,
        user_id: UUID,
        name: str,
        device_ids: list[UUID],
        description: Optional[str] = None
    ) -> DeviceGroup:
        devices = await self._resolve_devices(db, device_ids, user_id)

        group = DeviceGroup(user_id=user_id, name=name, description=description)
        db.add(group)
        await db.flush()

        db.add_all([DeviceGroupMember(group_id=group.id, device_id=d.id) for d in devices])
        await db.flush()
        await db.refresh(group, attribute_names=["members"])

        logger.info(f"Group created: {name} with {len(devices)} devices")
        return group

    async def replace_members(
        self,
        db: AsyncSession,
        group: DeviceGroup,
        device_ids: list[UUID],
        user_id: UUID
    ) -> DeviceGroup:
        """
        All-or-nothing membership replacement: validate every id first, then
        delete all rows and insert the new set in the same transaction.
        """
        devices = await self._resolve_devices(db, device_ids, user_id)

        await db.execute(
            delete(DeviceGroupMember).where(DeviceGroupMember.group_id == group.id)
        )
        db.add_all([DeviceGroupMember(group_id=group.id, device_id=d.id) for d in devices])
        await db.flush()
        await db.refresh(group, attribute_names=["members"])
        return group

    async def update_group(
        self,
        db: AsyncSession,
        group: DeviceGroup,
        user_id: UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        device_ids: Optional[list[UUID]] = None
    ) -> DeviceGroup:
        if device_ids is not None:
            group = await self.replace_members(db, group, device_ids, user_id)
        if name is not None:
            group.name = name
        if description is not None:
            group.description = description
        await db.flush()
        await db.refresh(group)
        return group

    async def delete_group(self, db: AsyncSession, group: DeviceGroup):
        await db.delete(group)
        await db.flush()
        logger.info(f"Group deleted: {group.name}")

    async def get_group_realtime(self, group: DeviceGroup) -> dict:
        devices = self.group_devices(group)
        results = await ecowitt_service.get_multiple_realtime(devices)
        return rekey_by_device(devices, results)

    async def get_group_history(self, group: DeviceGroup, time_range: TimeRange) -> dict:
        devices = self.group_devices(group)
        start, end = time_range.as_vendor_strings()
        results = await ecowitt_service.get_multiple_history(devices, start, end)
        return rekey_by_device(devices, results)


group_service = GroupService()
