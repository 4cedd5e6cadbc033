"""
Device registry operations, always scoped to the owning user
"""
import logging
from typing import Iterable, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models import Device, DeviceType

logger = logging.getLogger(__name__)


class DeviceConflictError(Exception):
    """MAC address or application key already registered"""


class DeviceService:
    """CRUD over the caller's devices"""

    async def get_user_device(self, db: AsyncSession, device_id: UUID, user_id: UUID) -> Optional[Device]:
        result = await db.execute(
            select(Device).where(Device.id == device_id, Device.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_user_devices(
        self,
        db: AsyncSession,
        user_id: UUID,
        device_type: Optional[DeviceType] = None
    ) -> list[Device]:
        query = select(Device).where(Device.user_id == user_id)
        if device_type:
            query = query.where(Device.device_type == device_type)
        result = await db.execute(query.order_by(Device.created_at))
        return list(result.scalars().all())

    async def get_user_devices_by_ids(
        self,
        db: AsyncSession,
        device_ids: Iterable[UUID],
        user_id: UUID
    ) -> list[Device]:
        """Owned devices among the given ids, in request order"""
        device_ids = list(device_ids)
        if not device_ids:
            return []
        result = await db.execute(
            select(Device).where(Device.id.in_(device_ids), Device.user_id == user_id)
        )
        found = {d.id: d for d in result.scalars().all()}
        return [found[i] for i in device_ids if i in found]

    async def check_conflicts(
        self,
        db: AsyncSession,
        mac: Optional[str] = None,
        application_key: Optional[str] = None,
        exclude_id: Optional[UUID] = None
    ):
        """Raise DeviceConflictError if the MAC or application key is taken"""
        if mac:
            query = select(Device.id).where(Device.mac == mac)
            if exclude_id:
                query = query.where(Device.id != exclude_id)
            if (await db.execute(query)).first():
                raise DeviceConflictError("Device with this MAC address already exists")

        if application_key:
            query = select(Device.id).where(Device.application_key == application_key)
            if exclude_id:
                query = query.where(Device.id != exclude_id)
            if (await db.execute(query)).first():
                raise DeviceConflictError("Device with this Application Key already exists")

    async def create_device(self, db: AsyncSession, user_id: UUID, data: dict) -> Device:
        await self.check_conflicts(db, mac=data.get("mac"), application_key=data.get("application_key"))

        device = Device(user_id=user_id, **data)
        db.add(device)
        await db.flush()
        await db.refresh(device)

        logger.info(f"Device created: {device.name} ({device.mac}) for user {user_id}")
        return device

    async def update_device(self, db: AsyncSession, device: Device, changes: dict) -> Device:
        await self.check_conflicts(
            db,
            mac=changes.get("mac"),
            application_key=changes.get("application_key"),
            exclude_id=device.id
        )

        for field, value in changes.items():
            setattr(device, field, value)
        await db.flush()
        await db.refresh(device)
        return device

    async def delete_device(self, db: AsyncSession, device: Device):
        """Memberships go with the device"""
        await db.delete(device)
        await db.flush()
        logger.info(f"Device deleted: {device.name} ({device.mac})")


def device_info(device: Device) -> dict:
    """Envelope identifying which registry device a vendor payload belongs to"""
    return {
        "deviceId": str(device.id),
        "deviceName": device.name,
        "mac": device.mac,
    }


device_service = DeviceService()
