"""
Side-by-side comparison of up to MAX_COMPARISON_DEVICES devices
"""
import logging
from datetime import datetime, timezone
from typing import Iterable
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models import Device
from app.services.device_service import device_service
from app.services.ecowitt_service import ecowitt_service
from app.services.time_ranges import TimeRange

logger = logging.getLogger(__name__)


class ComparisonError(Exception):
    """Comparison request rejected (too many ids, none found)"""


class ComparisonService:
    """Fan out one vendor call per device and line the results up"""

    @staticmethod
    def _entries(devices: Iterable[Device], results_by_mac: dict) -> list[dict]:
        return [
            {
                "id": str(d.id),
                "name": d.name,
                "type": d.device_type.value if d.device_type else None,
                "data": results_by_mac.get(d.mac, {}),
            }
            for d in devices
        ]

    async def _load(self, db: AsyncSession, device_ids: list[UUID], user_id: UUID) -> list[Device]:
        if len(device_ids) > settings.MAX_COMPARISON_DEVICES:
            raise ComparisonError(
                f"Cannot compare more than {settings.MAX_COMPARISON_DEVICES} devices at once"
            )
        devices = await device_service.get_user_devices_by_ids(db, device_ids, user_id)
        if not devices:
            raise ComparisonError("No devices found")
        return devices

    async def compare_history(
        self,
        db: AsyncSession,
        device_ids: list[UUID],
        user_id: UUID,
        time_range: TimeRange
    ) -> dict:
        devices = await self._load(db, device_ids, user_id)
        start, end = time_range.as_vendor_strings()
        results = await ecowitt_service.get_multiple_history(devices, start, end)
        return {
            "timeRange": {"startTime": start, "endTime": end, "description": time_range.description},
            "devices": self._entries(devices, results),
        }

    async def compare_realtime(self, db: AsyncSession, device_ids: list[UUID], user_id: UUID) -> dict:
        devices = await self._load(db, device_ids, user_id)
        results = await ecowitt_service.get_multiple_realtime(devices)
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "devices": self._entries(devices, results),
        }


comparison_service = ComparisonService()
