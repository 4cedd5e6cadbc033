"""
EcoWitt vendor API client

Wraps the real_time, history and info endpoints. Each call validates its
parameter set before going out. There is no retry policy: a vendor error or
timeout propagates to the caller, who reports it or degrades.
"""
import asyncio
import logging
from typing import Iterable, Optional

import httpx

from app.core.config import settings
from app.services.ecowitt_params import (
    build_realtime_params, build_history_params, build_info_params,
    validate_realtime_params, validate_history_params, validate_info_params
)

logger = logging.getLogger(__name__)


class EcowittAPIError(Exception):
    """Vendor call failed (transport, HTTP status or non-zero response code)"""


class EcowittValidationError(EcowittAPIError):
    """Parameter set rejected before calling the vendor"""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Validation errors: {', '.join(errors)}")


class EcowittService:
    """Async client for the EcoWitt v3 REST API"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.ECOWITT_API_BASE).rstrip("/")
        self.http_client = httpx.AsyncClient(
            timeout=timeout or settings.ECOWITT_TIMEOUT_SECONDS,
            transport=transport
        )

    async def close(self):
        await self.http_client.aclose()

    async def _get(self, path: str, params: dict) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = await self.http_client.get(url, params=params)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise EcowittAPIError(f"Ecowitt API Error: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise EcowittAPIError(f"Ecowitt API Error: {e}") from e
        except ValueError as e:
            raise EcowittAPIError("Ecowitt API Error: response is not valid JSON") from e

        if not isinstance(body, dict):
            raise EcowittAPIError("Ecowitt API Error: unexpected response shape")
        if body.get("code") != 0:
            logger.warning(f"EcoWitt {path} returned code={body.get('code')} msg={body.get('msg')}")
            raise EcowittAPIError(f"Ecowitt API Error: {body.get('msg') or 'unknown error'}")
        return body

    async def get_realtime(self, application_key: str, api_key: str, mac: str) -> dict:
        """Current sensor snapshot for one device"""
        params = build_realtime_params(application_key, api_key, mac=mac)
        errors = validate_realtime_params(params)
        if errors:
            raise EcowittValidationError(errors)
        return await self._get("/device/real_time", params)

    async def get_history(
        self,
        application_key: str,
        api_key: str,
        mac: str,
        start_date: str,
        end_date: str,
        call_back: str = "indoor",
        cycle_type: str = "auto",
        unit_overrides: Optional[dict] = None
    ) -> dict:
        """Time-bounded series of past readings for one device"""
        params = build_history_params(
            application_key, api_key, start_date, end_date,
            mac=mac,
            call_back=call_back,
            cycle_type=cycle_type,
            unit_overrides=unit_overrides
        )
        errors = validate_history_params(params)
        if errors:
            raise EcowittValidationError(errors)
        return await self._get("/device/history", params)

    async def get_info(self, application_key: str, api_key: str, mac: str) -> dict:
        """Device characteristics (location, station type, timezone)"""
        params = build_info_params(application_key, api_key, mac=mac)
        errors = validate_info_params(params)
        if errors:
            raise EcowittValidationError(errors)
        return await self._get("/device/info", params)

    @staticmethod
    async def _capture(device, call) -> tuple[str, dict]:
        try:
            return device.mac, await call
        except Exception as e:
            logger.warning(f"EcoWitt call failed for {device.mac}: {e}")
            return device.mac, {"error": str(e) or e.__class__.__name__}

    async def get_multiple_realtime(self, devices: Iterable) -> dict:
        """
        Realtime snapshots for many devices, fetched concurrently.
        Returns one entry per device keyed by MAC: the payload or {"error": msg}.
        """
        devices = list(devices)
        results = await asyncio.gather(*(
            self._capture(d, self.get_realtime(d.application_key, d.api_key, d.mac))
            for d in devices
        ))
        return dict(results)

    async def get_multiple_history(self, devices: Iterable, start_date: str, end_date: str) -> dict:
        """History for many devices, fetched concurrently and keyed by MAC"""
        devices = list(devices)
        results = await asyncio.gather(*(
            self._capture(d, self.get_history(d.application_key, d.api_key, d.mac, start_date, end_date))
            for d in devices
        ))
        return dict(results)


ecowitt_service = EcowittService()
