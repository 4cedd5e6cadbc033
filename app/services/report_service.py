"""
Device and group weather reports

A device report combines registry data, vendor info, the realtime snapshot,
the OpenWeather overview for the station's coordinates and, optionally,
history. When the first history call yields nothing usable, a fixed sweep of
alternate parameter combinations is tried once each.
"""
import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Device, DeviceGroup
from app.services.device_service import device_service
from app.services.group_service import group_service
from app.services.ecowitt_params import METRIC_UNITS
from app.services.ecowitt_service import ecowitt_service
from app.services.extractors import normalize_realtime, normalize_history
from app.services.time_ranges import TimeRange, describe_span
from app.services.weather_service import weather_service

logger = logging.getLogger(__name__)


class ReportError(Exception):
    """Report cannot be produced for the requested target"""


class ReportNotFoundError(ReportError):
    """Device or group missing or not owned by the caller"""


@dataclass(frozen=True)
class DiagnosticConfig:
    name: str
    call_back: str
    cycle_type: str
    unit_overrides: dict = field(default_factory=dict)

    def to_params(self) -> dict:
        return {
            "call_back": self.call_back,
            "cycle_type": self.cycle_type,
            **self.unit_overrides,
        }


DIAGNOSTIC_CONFIGURATIONS = (
    DiagnosticConfig("Indoor Auto", "indoor", "auto"),
    DiagnosticConfig("Outdoor Auto", "outdoor", "auto"),
    DiagnosticConfig("Indoor 5min", "indoor", "5min"),
    DiagnosticConfig("Outdoor 5min", "outdoor", "5min"),
    DiagnosticConfig("Indoor Metric", "indoor", "auto", dict(METRIC_UNITS)),
    DiagnosticConfig("Outdoor Metric", "outdoor", "auto", dict(METRIC_UNITS)),
)

# The plain history call uses these parameters, so its outcome stands in for the first sweep entry
PRIMARY_CONFIGURATION = DIAGNOSTIC_CONFIGURATIONS[0]


def history_data(response: Optional[dict]) -> dict:
    """The "data" mapping of a history response, or {} when unusable"""
    if not isinstance(response, dict):
        return {}
    data = response.get("data")
    return data if isinstance(data, dict) else {}


def has_usable_history(response: Optional[dict]) -> bool:
    return bool(history_data(response))


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso_now() -> str:
    return _now().isoformat().replace("+00:00", "Z")


def _to_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def sanitize_name(name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9\s-]", "", name or "")
    return re.sub(r"\s+", "-", cleaned.strip())


def build_file_name(kind: str, name: str, fmt: str = "pdf", now: Optional[datetime] = None) -> str:
    """weather-report-{device|group}-{name}-{YYYY-MM-DD-HH-MM-SS}.{fmt}"""
    stamp = (now or _now()).strftime("%Y-%m-%d-%H-%M-%S")
    return f"weather-report-{kind}-{sanitize_name(name)}-{stamp}.{fmt}"


def build_characteristics(device: Device, info: Optional[dict]) -> dict:
    """Merge vendor info over registry data; registry values fill any gaps"""
    data = (info or {}).get("data") or {}
    created = _to_float(data.get("createtime"))
    if created:
        created_at = datetime.fromtimestamp(created, tz=timezone.utc).isoformat()
    elif device.created_at:
        created_at = device.created_at.isoformat()
    else:
        created_at = None

    return {
        "id": data.get("id") or str(device.id),
        "name": data.get("name") or device.name,
        "mac": data.get("mac") or device.mac,
        "type": data.get("type") or (device.device_type.value if device.device_type else None),
        "stationType": data.get("stationtype"),
        "timezone": data.get("date_zone_id"),
        "createdAt": created_at,
        "location": {
            "latitude": _to_float(data.get("latitude")) or 0,
            "longitude": _to_float(data.get("longitude")) or 0,
            "elevation": 0,
        },
        "lastUpdate": data.get("last_update"),
    }


def build_weather_block(overview: Optional[dict]) -> Optional[dict]:
    if not overview:
        return None
    current = overview.get("current") or {}
    return {
        "current": {
            "temperature": current.get("temp"),
            "feelsLike": current.get("feels_like"),
            "humidity": current.get("humidity"),
            "pressure": current.get("pressure"),
            "windSpeed": current.get("wind_speed"),
            "windDirection": current.get("wind_deg"),
            "visibility": current.get("visibility"),
            "weather": current.get("weather"),
            "sunrise": current.get("sunrise"),
            "sunset": current.get("sunset"),
            "uvi": current.get("uvi"),
            "clouds": current.get("clouds"),
            "dewPoint": current.get("dew_point"),
        },
        "forecast": {
            "daily": overview.get("daily") or [],
            "hourly": overview.get("hourly") or [],
        },
        "location": overview.get("location"),
    }


def time_range_block(time_range: Optional[TimeRange]) -> Optional[dict]:
    if time_range is None:
        return None
    start, end = time_range.as_vendor_strings()
    return {"start": start, "end": end, "description": describe_span(start, end)}


@dataclass
class DiagnosticResult:
    tests: list
    summary: dict
    best_response: Optional[dict]


class ReportService:
    """Builds report documents; rendering and upload happen in the route"""

    async def _history_for(self, device: Device, start: str, end: str, config: DiagnosticConfig) -> dict:
        return await ecowitt_service.get_history(
            device.application_key, device.api_key, device.mac, start, end,
            call_back=config.call_back,
            cycle_type=config.cycle_type,
            unit_overrides=config.unit_overrides
        )

    async def run_diagnostic_sweep(
        self,
        device: Device,
        start: str,
        end: str,
        known: Optional[dict] = None
    ) -> DiagnosticResult:
        """
        Try every configuration once, in order. The best one is the first with
        the largest number of distinct data keys.

        known maps a configuration name to an outcome already obtained (a
        response or the exception it raised); those are not requested again.
        """
        known = known or {}
        tests = []
        responses = []
        for config in DIAGNOSTIC_CONFIGURATIONS:
            entry = {"test": config.name, "params": config.to_params()}
            try:
                if config.name in known:
                    response = known[config.name]
                    if isinstance(response, Exception):
                        raise response
                else:
                    response = await self._history_for(device, start, end, config)
                keys = list(history_data(response))
                entry.update(hasData=bool(keys), dataKeys=keys, dataCount=len(keys), error=None)
            except Exception as e:
                response = None
                entry.update(hasData=False, dataKeys=[], dataCount=0, error=str(e) or e.__class__.__name__)
            tests.append(entry)
            responses.append(response)

        successful = [i for i, t in enumerate(tests) if t["hasData"]]
        best_index = max(successful, key=lambda i: tests[i]["dataCount"]) if successful else None
        best = tests[best_index] if best_index is not None else None

        summary = {
            "totalTests": len(tests),
            "successfulTests": len(successful),
            "bestConfiguration": {
                "test": best["test"],
                "dataKeys": best["dataKeys"],
                "hasData": best["hasData"],
            } if best else None,
            "allConfigurations": [
                {"test": t["test"], "hasData": t["hasData"], "dataCount": t["dataCount"], "error": t["error"]}
                for t in tests
            ],
        }
        logger.info(
            f"Diagnostic sweep for {device.mac}: {len(successful)}/{len(tests)} configurations returned data"
        )
        return DiagnosticResult(
            tests=tests,
            summary=summary,
            best_response=responses[best_index] if best_index is not None else None
        )

    async def _fetch_history(self, device: Device, time_range: TimeRange) -> tuple[Optional[dict], Optional[DiagnosticResult]]:
        start, end = time_range.as_vendor_strings()
        history = None
        try:
            history = await self._history_for(device, start, end, PRIMARY_CONFIGURATION)
            outcome = history
        except Exception as e:
            logger.warning(f"History for {device.mac} failed, running diagnostic sweep: {e}")
            outcome = e

        if has_usable_history(history):
            return history, None

        diagnostic = await self.run_diagnostic_sweep(
            device, start, end, known={PRIMARY_CONFIGURATION.name: outcome}
        )
        if diagnostic.best_response is not None:
            history = diagnostic.best_response
        return history, diagnostic

    async def build_device_report(
        self,
        device: Device,
        include_history: bool = False,
        time_range: Optional[TimeRange] = None
    ) -> dict:
        info = None
        try:
            info = await ecowitt_service.get_info(device.application_key, device.api_key, device.mac)
        except Exception as e:
            logger.warning(f"Device info for {device.mac} unavailable: {e}")

        realtime = None
        try:
            realtime = await ecowitt_service.get_realtime(device.application_key, device.api_key, device.mac)
        except Exception as e:
            logger.warning(f"Realtime for {device.mac} unavailable: {e}")

        overview = None
        info_data = (info or {}).get("data") or {}
        lat, lon = _to_float(info_data.get("latitude")), _to_float(info_data.get("longitude"))
        if lat is not None and lon is not None:
            try:
                overview = await weather_service.get_weather_overview(lat, lon)
            except Exception as e:
                logger.warning(f"Weather for {device.mac} unavailable: {e}")

        history, diagnostic = None, None
        if include_history and time_range is not None:
            history, diagnostic = await self._fetch_history(device, time_range)

        historical = history_data(history)
        characteristics = build_characteristics(device, info)

        return {
            "device": {
                "id": str(device.id),
                "name": device.name,
                "type": device.device_type.value if device.device_type else None,
                "characteristics": characteristics,
            },
            "weather": build_weather_block(overview),
            "deviceData": {
                "realtime": realtime,
                "historical": historical,
                "characteristics": characteristics,
                "normalized": {
                    "realtime": normalize_realtime(realtime) if realtime else None,
                    "historical": normalize_history(history) if historical else None,
                },
                "diagnostic": {
                    "performed": True,
                    "summary": diagnostic.summary,
                    "bestConfiguration": diagnostic.summary["bestConfiguration"],
                } if diagnostic else None,
            },
            "generatedAt": _iso_now(),
            "timeRange": time_range_block(time_range),
            "metadata": {
                "includeHistory": include_history,
                "hasWeatherData": overview is not None,
                "hasHistoricalData": bool(historical),
                "deviceOnline": isinstance(realtime, dict) and realtime.get("code") == 0,
                "diagnosticPerformed": diagnostic is not None,
                "historicalDataKeys": list(historical),
                "diagnosticSummary": diagnostic.summary if diagnostic else None,
            },
        }

    async def generate_device_report(
        self,
        db: AsyncSession,
        device_id: UUID,
        user_id: UUID,
        include_history: bool = False,
        time_range: Optional[TimeRange] = None
    ) -> dict:
        device = await device_service.get_user_device(db, device_id, user_id)
        if device is None:
            raise ReportNotFoundError("Device not found")
        return await self.build_device_report(device, include_history, time_range)

    async def build_group_report(
        self,
        group: DeviceGroup,
        include_history: bool = False,
        time_range: Optional[TimeRange] = None
    ) -> dict:
        devices = group_service.group_devices(group)
        if not devices:
            raise ReportError("Group has no devices")

        device_reports = []
        errors = []
        group_diagnostic = {
            "totalDevices": len(devices),
            "devicesWithHistoricalData": 0,
            "devicesWithDiagnostic": 0,
            "diagnosticResults": [],
        }

        for device in devices:
            try:
                report = await self.build_device_report(device, include_history, time_range)
            except Exception as e:
                logger.error(f"Report for device {device.mac} failed: {e}", exc_info=True)
                errors.append({
                    "deviceId": str(device.id),
                    "deviceName": device.name,
                    "deviceMac": device.mac,
                    "error": str(e) or e.__class__.__name__,
                })
                continue

            metadata = report["metadata"]
            if metadata["hasHistoricalData"]:
                group_diagnostic["devicesWithHistoricalData"] += 1
            if metadata["diagnosticPerformed"]:
                group_diagnostic["devicesWithDiagnostic"] += 1
                group_diagnostic["diagnosticResults"].append({
                    "deviceId": str(device.id),
                    "deviceName": device.name,
                    "deviceMac": device.mac,
                    "diagnostic": report["deviceData"]["diagnostic"],
                })
            device_reports.append({
                "device": {
                    "id": str(device.id),
                    "name": device.name,
                    "type": device.device_type.value if device.device_type else None,
                    "mac": device.mac,
                },
                "report": report,
            })

        total = len(devices)
        with_history = group_diagnostic["devicesWithHistoricalData"]
        with_diagnostic = group_diagnostic["devicesWithDiagnostic"]

        return {
            "group": {
                "id": str(group.id),
                "name": group.name,
                "description": group.description,
                "createdAt": group.created_at.isoformat() if group.created_at else None,
                "deviceCount": len(device_reports),
            },
            "devices": device_reports,
            "errors": errors,
            "generatedAt": _iso_now(),
            "timeRange": time_range_block(time_range),
            "metadata": {
                "includeHistory": include_history,
                "totalDevices": total,
                "successfulReports": len(device_reports),
                "failedReports": len(errors),
                "hasErrors": bool(errors),
                "devicesWithHistoricalData": with_history,
                "devicesWithDiagnostic": with_diagnostic,
                "historicalDataSuccessRate": round(with_history / total * 100) if total else 0,
                "diagnosticSuccessRate": round(with_history / with_diagnostic * 100) if with_diagnostic else 0,
            },
            "groupDiagnostic": group_diagnostic if include_history else None,
        }

    async def generate_group_report(
        self,
        db: AsyncSession,
        group_id: UUID,
        user_id: UUID,
        include_history: bool = False,
        time_range: Optional[TimeRange] = None
    ) -> dict:
        group = await group_service.get_user_group(db, group_id, user_id)
        if group is None:
            raise ReportNotFoundError("Group not found")
        return await self.build_group_report(group, include_history, time_range)

    @staticmethod
    def to_json_bytes(report: dict, report_type: str) -> bytes:
        document = {
            "reportId": str(uuid.uuid4()),
            "generatedAt": _iso_now(),
            "type": report_type,
            "data": report,
        }
        return json.dumps(document, indent=2, default=str).encode("utf-8")


def device_report_summary(report: dict) -> dict:
    metadata = report["metadata"]
    return {
        "deviceId": report["device"]["id"],
        "deviceName": report["device"]["name"],
        "location": report["device"]["characteristics"]["location"],
        "timestamp": report["generatedAt"],
        "includeHistory": metadata["includeHistory"],
        "hasHistoricalData": metadata["hasHistoricalData"],
        "historicalDataKeys": metadata["historicalDataKeys"],
        "diagnosticPerformed": metadata["diagnosticPerformed"],
        "timeRange": report["timeRange"],
        "metadata": metadata,
    }


def group_report_summary(report: dict) -> dict:
    return {
        "groupId": report["group"]["id"],
        "groupName": report["group"]["name"],
        "timestamp": report["generatedAt"],
        "timeRange": report["timeRange"],
        "errors": report["errors"],
        "metadata": report["metadata"],
    }


def device_chat_message(report: dict, fmt: str) -> str:
    """Opening AI message for a chat attached to a device report"""
    device = report["device"]
    location = device["characteristics"]["location"]
    metadata = report["metadata"]
    return f"""I have generated a full report for the device **{device['name']}**.

**Report details:**
- **Device:** {device['name']}
- **Type:** {device['type']}
- **Location:** {location['latitude']}°, {location['longitude']}°
- **Status:** {'Online' if metadata['deviceOnline'] else 'Offline'}
- **Historical data:** {'Included' if metadata['hasHistoricalData'] else 'Not available'}
- **Format:** {fmt.upper()}

**You can ask me about:**
- Analysis of the device data
- Interpretation of the weather conditions
- Recommendations based on historical data
- Comparisons with other periods
- Alerts or anomalies detected

What would you like to know about this device?"""


def group_chat_message(report: dict, fmt: str) -> str:
    """Opening AI message for a chat attached to a group report"""
    metadata = report["metadata"]
    name = report["group"]["name"]
    return f"""I have generated a full report for the group **{name}**.

**Report details:**
- **Group:** {name}
- **Devices:** {metadata['totalDevices']}
- **Successful reports:** {metadata['successfulReports']}
- **Historical data:** {metadata['devicesWithHistoricalData']} devices with historical data
- **Diagnostics performed:** {metadata['devicesWithDiagnostic']}
- **Format:** {fmt.upper()}

**You can ask me about:**
- Comparative analysis between devices
- Weather patterns across locations
- Best performing devices
- Alerts or anomalies detected

What would you like to analyse about this group?"""


report_service = ReportService()
