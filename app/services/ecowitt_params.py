"""
EcoWitt request parameter construction and validation

Validators never raise: they return a list of human-readable messages so the
caller can decide whether to proceed.
"""
import re
from datetime import datetime, timezone
from typing import Optional

# Temperature
TEMP_CELSIUS = 1
TEMP_FAHRENHEIT = 2
# Pressure
PRESSURE_HPA = 3
PRESSURE_INHG = 4
PRESSURE_MMHG = 5
# Wind speed
WIND_MPS = 6
WIND_KMH = 7
WIND_KNOTS = 8
WIND_MPH = 9
WIND_BFT = 10
WIND_FPM = 11
# Rainfall
RAIN_MM = 12
RAIN_IN = 13
# Solar irradiance
SOLAR_LUX = 14
SOLAR_FC = 15
SOLAR_WM2 = 16
# Capacity
CAPACITY_L = 24
CAPACITY_M3 = 25
CAPACITY_GAL = 26

DEFAULT_UNITS = {
    "temp_unitid": TEMP_FAHRENHEIT,
    "pressure_unitid": PRESSURE_INHG,
    "wind_speed_unitid": WIND_MPH,
    "rainfall_unitid": RAIN_IN,
    "solar_irradiance_unitid": SOLAR_WM2,
    "capacity_unitid": CAPACITY_L,
}

METRIC_UNITS = {
    "temp_unitid": TEMP_CELSIUS,
    "pressure_unitid": PRESSURE_HPA,
    "wind_speed_unitid": WIND_MPS,
    "rainfall_unitid": RAIN_MM,
}

CYCLE_TYPES = ("auto", "5min", "30min", "4hour", "1day")

MAC_PATTERN = re.compile(r"^([0-9A-Fa-f]{2}[:-]){5}([0-9A-Fa-f]{2})$")
IMEI_PATTERN = re.compile(r"^\d{15}$")


def is_valid_mac(mac) -> bool:
    return isinstance(mac, str) and bool(MAC_PATTERN.match(mac))


def is_valid_imei(imei) -> bool:
    return isinstance(imei, str) and bool(IMEI_PATTERN.match(imei))


def normalize_mac(mac: str) -> str:
    """Upper-case, colon separated form of a MAC address"""
    digits = re.sub(r"[^0-9A-Fa-f]", "", mac).upper()
    return ":".join(digits[i:i + 2] for i in range(0, len(digits), 2))


def _parse_iso(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _identity(mac: Optional[str], imei: Optional[str]) -> dict:
    identity = {}
    if mac:
        identity["mac"] = mac
    if imei:
        identity["imei"] = imei
    return identity


def build_realtime_params(
    application_key: str,
    api_key: str,
    mac: Optional[str] = None,
    imei: Optional[str] = None,
    call_back: str = "all",
    unit_overrides: Optional[dict] = None
) -> dict:
    params = {
        "application_key": application_key,
        "api_key": api_key,
        **_identity(mac, imei),
        "call_back": call_back,
        **DEFAULT_UNITS,
    }
    params.update(unit_overrides or {})
    return params


def build_history_params(
    application_key: str,
    api_key: str,
    start_date: str,
    end_date: str,
    mac: Optional[str] = None,
    imei: Optional[str] = None,
    call_back: str = "indoor",
    cycle_type: str = "auto",
    unit_overrides: Optional[dict] = None
) -> dict:
    params = {
        "application_key": application_key,
        "api_key": api_key,
        **_identity(mac, imei),
        "start_date": start_date,
        "end_date": end_date,
        "call_back": call_back,
        "cycle_type": cycle_type,
        **DEFAULT_UNITS,
    }
    params.update(unit_overrides or {})
    return params


def build_info_params(
    application_key: str,
    api_key: str,
    mac: Optional[str] = None,
    imei: Optional[str] = None
) -> dict:
    return {
        "application_key": application_key,
        "api_key": api_key,
        **_identity(mac, imei),
        **DEFAULT_UNITS,
    }


def _validate_common(params: dict) -> list[str]:
    errors = []
    if not params.get("application_key"):
        errors.append("application_key is required")
    if not params.get("api_key"):
        errors.append("api_key is required")

    mac = params.get("mac")
    imei = params.get("imei")
    if not mac and not imei:
        errors.append("Either mac or imei must be provided")
    if mac and imei:
        errors.append("Both mac and imei cannot be provided at the same time")
    if mac and not is_valid_mac(mac):
        errors.append("mac must be in format FF:FF:FF:FF:FF:FF")
    if imei and not is_valid_imei(imei):
        errors.append("imei must be a 15-digit number")
    return errors


def validate_realtime_params(params: dict) -> list[str]:
    return _validate_common(params)


def validate_info_params(params: dict) -> list[str]:
    return _validate_common(params)


def validate_history_params(params: dict) -> list[str]:
    errors = _validate_common(params)

    start_raw = params.get("start_date")
    end_raw = params.get("end_date")
    if not start_raw:
        errors.append("start_date is required")
    if not end_raw:
        errors.append("end_date is required")
    if not params.get("call_back"):
        errors.append("call_back is required")

    cycle_type = params.get("cycle_type")
    if cycle_type and cycle_type not in CYCLE_TYPES:
        errors.append(f"cycle_type must be one of {', '.join(CYCLE_TYPES)}")

    start = _parse_iso(start_raw) if start_raw else None
    end = _parse_iso(end_raw) if end_raw else None
    if start_raw and start is None:
        errors.append("start_date must be in ISO8601 format")
    if end_raw and end is None:
        errors.append("end_date must be in ISO8601 format")
    if start and end and start >= end:
        errors.append("start_date must be before end_date")
    return errors
