"""
Response-shape normalization for EcoWitt payloads

The vendor nests readings under different paths depending on device model and
call parameters. Each quantity has an ordered list of candidate paths; the
first one resolving to a non-null value wins.
"""
from typing import Any, Iterable, Optional

Path = tuple[str, ...]

# History series, in priority order
TEMPERATURE_SERIES_PATHS: tuple[Path, ...] = (
    ("temperature", "data"),
    ("indoor", "list", "indoor", "temperature", "list"),
    ("indoor", "list", "temperature", "list"),
    ("outdoor", "temperature"),
    ("indoor", "temperature"),
    ("temp1c",),
    ("tempf",),
)

HUMIDITY_SERIES_PATHS: tuple[Path, ...] = (
    ("humidity", "data"),
    ("indoor", "list", "indoor", "humidity", "list"),
    ("indoor", "list", "humidity", "list"),
    ("outdoor", "humidity"),
    ("indoor", "humidity"),
    ("humidity1",),
    ("humidity",),
)

PRESSURE_SERIES_PATHS: tuple[Path, ...] = (
    ("pressure", "data"),
    ("pressure", "pressure", "relative"),
    ("pressure", "pressure", "absolute"),
    ("pressure", "list", "pressure", "relative", "list"),
    ("pressure", "list", "pressure", "absolute", "list"),
    ("pressure", "list", "relative", "list"),
    ("pressure", "list", "absolute", "list"),
    ("pressure", "list", "relative"),
    ("pressure", "list", "absolute"),
    ("pressure", "relative"),
    ("pressure", "absolute"),
    ("baromrelin",),
    ("baromabsin",),
)

SOIL_MOISTURE_SERIES_PATHS: tuple[Path, ...] = (
    ("soilMoisture", "data"),
    ("soilMoisture", "primary", "data"),
    ("soil_ch1", "list", "soilmoisture", "list"),
    ("soil_ch1", "list", "soilmoisture"),
    ("soil_ch1", "soilmoisture"),
    ("soil_ch2", "list", "soilmoisture", "list"),
    ("soil_ch2", "list", "soilmoisture"),
    ("soil_ch2", "soilmoisture"),
    ("soilmoisture1",),
)

SERIES_STRATEGIES = {
    "temperature": TEMPERATURE_SERIES_PATHS,
    "humidity": HUMIDITY_SERIES_PATHS,
    "pressure": PRESSURE_SERIES_PATHS,
    "soilMoisture": SOIL_MOISTURE_SERIES_PATHS,
}

# Realtime snapshot readings ({value, unit, time}), in priority order
TEMPERATURE_READING_PATHS: tuple[Path, ...] = (
    ("outdoor", "temperature"),
    ("indoor", "temperature"),
    ("tempf",),
    ("tempc",),
    ("tempinf",),
)

HUMIDITY_READING_PATHS: tuple[Path, ...] = (
    ("outdoor", "humidity"),
    ("indoor", "humidity"),
    ("humidity",),
    ("humidityin",),
)

PRESSURE_READING_PATHS: tuple[Path, ...] = (
    ("pressure", "relative"),
    ("pressure", "absolute"),
    ("baromrelin",),
    ("baromabsin",),
)

SOIL_MOISTURE_READING_PATHS: tuple[Path, ...] = (
    ("soil_ch1", "soilmoisture"),
    ("soil_ch2", "soilmoisture"),
    ("soilmoisture1",),
)

READING_STRATEGIES = {
    "temperature": TEMPERATURE_READING_PATHS,
    "humidity": HUMIDITY_READING_PATHS,
    "pressure": PRESSURE_READING_PATHS,
    "soilMoisture": SOIL_MOISTURE_READING_PATHS,
}


def unwrap(payload: Any) -> Any:
    """Vendor envelopes carry readings under "data"; accept either form"""
    if isinstance(payload, dict) and "code" in payload and "data" in payload:
        return payload["data"]
    return payload


def resolve_path(payload: Any, path: Path) -> Any:
    node = payload
    for key in path:
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


def _to_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_series(node: Any) -> list[dict]:
    """
    Convert {data: {ts: v}}, {list: {ts: v}} or a flat {ts: v} mapping into
    [{"time": ms, "value": float}] sorted by time. Timestamps are seconds.
    """
    if not isinstance(node, dict):
        return []
    if isinstance(node.get("data"), dict):
        node = node["data"]
    elif isinstance(node.get("list"), dict):
        node = node["list"]

    series = []
    for ts, raw in node.items():
        seconds = _to_float(ts)
        value = _to_float(raw)
        if seconds is None or value is None:
            continue
        series.append({"time": int(seconds * 1000), "value": value})
    series.sort(key=lambda point: point["time"])
    return series


def series_stats(series: list[dict]) -> dict:
    if not series:
        return {"min": None, "max": None, "avg": None, "count": 0}
    values = [point["value"] for point in series]
    return {
        "min": min(values),
        "max": max(values),
        "avg": round(sum(values) / len(values), 2),
        "count": len(values),
    }


def to_reading(node: Any) -> Optional[dict]:
    """A realtime node is either {value, unit, time} or a bare scalar"""
    if isinstance(node, dict):
        value = _to_float(node.get("value"))
        if value is None:
            return None
        return {"value": value, "unit": node.get("unit"), "time": node.get("time")}
    value = _to_float(node)
    if value is None:
        return None
    return {"value": value, "unit": None, "time": None}


def extract_series(payload: Any, paths: Iterable[Path]) -> list[dict]:
    """First strategy that yields a non-empty series"""
    data = unwrap(payload)
    for path in paths:
        series = to_series(resolve_path(data, path))
        if series:
            return series
    return []


def extract_reading(payload: Any, paths: Iterable[Path]) -> Optional[dict]:
    """First strategy that yields a numeric reading"""
    data = unwrap(payload)
    for path in paths:
        reading = to_reading(resolve_path(data, path))
        if reading is not None:
            return reading
    return None


def normalize_realtime(payload: Any) -> dict:
    """Flatten a realtime payload into one reading per quantity"""
    return {name: extract_reading(payload, paths) for name, paths in READING_STRATEGIES.items()}


def normalize_history(payload: Any) -> dict:
    """Flatten a history payload into a series and stats per quantity"""
    result = {}
    for name, paths in SERIES_STRATEGIES.items():
        series = extract_series(payload, paths)
        result[name] = {"series": series, "stats": series_stats(series)}
    return result
