"""
PDF rendering of device and group reports with reportlab
"""
import io
import logging
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, PageBreak

logger = logging.getLogger(__name__)

QUANTITY_LABELS = {
    "temperature": "Temperature",
    "humidity": "Humidity",
    "pressure": "Pressure",
    "soilMoisture": "Soil moisture",
}

_styles = getSampleStyleSheet()

TABLE_STYLE = TableStyle([
    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#2e7d32")),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTSIZE", (0, 0), (-1, -1), 9),
    ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f1f8e9")]),
    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
])


def _fmt(value) -> str:
    if value is None or value == "":
        return "N/A"
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def _table(header: list, rows: list) -> Table:
    table = Table([header] + rows, hAlign="LEFT")
    table.setStyle(TABLE_STYLE)
    return table


def _characteristics_section(characteristics: dict) -> list:
    location = characteristics.get("location") or {}
    rows = [
        ["Name", _fmt(characteristics.get("name"))],
        ["MAC", _fmt(characteristics.get("mac"))],
        ["Type", _fmt(characteristics.get("type"))],
        ["Station type", _fmt(characteristics.get("stationType"))],
        ["Timezone", _fmt(characteristics.get("timezone"))],
        ["Created", _fmt(characteristics.get("createdAt"))],
        ["Location", f"{_fmt(location.get('latitude'))}, {_fmt(location.get('longitude'))}"],
        ["Last update", _fmt(characteristics.get("lastUpdate"))],
    ]
    return [Paragraph("Device characteristics", _styles["Heading2"]), _table(["Field", "Value"], rows)]


def _readings_section(normalized: Optional[dict]) -> list:
    flow = [Paragraph("Current readings", _styles["Heading2"])]
    if not normalized:
        flow.append(Paragraph("The device did not return realtime data.", _styles["Normal"]))
        return flow
    rows = []
    for key, label in QUANTITY_LABELS.items():
        reading = normalized.get(key)
        if reading:
            rows.append([label, _fmt(reading.get("value")), _fmt(reading.get("unit"))])
        else:
            rows.append([label, "N/A", ""])
    flow.append(_table(["Quantity", "Value", "Unit"], rows))
    return flow


def _weather_section(weather: Optional[dict]) -> list:
    flow = [Paragraph("Weather", _styles["Heading2"])]
    if not weather:
        flow.append(Paragraph("No weather data available for this location.", _styles["Normal"]))
        return flow
    current = weather.get("current") or {}
    conditions = current.get("weather") or []
    description = conditions[0].get("description") if conditions and isinstance(conditions[0], dict) else None
    rows = [
        ["Conditions", _fmt(description)],
        ["Temperature (°C)", _fmt(current.get("temperature"))],
        ["Feels like (°C)", _fmt(current.get("feelsLike"))],
        ["Humidity (%)", _fmt(current.get("humidity"))],
        ["Pressure (hPa)", _fmt(current.get("pressure"))],
        ["Wind speed (m/s)", _fmt(current.get("windSpeed"))],
        ["Wind direction (°)", _fmt(current.get("windDirection"))],
        ["UV index", _fmt(current.get("uvi"))],
        ["Clouds (%)", _fmt(current.get("clouds"))],
        ["Dew point (°C)", _fmt(current.get("dewPoint"))],
    ]
    flow.append(_table(["Metric", "Value"], rows))

    daily = (weather.get("forecast") or {}).get("daily") or []
    if daily:
        forecast_rows = []
        for day in daily:
            temp = day.get("temp") or {}
            forecast_rows.append([
                _fmt(day.get("dt")),
                _fmt(temp.get("min")),
                _fmt(temp.get("max")),
                _fmt(day.get("humidity")),
                _fmt(day.get("pop")),
            ])
        flow += [
            Spacer(1, 4 * mm),
            Paragraph("Daily forecast", _styles["Heading3"]),
            _table(["Date (unix)", "Min", "Max", "Humidity", "Rain prob."], forecast_rows),
        ]
    return flow


def _history_section(normalized_history: Optional[dict], metadata: dict) -> list:
    flow = [Paragraph("Historical statistics", _styles["Heading2"])]
    if not metadata.get("hasHistoricalData") or not normalized_history:
        flow.append(Paragraph("No historical data found for the requested period.", _styles["Normal"]))
        return flow
    rows = []
    for key, label in QUANTITY_LABELS.items():
        stats = (normalized_history.get(key) or {}).get("stats") or {}
        rows.append([
            label,
            _fmt(stats.get("min")),
            _fmt(stats.get("max")),
            _fmt(stats.get("avg")),
            _fmt(stats.get("count")),
        ])
    flow.append(_table(["Quantity", "Min", "Max", "Avg", "Samples"], rows))
    return flow


def _diagnostic_section(diagnostic: Optional[dict]) -> list:
    if not diagnostic:
        return []
    summary = diagnostic.get("summary") or {}
    best = summary.get("bestConfiguration")
    flow = [
        Paragraph("History diagnostic", _styles["Heading2"]),
        Paragraph(
            f"{summary.get('successfulTests', 0)} of {summary.get('totalTests', 0)} configurations returned data. "
            f"Best configuration: {best['test'] if best else 'none'}.",
            _styles["Normal"]
        ),
    ]
    rows = [
        [c.get("test"), "yes" if c.get("hasData") else "no", _fmt(c.get("dataCount")), _fmt(c.get("error"))]
        for c in summary.get("allConfigurations") or []
    ]
    if rows:
        flow.append(_table(["Configuration", "Data", "Keys", "Error"], rows))
    return flow


def _device_flowables(report: dict) -> list:
    device = report.get("device") or {}
    device_data = report.get("deviceData") or {}
    normalized = device_data.get("normalized") or {}
    metadata = report.get("metadata") or {}
    time_range = report.get("timeRange")

    flow = [
        Paragraph(f"Weather report: {escape(str(device.get('name', '')))}", _styles["Title"]),
        Paragraph(f"Generated at {report.get('generatedAt', '')}", _styles["Normal"]),
    ]
    if time_range:
        flow.append(Paragraph(
            f"Period: {time_range.get('description')} ({time_range.get('start')} to {time_range.get('end')})",
            _styles["Normal"]
        ))
    flow.append(Paragraph(
        f"Status: {'online' if metadata.get('deviceOnline') else 'offline'}",
        _styles["Normal"]
    ))
    flow.append(Spacer(1, 6 * mm))
    flow += _characteristics_section(device.get("characteristics") or {})
    flow += _readings_section(normalized.get("realtime"))
    flow += _weather_section(report.get("weather"))
    if metadata.get("includeHistory"):
        flow += _history_section(normalized.get("historical"), metadata)
    flow += _diagnostic_section(device_data.get("diagnostic"))
    return flow


def _build(flowables: list, title: str) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title=title,
        leftMargin=18 * mm,
        rightMargin=18 * mm,
        topMargin=18 * mm,
        bottomMargin=18 * mm
    )
    doc.build(flowables)
    return buffer.getvalue()


def render_device_report(report: dict) -> bytes:
    name = (report.get("device") or {}).get("name", "device")
    return _build(_device_flowables(report), f"Weather report {name}")


def render_group_report(report: dict) -> bytes:
    group = report.get("group") or {}
    metadata = report.get("metadata") or {}

    flow = [
        Paragraph(f"Group weather report: {escape(str(group.get('name', '')))}", _styles["Title"]),
        Paragraph(f"Generated at {report.get('generatedAt', '')}", _styles["Normal"]),
    ]
    if group.get("description"):
        flow.append(Paragraph(escape(group["description"]), _styles["Normal"]))
    flow.append(Spacer(1, 6 * mm))
    flow.append(_table(["Summary", "Value"], [
        ["Devices", _fmt(metadata.get("totalDevices"))],
        ["Successful reports", _fmt(metadata.get("successfulReports"))],
        ["Failed reports", _fmt(metadata.get("failedReports"))],
        ["Devices with history", _fmt(metadata.get("devicesWithHistoricalData"))],
        ["History success rate (%)", _fmt(metadata.get("historicalDataSuccessRate"))],
        ["Devices diagnosed", _fmt(metadata.get("devicesWithDiagnostic"))],
    ]))

    errors = report.get("errors") or []
    if errors:
        flow += [
            Paragraph("Devices without a report", _styles["Heading2"]),
            _table(["Device", "MAC", "Error"], [[e["deviceName"], e["deviceMac"], e["error"]] for e in errors]),
        ]

    for entry in report.get("devices") or []:
        flow.append(PageBreak())
        flow += _device_flowables(entry["report"])

    logger.debug(f"Rendering group report with {len(report.get('devices') or [])} devices")
    return _build(flow, f"Group weather report {group.get('name', '')}")
