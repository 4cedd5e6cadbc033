"""
Symbolic time-range resolution for history queries
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional


class InvalidRange(ValueError):
    """Raised when a range tag is not recognised"""


class TimeRangeType(str, Enum):
    ONE_HOUR = "one_hour"
    ONE_DAY = "one_day"
    ONE_WEEK = "one_week"
    ONE_MONTH = "one_month"
    THREE_MONTHS = "three_months"
    LAST_24_HOURS = "last24hours"
    LAST_7_DAYS = "last7days"
    LAST_30_DAYS = "last30days"


# Short tags used by the report and comparison bodies
RANGE_ALIASES = {
    "hour": TimeRangeType.ONE_HOUR,
    "day": TimeRangeType.ONE_DAY,
    "week": TimeRangeType.ONE_WEEK,
    "month": TimeRangeType.ONE_MONTH,
    "3months": TimeRangeType.THREE_MONTHS,
}

RANGE_DESCRIPTIONS = {
    TimeRangeType.ONE_HOUR: "Last hour",
    TimeRangeType.ONE_DAY: "Last day",
    TimeRangeType.ONE_WEEK: "Last week",
    TimeRangeType.ONE_MONTH: "Last month",
    TimeRangeType.THREE_MONTHS: "Last 3 months",
    TimeRangeType.LAST_24_HOURS: "Last 24 hours",
    TimeRangeType.LAST_7_DAYS: "Last 7 days",
    TimeRangeType.LAST_30_DAYS: "Last 30 days",
}

# Ordered from finest to coarsest
RESOLUTIONS = ("5min", "30min", "4hour", "1day")

_FIXED_SPANS = {
    TimeRangeType.ONE_HOUR: timedelta(hours=1),
    TimeRangeType.ONE_DAY: timedelta(days=1),
    TimeRangeType.ONE_WEEK: timedelta(days=7),
    TimeRangeType.LAST_24_HOURS: timedelta(hours=24),
    TimeRangeType.LAST_7_DAYS: timedelta(days=7),
    TimeRangeType.LAST_30_DAYS: timedelta(days=30),
}

_CALENDAR_MONTHS = {
    TimeRangeType.ONE_MONTH: 1,
    TimeRangeType.THREE_MONTHS: 3,
}


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime
    description: str
    resolution: str

    def as_vendor_strings(self) -> tuple[str, str]:
        """ISO-8601 bounds as sent to the vendor API"""
        return _iso(self.start), _iso(self.end)

    def to_dict(self) -> dict:
        return {
            "start": _iso(self.start),
            "end": _iso(self.end),
            "description": self.description,
            "resolution": self.resolution,
        }


def _iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def _months_back(moment: datetime, months: int) -> datetime:
    """Same day-of-month N calendar months earlier, clamped to month end"""
    year = moment.year
    month = moment.month - months
    while month < 1:
        month += 12
        year -= 1
    day = moment.day
    while True:
        try:
            return moment.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1


def parse_range_tag(tag) -> TimeRangeType:
    """Map a canonical tag or alias to a TimeRangeType"""
    if isinstance(tag, TimeRangeType):
        return tag
    if not isinstance(tag, str):
        raise InvalidRange(f"Invalid time range type: {tag!r}")
    key = tag.strip()
    if key in RANGE_ALIASES:
        return RANGE_ALIASES[key]
    try:
        return TimeRangeType(key)
    except ValueError:
        valid = [t.value for t in TimeRangeType] + list(RANGE_ALIASES)
        raise InvalidRange(f"Invalid time range type: {tag}. Valid types: {', '.join(valid)}")


def resolve_resolution(start: datetime, end: datetime) -> str:
    """Suggested vendor cycle for a span: finer buckets for short ranges"""
    hours = (end - start).total_seconds() / 3600
    if hours <= 24:
        return "5min"
    if hours <= 24 * 7:
        return "30min"
    # A calendar month spans up to 31 days
    if hours <= 24 * 31:
        return "4hour"
    return "1day"


def get_time_range(tag, now: Optional[datetime] = None) -> TimeRange:
    """Resolve a range tag to concrete bounds anchored at now"""
    range_type = parse_range_tag(tag)
    end = now or datetime.now(timezone.utc)
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)

    if range_type in _FIXED_SPANS:
        start = end - _FIXED_SPANS[range_type]
    else:
        start = _months_back(end, _CALENDAR_MONTHS[range_type])

    return TimeRange(
        start=start,
        end=end,
        description=RANGE_DESCRIPTIONS[range_type],
        resolution=resolve_resolution(start, end),
    )


def describe_span(start, end) -> str:
    """Human description for an arbitrary span"""
    if isinstance(start, str):
        start = datetime.fromisoformat(start.replace("Z", "+00:00"))
    if isinstance(end, str):
        end = datetime.fromisoformat(end.replace("Z", "+00:00"))
    seconds = (end - start).total_seconds()
    hours = round(seconds / 3600)
    days = round(seconds / 86400)
    if hours <= 1:
        return "Last hour"
    if hours <= 24:
        return "Last day"
    if days <= 7:
        return "Last week"
    if days <= 31:
        return "Last month"
    if days <= 92:
        return "Last 3 months"
    return f"{days} days"
