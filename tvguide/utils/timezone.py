"""
Date and Time utilities

This module handles all date/time conversions, parsing, and guide time window calculations.
Centralizes all date parsing logic to maintain consistency across the application.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo
import logging

from tvguide.config import MAX_GUIDE_DAYS

logger = logging.getLogger(__name__)

XMLTV_TIME_FORMAT = "%Y%m%d%H%M%S"

# Provider day starts at 04:00Z and ends at 03:59Z the next day
WINDOW_START_OFFSET = timedelta(hours=4)
WINDOW_END_OFFSET = timedelta(hours=3, minutes=59)


class DateFormatError(ValueError):
    """Raised when date format is invalid"""
    pass


@dataclass(frozen=True, slots=True)
class DayWindow:
    """Query window for one day of guide data plus the zone used to display it."""
    day_offset: int
    start_utc: datetime
    end_utc: datetime
    display_zone: tzinfo


def _normalize_iso8601_string(date_str: str) -> str:
    """Normalize ISO8601 string by replacing 'Z' with '+00:00'

    Args:
        date_str: ISO8601 datetime string

    Returns:
        Normalized string with explicit timezone offset
    """
    return date_str.replace('Z', '+00:00') if date_str.endswith('Z') else date_str


def parse_iso8601_to_utc(date_str: str) -> datetime:
    """
    Parse ISO8601 date string and convert to UTC datetime

    This is the single source of truth for date parsing across the application.
    Naive values are interpreted as UTC.

    Args:
        date_str: ISO8601 datetime string (e.g., '2024-03-01T04:00:00Z' or '2024-03-01T04:00:00.000Z')

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateFormatError: If the date string format is invalid
    """
    try:
        normalized = _normalize_iso8601_string(date_str.strip())
        dt = datetime.fromisoformat(normalized)
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (ValueError, AttributeError) as e:
        raise DateFormatError(f"Invalid ISO8601 datetime format: '{date_str}'") from e


def get_zone(zone_name: str) -> tzinfo:
    """Resolve a zone name ('UTC' or IANA)"""
    if zone_name == "UTC":
        return timezone.utc
    return ZoneInfo(zone_name)


def clamp_days(days: int) -> int:
    """Limit the number of guide days to what the provider serves"""
    return max(0, min(days, MAX_GUIDE_DAYS))


def calculate_day_window(day_offset: int, reference: datetime, zone_name: str) -> DayWindow:
    """
    Calculate the UTC query window for a given day offset

    Windows are anchored at UTC midnight of the reference instant. Day N ends at
    03:59Z and day N+1 starts at 04:00Z, matching the provider's day boundary.

    Args:
        day_offset: 0-based day index
        reference: Request reference instant, captured once per request
        zone_name: Display timezone for programme times

    Returns:
        DayWindow with UTC start/end and display zone
    """
    if day_offset < 0:
        raise ValueError(f"day_offset must be >= 0, got {day_offset}")
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)

    base = reference.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    start_utc = base + timedelta(days=day_offset) + WINDOW_START_OFFSET
    end_utc = base + timedelta(days=day_offset + 1) + WINDOW_END_OFFSET

    return DayWindow(
        day_offset=day_offset,
        start_utc=start_utc,
        end_utc=end_utc,
        display_zone=get_zone(zone_name),
    )


def format_api_timestamp(dt: datetime) -> str:
    """Format an instant for grid URLs, e.g. 2024-03-01T04:00:00.000Z"""
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def program_times(start_time: datetime, run_time: float, zone: tzinfo) -> tuple[datetime, datetime]:
    """
    Compute programme start and stop in the display zone

    Stop is derived on absolute time so a DST change inside the programme does
    not shift its duration.

    Args:
        start_time: Aware UTC start instant
        run_time: Duration in minutes
        zone: Display timezone

    Returns:
        Tuple of (start, stop) in the display zone
    """
    start_utc = start_time.astimezone(timezone.utc)
    stop_utc = start_utc + timedelta(minutes=run_time)
    return start_utc.astimezone(zone), stop_utc.astimezone(zone)


def format_xmltv_time(dt: datetime, convention: str) -> str:
    """
    Format an aware datetime as an XMLTV timestamp

    Args:
        dt: Aware datetime
        convention: 'utc' for 'YYYYMMDDHHMMSS +0000', 'local' to keep dt's own offset

    Returns:
        XMLTV time like '20240301040000 +0000' or '20240229210000 -0700'
    """
    if convention == "utc":
        return dt.astimezone(timezone.utc).strftime(XMLTV_TIME_FORMAT) + " +0000"
    if convention == "local":
        return dt.strftime(f"{XMLTV_TIME_FORMAT} %z")
    raise ValueError(f"Unknown offset convention: {convention}")
