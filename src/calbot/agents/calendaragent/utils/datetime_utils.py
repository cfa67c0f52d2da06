"""
Calendar Agent Datetime Utilities

This module provides the timezone-aware date arithmetic used by the event parser
and the calendar client:
- resolve_timezone: Turn an IANA name into a pytz timezone (never defaults)
- current_date_info: "What is today" for a given timezone
- combine_date_and_time: Build a local ISO datetime string, adding hours in UTC
- local_day_bounds_utc: Convert a local date range into UTC query instants
- weekend_range / next_weekend_range: Friday-to-Sunday weekend resolution
- to_exclusive_end_date / from_exclusive_end_date: All-day end date conversion
- parse_google_calendar_datetime: Read a Google Calendar start/end payload
"""

from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Tuple

import pytz

from calbot.errors import ConfigurationError

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

# Monday is 0, Friday is 4, Sunday is 6
WEEKEND_START_WEEKDAY = 4
WEEKEND_END_WEEKDAY = 6


def resolve_timezone(timezone: Optional[str]):
    """
    Resolve an IANA timezone name.

    Args:
        timezone: IANA timezone name (e.g. "America/Los_Angeles")

    Returns:
        pytz timezone object

    Raises:
        ConfigurationError: If the timezone is missing or unknown
    """
    if not timezone or not isinstance(timezone, str):
        raise ConfigurationError("Timezone is required for date calculations")
    try:
        return pytz.timezone(timezone)
    except pytz.UnknownTimeZoneError:
        raise ConfigurationError(f"Unknown timezone: {timezone}")


def local_now(timezone: str, now: Optional[datetime] = None) -> datetime:
    """Current moment in the given timezone. ``now`` must be timezone-aware when given."""
    tz = resolve_timezone(timezone)
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    return now.astimezone(tz)


def current_date_info(timezone: str, now: Optional[datetime] = None) -> Dict[str, str]:
    """
    Get timezone-aware current date and day information.

    Args:
        timezone: IANA timezone name
        now: Optional aware datetime to use instead of the wall clock

    Returns:
        Dict with current_date (YYYY-MM-DD) and current_day_name (e.g. "Tuesday")
    """
    today = local_now(timezone, now)
    return {
        "current_date": today.strftime(DATE_FORMAT),
        "current_day_name": today.strftime("%A"),
    }


def parse_date(date_str: str) -> date:
    """Parse a strict YYYY-MM-DD string. Raises ValueError on anything else."""
    if not isinstance(date_str, str):
        raise ValueError(f"Invalid date: {date_str!r}")
    return datetime.strptime(date_str.strip(), DATE_FORMAT).date()


def normalize_time(time_str: str) -> str:
    """
    Normalize a clock time to HH:MM (24h).

    Accepts "9:05", "09:05", "09:05:00", "2pm", "2:30 PM".

    Raises:
        ValueError: If the value is not a recognizable clock time
    """
    if not isinstance(time_str, str) or not time_str.strip():
        raise ValueError(f"Invalid time: {time_str!r}")
    value = time_str.strip().upper()
    for fmt in ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p", "%I %p", "%I%p"):
        try:
            return datetime.strptime(value, fmt).strftime(TIME_FORMAT)
        except ValueError:
            continue
    raise ValueError(f"Invalid time: {time_str!r}")


def combine_date_and_time(date_string: str, time_string: str, hours_to_add: float = 0) -> str:
    """
    Combine date and time strings, optionally adding hours.

    The arithmetic is done on a UTC datetime so adding hours never applies a
    wall-clock DST shift; the components are then rendered back without an
    offset. The caller pairs the string with an explicit timeZone.

    Args:
        date_string: Date in YYYY-MM-DD format
        time_string: Time in HH:MM format
        hours_to_add: Non-negative number of hours to add (may be fractional)

    Returns:
        Combined local date-time in YYYY-MM-DDTHH:MM:00 format
    """
    if hours_to_add is None or hours_to_add < 0:
        raise ValueError(f"hours_to_add must be non-negative, got {hours_to_add!r}")

    day = parse_date(date_string)
    hour, minute = (int(part) for part in normalize_time(time_string).split(":"))

    combined = datetime(day.year, day.month, day.day, hour, minute, tzinfo=pytz.UTC)
    if hours_to_add:
        combined = combined + timedelta(hours=float(hours_to_add))

    return combined.strftime("%Y-%m-%dT%H:%M:00")


def split_local_datetime(value: str) -> Tuple[str, str]:
    """Split "YYYY-MM-DDTHH:MM[:SS]" into ("YYYY-MM-DD", "HH:MM")."""
    date_part, _, time_part = value.partition("T")
    return date_part, time_part[:5]


def add_days(date_string: str, days: int) -> str:
    """Shift a YYYY-MM-DD date by a number of days."""
    return (parse_date(date_string) + timedelta(days=days)).strftime(DATE_FORMAT)


def to_exclusive_end_date(inclusive_end_date: str) -> str:
    """All-day events: the backend wants the day *after* the last day."""
    return add_days(inclusive_end_date, 1)


def from_exclusive_end_date(exclusive_end_date: str) -> str:
    """Inverse of to_exclusive_end_date."""
    return add_days(exclusive_end_date, -1)


def format_utc_instant(dt: datetime) -> str:
    """Render an aware datetime as YYYY-MM-DDTHH:MM:SS.mmmZ in UTC."""
    if dt.tzinfo is None:
        raise ValueError("Datetime must be timezone-aware")
    utc_dt = dt.astimezone(pytz.UTC)
    return utc_dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc_dt.microsecond // 1000:03d}Z"


def parse_utc_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant (``Z`` or explicit offset) into an aware datetime."""
    dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        raise ValueError(f"Instant has no timezone: {value!r}")
    return dt


def local_day_bounds_utc(start_date: str, end_date: str, timezone: str) -> Tuple[str, str]:
    """
    Convert an inclusive local date range into UTC query instants.

    Args:
        start_date: First local day (YYYY-MM-DD)
        end_date: Last local day (YYYY-MM-DD), inclusive
        timezone: IANA timezone the dates are expressed in

    Returns:
        (time_min, time_max) where time_min is local 00:00:00.000 of start_date
        and time_max is local 23:59:59.999 of end_date, both rendered in UTC
    """
    tz = resolve_timezone(timezone)
    start_local = tz.localize(datetime.combine(parse_date(start_date), time.min))
    end_local = tz.localize(datetime.combine(parse_date(end_date), time(23, 59, 59, 999000)))
    return format_utc_instant(start_local), format_utc_instant(end_local)


def weekend_range(today: date) -> Tuple[date, date]:
    """
    The weekend a speaker means by "this weekend".

    Weekends run Friday through Sunday. Monday to Thursday resolve to the coming
    Friday-Sunday; on Friday, Saturday or Sunday the range starts today.
    """
    weekday = today.weekday()
    if weekday >= WEEKEND_START_WEEKDAY:
        start = today
    else:
        start = today + timedelta(days=WEEKEND_START_WEEKDAY - weekday)
    end = today + timedelta(days=WEEKEND_END_WEEKDAY - weekday)
    return start, end


def next_weekend_range(today: date) -> Tuple[date, date]:
    """
    The weekend a speaker means by "next weekend".

    Monday to Thursday this is the coming weekend (same as weekend_range);
    once the weekend has started it is the following one.
    """
    weekday = today.weekday()
    if weekday < WEEKEND_START_WEEKDAY:
        return weekend_range(today)
    start = today + timedelta(days=7 - weekday + WEEKEND_START_WEEKDAY)
    return start, start + timedelta(days=WEEKEND_END_WEEKDAY - WEEKEND_START_WEEKDAY)


def reference_calendar(today: date, days: int = 14) -> List[str]:
    """Lines like "2025-06-24 (Tuesday)" for today and the following days."""
    return [
        f"{(today + timedelta(days=offset)).strftime(DATE_FORMAT)} "
        f"({(today + timedelta(days=offset)).strftime('%A')})"
        for offset in range(days)
    ]


def parse_google_calendar_datetime(payload: Dict[str, str], timezone: str) -> Tuple[str, Optional[str]]:
    """
    Parse a Google Calendar start/end payload into local date and time strings.

    Args:
        payload: Google Calendar {"dateTime": ...} or {"date": ...} dict
        timezone: Timezone the result should be expressed in

    Returns:
        (YYYY-MM-DD, HH:MM) for timed payloads, (YYYY-MM-DD, None) for all-day ones

    Raises:
        ValueError: If the payload has neither field
    """
    if payload.get("dateTime"):
        tz = resolve_timezone(timezone)
        dt = datetime.fromisoformat(payload["dateTime"].replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = tz.localize(dt)
        local = dt.astimezone(tz)
        return local.strftime(DATE_FORMAT), local.strftime(TIME_FORMAT)
    if payload.get("date"):
        return parse_date(payload["date"]).strftime(DATE_FORMAT), None
    raise ValueError(f"Unrecognized calendar datetime payload: {payload!r}")
