"""
Wall-clock helpers for the fixed +05:30 scheduling timezone
"""
import math
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple

from config.settings import Config

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):(\d{2})$")
_HHMM_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

LATEST_END_TIME = "23:59"


def _build_timezone(offset: str) -> timezone:
    match = _OFFSET_RE.match(offset)
    if not match:
        raise ValueError(f"Invalid UTC offset: {offset}")
    sign = -1 if match.group(1) == "-" else 1
    delta = timedelta(hours=int(match.group(2)), minutes=int(match.group(3)))
    return timezone(sign * delta, Config.TIMEZONE_NAME)


LOCAL_TZ = _build_timezone(Config.TIMEZONE)


def parse_hhmm(value: str) -> Tuple[int, int]:
    """Parse 'HH:MM' (24h) into (hours, minutes)"""
    match = _HHMM_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid time: {value!r}, expected HH:MM")
    return int(match.group(1)), int(match.group(2))


def format_hhmm(hours: int, minutes: int) -> str:
    return f"{hours:02d}:{minutes:02d}"


def to_minutes(value: str) -> int:
    hours, minutes = parse_hhmm(value)
    return hours * 60 + minutes


def from_minutes(total: int) -> str:
    return format_hhmm(total // 60, total % 60)


def duration_minutes(duration_hours: float) -> int:
    return int(round(duration_hours * 60))


def derive_end_time(start_time: str, duration_hours: float) -> str:
    """
    End time of an event starting at start_time.

    Whole hours and the fractional part are added separately, minute
    overflow is carried into hours, and anything past midnight is clamped to
    23:59 so an event never rolls into the next day.
    """
    hours, minutes = parse_hhmm(start_time)
    whole = math.floor(duration_hours)
    end_hours = hours + whole
    end_minutes = minutes + int(round((duration_hours - whole) * 60))

    end_hours += end_minutes // 60
    end_minutes = end_minutes % 60

    if end_hours >= 24:
        return LATEST_END_TIME
    return format_hhmm(end_hours, end_minutes)


def parse_work_window(window: str) -> Tuple[str, str]:
    """Split '09:00-18:00' into its two HH:MM bounds"""
    try:
        start, end = (part.strip() for part in window.split("-"))
    except ValueError:
        raise ValueError(f"Invalid work window: {window!r}, expected HH:MM-HH:MM")
    if to_minutes(start) >= to_minutes(end):
        raise ValueError(f"Work window must end after it starts: {window!r}")
    return start, end


def parse_date(value) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def local_datetime(day, hhmm: str) -> datetime:
    """Aware datetime for a calendar day and wall-clock time in the local zone"""
    hours, minutes = parse_hhmm(hhmm)
    return datetime.combine(parse_date(day), time(hours, minutes), tzinfo=LOCAL_TZ)


def to_rfc3339(value: datetime) -> str:
    """'2025-01-06T09:00:00+05:30'"""
    return value.astimezone(LOCAL_TZ).isoformat(timespec="seconds")


def format_local_time(value: datetime) -> str:
    if value.tzinfo is None:
        return value.strftime("%H:%M")
    return value.astimezone(LOCAL_TZ).strftime("%H:%M")


def format_long_date(day) -> str:
    """'Monday, January 06, 2025'"""
    return parse_date(day).strftime("%A, %B %d, %Y")


def now_local() -> datetime:
    return datetime.now(LOCAL_TZ)


def today_local() -> date:
    return now_local().date()


def day_bounds(day) -> Tuple[datetime, datetime]:
    """[00:00, next 00:00) of a local calendar day"""
    start = datetime.combine(parse_date(day), time(0, 0), tzinfo=LOCAL_TZ)
    return start, start + timedelta(days=1)


def week_bounds(day) -> Tuple[datetime, datetime]:
    """Sunday-based week containing day"""
    start_day = parse_date(day)
    days_since_sunday = (start_day.weekday() + 1) % 7
    start = datetime.combine(start_day - timedelta(days=days_since_sunday), time(0, 0), tzinfo=LOCAL_TZ)
    return start, start + timedelta(days=7)
