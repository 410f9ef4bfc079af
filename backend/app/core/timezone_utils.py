"""
Timezone utilities for the coaching scheduler.

Instructors keep availability as local wall-clock times in their IANA zone;
bookings are stored as UTC instants. These helpers convert between the two
with pytz so that every boundary resolves its own UTC offset.
"""

from datetime import date, datetime, time, timezone
import re
from typing import Optional

import pytz

from .constants import DEFAULT_TIMEZONE

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_valid_timezone(value: Optional[str]) -> bool:
    """Check whether ``value`` names an IANA timezone known to pytz."""
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        pytz.timezone(value.strip())
    except pytz.UnknownTimeZoneError:
        return False
    return True


def normalize_timezone(value: Optional[str], fallback: str = DEFAULT_TIMEZONE) -> str:
    """Return a trimmed valid timezone name, or ``fallback`` when invalid."""
    if is_valid_timezone(value):
        return value.strip()  # type: ignore[union-attr]
    return fallback


def get_timezone(name: str) -> pytz.BaseTzInfo:
    return pytz.timezone(normalize_timezone(name))


def parse_clock_time(value: Optional[str]) -> Optional[time]:
    """
    Parse an ``HH:MM`` or ``HH:MM:SS`` local clock string.

    Returns:
        The parsed time, or None when the string is malformed
    """
    if not isinstance(value, str):
        return None
    match = _TIME_PATTERN.match(value.strip())
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return time(int(hours), int(minutes), int(seconds or 0))


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse a strict ``YYYY-MM-DD`` string."""
    if not isinstance(value, str) or not _DATE_PATTERN.match(value.strip()):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def local_to_utc(local_date: date, local_time: time, tz_name: str) -> datetime:
    """
    Convert a local wall-clock time on ``local_date`` to a UTC instant.

    The offset is resolved for this exact instant, so two boundaries on a DST
    transition day may use different offsets. Wall times that fall in a DST gap
    are interpreted with the pre-transition offset; ambiguous wall times use
    their first occurrence, also the pre-transition offset.
    """
    tz = get_timezone(tz_name)
    naive = datetime.combine(local_date, local_time)
    try:
        localized = tz.localize(naive, is_dst=None)
    except pytz.AmbiguousTimeError:
        # Fall-back hour: the first pass is still on daylight time
        localized = tz.localize(naive, is_dst=True)
    except pytz.NonExistentTimeError:
        # Spring-forward gap: the clocks were still on standard time
        localized = tz.localize(naive, is_dst=False)
    return localized.astimezone(timezone.utc)


def utc_to_local(dt: datetime, tz_name: str) -> datetime:
    tz = get_timezone(tz_name)
    return ensure_utc(dt).astimezone(tz)


def local_today(now: datetime, tz_name: str) -> date:
    """Today's calendar date in ``tz_name`` at the instant ``now``."""
    return utc_to_local(now, tz_name).date()


def sunday_based_weekday(day: date) -> int:
    """Weekday with 0 = Sunday ... 6 = Saturday."""
    return day.isoweekday() % 7


def format_for_display(dt: datetime, tz_name: str) -> str:
    """
    Human-readable label such as ``Mar 10, 2026, 10:00 AM``.

    Invalid timezone names fall back to UTC.
    """
    local = utc_to_local(dt, tz_name)
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{local:%b} {local.day}, {local.year}, {hour}:{local:%M} {meridiem}"


def to_iso_z(dt: datetime) -> str:
    """Serialize an instant as ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    utc = ensure_utc(dt)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_iso_instant(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 instant into an aware UTC datetime.

    Accepts a trailing ``Z``. Naive strings are read as UTC.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    return ensure_utc(parsed)
