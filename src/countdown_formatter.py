"""Format countdowns and respawn clock times for display."""
import time
from datetime import datetime
from typing import Optional, Union

import pytz

try:
    from .boss_record import BossRecord, TimerPhase
    from .logger import get_logger
except ImportError:
    from boss_record import BossRecord, TimerPhase
    from logger import get_logger

logger = get_logger(__name__)

PLACEHOLDER = "N/A"
COUNTDOWN_PLACEHOLDER = "--:--:--"

TzArg = Union[str, pytz.BaseTzInfo, None]


def remaining_time(record: BossRecord, now: int) -> Optional[int]:
    """Milliseconds until ``record`` respawns, clamped at 0. None if its timer is not started."""
    return record.remaining_ms(now)


def format_countdown(ms: Optional[int]) -> str:
    """
    Render a remaining duration as HH:MM:SS.

    Hours are never folded away, so a 90 minute interval reads 01:30:00 and
    intervals over 99 hours simply grow the hour field.
    """
    if ms is None:
        return COUNTDOWN_PLACEHOLDER
    total_seconds = max(0, int(ms)) // 1000
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_clock_time(ms: Optional[int], timezone: TzArg = None, use_military_time: bool = True) -> str:
    """
    Render an absolute epoch-millisecond timestamp as a wall-clock time.

    Args:
        ms: Timestamp in milliseconds; None or non-positive yields "N/A"
        timezone: IANA name or pytz zone; None uses the system zone
        use_military_time: 24-hour clock if True, 12-hour with AM/PM otherwise
    """
    if ms is None or ms <= 0:
        return PLACEHOLDER
    if timezone is None:
        tz = pytz.timezone(get_system_timezone())
    elif isinstance(timezone, str):
        tz = pytz.timezone(timezone)
    else:
        tz = timezone
    dt = datetime.fromtimestamp(ms / 1000, tz=pytz.utc).astimezone(tz)
    return dt.strftime("%H:%M:%S" if use_military_time else "%I:%M:%S %p")


# Zones reachable from the abbreviations time.tzname reports
_ZONE_ABBREVIATIONS = {
    "US/Eastern": ("EST", "EDT"),
    "US/Central": ("CST", "CDT"),
    "US/Mountain": ("MST", "MDT"),
    "US/Pacific": ("PST", "PDT"),
    "Europe/London": ("GMT", "BST"),
    "Europe/Paris": ("CET", "CEST"),
    "Europe/Athens": ("EET", "EEST"),
    "Australia/Sydney": ("AEST", "AEDT"),
    "Australia/Perth": ("AWST",),
    "Asia/Tokyo": ("JST",),
}
TZ_ABBREVIATIONS = {abbr: zone for zone, abbrs in _ZONE_ABBREVIATIONS.items() for abbr in abbrs}


def get_system_timezone() -> str:
    """
    IANA name of the local timezone, or 'UTC' if it cannot be determined.

    Prefers the zone key the platform exposes; otherwise maps the
    standard/daylight abbreviations from ``time.tzname``.
    """
    try:
        name = getattr(datetime.now().astimezone().tzinfo, "key", None)
        if name and name != "localtime":
            pytz.timezone(name)
            return name
    except (pytz.exceptions.UnknownTimeZoneError, ValueError, OSError):
        pass

    for abbr in time.tzname:
        zone = TZ_ABBREVIATIONS.get((abbr or "").upper())
        if zone:
            return zone
    return "UTC"


class CountdownFormatter:
    """Formats countdowns and respawn times in the user's timezone."""

    def __init__(self, user_timezone: Optional[str] = None, use_military_time: bool = True):
        """
        Initialize the formatter.

        Args:
            user_timezone: IANA timezone (e.g. 'US/Central', 'Europe/London').
                          If None or empty, auto-detect from system.
            use_military_time: 24-hour clock if True, 12-hour with AM/PM otherwise
        """
        self.use_military_time = use_military_time
        self.user_tz = pytz.timezone(get_system_timezone())
        if user_timezone and user_timezone.strip():
            self.set_timezone(user_timezone)

    def set_timezone(self, timezone: str) -> None:
        """Set the user's timezone. Pass empty string to use system (auto-detect)."""
        if not timezone or not timezone.strip():
            tz_name = get_system_timezone()
            self.user_tz = pytz.timezone(tz_name)
            logger.info(f"Timezone set to auto-detect: {tz_name}")
            return
        try:
            self.user_tz = pytz.timezone(timezone.strip())
            logger.info(f"Timezone set to: {timezone}")
        except pytz.exceptions.UnknownTimeZoneError as e:
            logger.error(f"Unknown timezone '{timezone}': {e}")

    def format_countdown(self, ms: Optional[int]) -> str:
        return format_countdown(ms)

    def format_clock_time(self, ms: Optional[int]) -> str:
        return format_clock_time(ms, self.user_tz, self.use_military_time)

    def format_status(self, status) -> str:
        """Short status text for one snapshot entry."""
        if status.phase is TimerPhase.NOT_STARTED:
            return "NOT STARTED"
        if status.phase is TimerPhase.EXPIRED:
            return "READY"
        return format_countdown(status.remaining_ms)
