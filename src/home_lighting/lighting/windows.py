"""
Time-of-day and time-of-year window calculations.

Windows are given as "hh:mm" (time of day) and "mm/dd" (time of year)
strings. Every parse failure falls back to a caller-supplied default,
so none of these functions raise on bad input.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from .models import parse_int

logger = logging.getLogger(__name__)

# Season end is extended by this much past midnight of the end day.
SEASON_END_GRACE = timedelta(hours=24 + 9)

# "light" windows never open before local noon.
NOON_HOUR = 12

LIGHT_START = "light"


def parse_hhmm(spec: Optional[str], default_hour: int) -> timedelta:
    """
    Parse an "hh:mm" spec into an offset from midnight.

    Args:
        spec: Time string, 0 <= hh <= 23, 0 <= mm <= 59
        default_hour: Hour to use if the spec is missing or invalid

    Returns:
        Offset from midnight
    """
    default = timedelta(hours=default_hour)
    if spec is None:
        return default

    parts = spec.split(":")
    if len(parts) != 2:
        return default

    hour, minute = parse_int(parts[0]), parse_int(parts[1])
    if hour is None or minute is None:
        logger.debug(f"Unparseable time '{spec}', using {default_hour}:00")
        return default

    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        logger.debug(f"Time '{spec}' out of range, using {default_hour}:00")
        return default

    return timedelta(hours=hour, minutes=minute)


def window_instant(now: datetime, spec: Optional[str], default_hour: int) -> datetime:
    """Absolute time today at the offset named by an "hh:mm" spec."""
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return day_start + parse_hhmm(spec, default_hour)


def parse_mmdd(spec: Optional[str], default: Tuple[int, int], year: int) -> timedelta:
    """
    Parse an "mm/dd" spec into an offset from January 1st of `year`.

    Days past the end of a month roll into the next month (02/30 is
    early March).

    Args:
        spec: Date string, 1 <= mm <= 12, 1 <= dd <= 31
        default: (month, day) to use if the spec is missing or invalid
        year: Year the offset is computed in (matters for leap days)

    Returns:
        Offset from January 1st
    """
    month, day = default
    if spec is not None:
        parts = spec.split("/")
        try:
            if len(parts) != 2:
                raise ValueError(spec)
            m, d = parse_int(parts[0]), parse_int(parts[1])
            if m is None or d is None or not (1 <= m <= 12 and 1 <= d <= 31):
                raise ValueError(spec)
            month, day = m, d
        except ValueError:
            logger.debug(f"Invalid date '{spec}', using {default[0]}/{default[1]}")

    year_start = datetime(year, 1, 1)
    return datetime(year, month, 1) + timedelta(days=day - 1) - year_start


def in_window(now: datetime, start: datetime, end: datetime) -> bool:
    """
    Check whether `now` falls inside [start, end).

    If start is later than end the window wraps (crosses midnight, or
    New Year for seasons) and membership is now >= start or now < end.
    """
    if start <= end:
        return start <= now < end
    return now >= start or now < end


def in_season(
    now: datetime,
    start_spec: Optional[str],
    end_spec: Optional[str],
    default_start: Tuple[int, int] = (11, 1),
    default_end: Tuple[int, int] = (1, 6),
) -> bool:
    """
    Check whether `now` is inside a season given as two "mm/dd" specs.

    The end boundary is extended by SEASON_END_GRACE.
    """
    year_start = now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    start = year_start + parse_mmdd(start_spec, default_start, now.year)
    end = year_start + parse_mmdd(end_spec, default_end, now.year) + SEASON_END_GRACE
    return in_window(now, start, end)


def in_daily_window(
    now: datetime,
    start_spec: Optional[str],
    end_spec: Optional[str],
    light_level: int,
    darkness_threshold: int,
    default_start_hour: int = 15,
    default_end_hour: int = 23,
) -> bool:
    """
    Check whether `now` is inside a region's time-of-day window.

    A missing start means the region has no window. A start of "light"
    opens the window at noon, but only while the light level is below
    `darkness_threshold`.
    """
    if start_spec is None:
        return False

    end = window_instant(now, end_spec, default_end_hour)

    if start_spec == LIGHT_START:
        start = now.replace(hour=NOON_HOUR, minute=0, second=0, microsecond=0)
        return in_window(now, start, end) and light_level < darkness_threshold

    start = window_instant(now, start_spec, default_start_hour)
    return in_window(now, start, end)
