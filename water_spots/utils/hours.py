"""
Operating Hours Utilities
Day-group selection, strict time-range parsing and open/closed evaluation
"""

import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional, Tuple

from water_spots.config import get_jst_now

# Day-group keys used by the water spot dataset
WEEKDAY_KEY = 'mon_fri'
SATURDAY_KEY = 'sat'
SUNDAY_HOLIDAY_KEY = 'sun_hol'
EVERY_DAY_KEY = 'mon_sun'

UNKNOWN_HOURS_LABEL = '要確認'

_TIME_RANGE_PATTERN = re.compile(r'(\d{2}):(\d{2})-(\d{2}):(\d{2})')


def _hours_value(hours: Any, key: str) -> Optional[str]:
    """Read a day-group value from a mapping or an OperatingHours model"""
    if hours is None:
        return None
    if isinstance(hours, Mapping):
        value = hours.get(key)
    else:
        value = getattr(hours, key, None)
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


def select_day_hours(hours: Any, at: datetime) -> Optional[str]:
    """
    Pick the hours text that applies on the weekday of `at`.

    PRECEDENCE:
    - Saturday → 'sat' if present
    - Sunday → 'sun_hol' if present
    - Monday-Friday → 'mon_fri' if present
    - otherwise 'mon_sun' (every day) if present

    Public holidays are not detected; a holiday falling on a weekday uses the
    weekday hours.

    Args:
        hours: Operating hours (mapping or OperatingHours)
        at: Point in time

    Returns:
        Hours text or None if no key applies
    """
    weekday = at.weekday()  # Monday == 0

    if weekday == 5:
        day_hours = _hours_value(hours, SATURDAY_KEY)
    elif weekday == 6:
        day_hours = _hours_value(hours, SUNDAY_HOLIDAY_KEY)
    else:
        day_hours = _hours_value(hours, WEEKDAY_KEY)

    if day_hours is None:
        day_hours = _hours_value(hours, EVERY_DAY_KEY)

    return day_hours


def parse_time_range(text: str) -> Optional[Tuple[int, int]]:
    """
    Parse a strict "HH:MM-HH:MM" range into minutes since midnight.

    Free text ("要確認", "9:00-17:00", "09:00～17:00") is rejected.
    "24:00" is accepted as an end-of-day closing time.

    Args:
        text: Hours text

    Returns:
        (open_minutes, close_minutes) or None
    """
    if not isinstance(text, str):
        return None

    match = _TIME_RANGE_PATTERN.fullmatch(text.strip())
    if not match:
        return None

    open_h, open_m, close_h, close_m = (int(group) for group in match.groups())

    if open_h > 23 or open_m > 59 or close_m > 59:
        return None
    if close_h > 24 or (close_h == 24 and close_m != 0):
        return None

    return open_h * 60 + open_m, close_h * 60 + close_m


def is_open(hours: Any, at: Optional[datetime] = None) -> Optional[bool]:
    """
    Determine whether a spot is open at a point in time.

    KNOWN LIMITATION: ranges that cross midnight ("22:00-02:00") are not
    wrapped. Such a range contains no time of day, so the result is False.

    Args:
        hours: Operating hours (mapping or OperatingHours), may be None
        at: Point in time (default: now in Japan)

    Returns:
        True/False, or None when the status is unknown (no hours, no
        applicable day group, or free-text hours)
    """
    if hours is None:
        return None

    if at is None:
        at = get_jst_now()

    day_hours = select_day_hours(hours, at)
    if day_hours is None:
        return None

    time_range = parse_time_range(day_hours)
    if time_range is None:
        return None

    opens_at, closes_at = time_range
    current = at.hour * 60 + at.minute
    return opens_at <= current <= closes_at


def hours_summary(hours: Any) -> str:
    """
    One-line hours summary for list views

    Returns:
        "平日 <hours>", "毎日 <hours>", the free-text type, or "要確認"
    """
    if hours is None:
        return UNKNOWN_HOURS_LABEL

    weekday = _hours_value(hours, WEEKDAY_KEY)
    if weekday:
        return f"平日 {weekday}"

    every_day = _hours_value(hours, EVERY_DAY_KEY)
    if every_day:
        return f"毎日 {every_day}"

    return _hours_value(hours, 'type') or UNKNOWN_HOURS_LABEL


def format_operating_hours(hours: Any) -> str:
    """
    Multi-line operating hours for detail views

    Args:
        hours: Operating hours (mapping or OperatingHours)

    Returns:
        Lines such as "平日: 08:30-17:00" joined by newlines
    """
    if hours is None:
        return '営業時間要確認'

    labels = [
        (WEEKDAY_KEY, '平日'),
        (SATURDAY_KEY, '土曜'),
        (SUNDAY_HOLIDAY_KEY, '日祝'),
        (EVERY_DAY_KEY, '毎日'),
        ('closed', '休業'),
    ]

    parts = []
    for key, label in labels:
        value = _hours_value(hours, key)
        if value:
            parts.append(f"{label}: {value}")

    if parts:
        return '\n'.join(parts)

    return _hours_value(hours, 'type') or '営業時間要確認'
