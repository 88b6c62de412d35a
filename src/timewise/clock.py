"""Date-key, calendar-boundary and time-of-day helpers.

All helpers work in the local time zone and treat timestamps as integer
milliseconds since the epoch, which is how sessions are stored.
"""

from __future__ import annotations

import math
import re
import time as _time
from datetime import date, datetime, time, timedelta
from typing import Callable, Union

Clock = Callable[[], int]
DateLike = Union[int, float, date, datetime, str]

DATE_KEY_FMT = "%Y-%m-%d"
TIME_OF_DAY_RE = re.compile(r"([01][0-9]|2[0-3]):[0-5][0-9]")

WEEKDAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)
WEEK_STARTS: tuple[str, ...] = ("monday", "sunday")


def now_ms() -> int:
    """Return the current time in epoch milliseconds."""
    return int(_time.time() * 1000)


def to_local(ms: float) -> datetime:
    return datetime.fromtimestamp(ms / 1000)


def to_epoch_ms(value: datetime) -> int:
    return int(round(value.timestamp() * 1000))


def parse_date_key(key: str) -> date:
    """Parse a ``YYYY-MM-DD`` key, raising ``ValueError`` when malformed."""
    if not isinstance(key, str) or len(key) != 10:
        raise ValueError(f"Malformed date key: {key!r}")
    return datetime.strptime(key, DATE_KEY_FMT).date()


def as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_date_key(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return to_local(value).date()
    raise TypeError(f"Unsupported date value: {value!r}")


def date_key(value: DateLike) -> str:
    return as_date(value).strftime(DATE_KEY_FMT)


def local_midnight_ms(day: date) -> int:
    return to_epoch_ms(datetime.combine(day, time.min))


def start_of_week(day: DateLike, week_start: str = "monday") -> date:
    """Return the first day of the week containing ``day``."""
    if week_start not in WEEK_STARTS:
        raise ValueError(f"week_start must be one of {WEEK_STARTS}, got {week_start!r}")
    current = as_date(day)
    # date.weekday(): Monday == 0
    offset = current.weekday() if week_start == "monday" else (current.weekday() + 1) % 7
    return current - timedelta(days=offset)


def start_of_month(day: DateLike) -> date:
    return as_date(day).replace(day=1)


def add_months(day: date, months: int) -> date:
    """Shift a first-of-month date by ``months`` (may be negative)."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    return date(year, month + 1, 1)


def weekday_key(day: DateLike) -> str:
    return WEEKDAYS[as_date(day).weekday()]


def seconds_to_minutes(seconds: float) -> int:
    """Convert seconds to whole minutes, rounding half up."""
    return int(math.floor(max(0.0, seconds) / 60 + 0.5))


def format_duration(seconds: float) -> str:
    total_seconds = max(0, int(math.floor(seconds or 0)))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_minutes_label(minutes: float | None) -> str:
    if minutes is None:
        return "—"
    total_minutes = max(0, int(math.floor(minutes + 0.5)))
    hours, mins = divmod(total_minutes, 60)
    if hours and mins:
        return f"{hours}h {mins}m"
    if hours:
        return f"{hours}h"
    return f"{mins}m"


def is_time_of_day(value: object) -> bool:
    """True for zero-padded 24-hour ``HH:MM`` strings."""
    return isinstance(value, str) and TIME_OF_DAY_RE.fullmatch(value) is not None


def parse_time_of_day(value: str) -> int:
    """Parse ``HH:MM`` into minutes after midnight."""
    if not is_time_of_day(value):
        raise ValueError(f"Invalid time of day: {value!r}. Use HH:MM.")
    hours_text, minutes_text = value.split(":")
    return int(hours_text) * 60 + int(minutes_text)


def format_time_of_day(minutes: int) -> str:
    hours, mins = divmod(int(minutes) % (24 * 60), 60)
    return f"{hours:02d}:{mins:02d}"


def format_clock_time(ms: float) -> str:
    moment = to_local(ms)
    return format_time_of_day(moment.hour * 60 + moment.minute)
