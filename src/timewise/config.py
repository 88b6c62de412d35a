"""Configuration models and helpers for TimeWise."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Mapping

from .clock import WEEK_STARTS, WEEKDAYS, DateLike, is_time_of_day, parse_time_of_day, weekday_key

logger = logging.getLogger(__name__)

# "00:00" as a day start marks a non-working day.
NON_WORKING_DAY = "00:00"
MAX_LUNCH_BREAK_MINUTES = 180

DEFAULT_WORK_TARGETS: dict[str, float] = {
    "monday": 7,
    "tuesday": 7,
    "wednesday": 7,
    "thursday": 7,
    "friday": 7,
    "saturday": 3,
    "sunday": 0,
}
DEFAULT_DAY_START_TIMES: dict[str, str] = {
    **{day: "09:00" for day in WEEKDAYS[:5]},
    "saturday": "10:00",
    "sunday": NON_WORKING_DAY,
}
DEFAULT_LUNCH_BREAK_START_TIMES: dict[str, str] = {
    **{day: "12:00" for day in WEEKDAYS[:5]},
    "saturday": "12:30",
    "sunday": NON_WORKING_DAY,
}
DEFAULT_LUNCH_BREAK_DURATIONS: dict[str, int] = {
    **{day: 30 for day in WEEKDAYS[:6]},
    "sunday": 0,
}


@dataclass(slots=True)
class UserConfig:
    """User preferences read by the timer, the stats engine and the planner."""

    sound_enabled: bool = True
    default_session_max_minutes: int = 50
    default_daily_max_minutes: int = 120
    daily_work_targets: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_WORK_TARGETS)
    )
    week_start: str = "monday"
    day_start_times: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_DAY_START_TIMES)
    )
    lunch_break_start_times: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_LUNCH_BREAK_START_TIMES)
    )
    lunch_break_durations: dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_LUNCH_BREAK_DURATIONS)
    )

    def target_seconds(self, day: DateLike) -> int:
        """Work target for the weekday of ``day``, in seconds."""
        hours = self.daily_work_targets.get(weekday_key(day), 0)
        return max(0, int(round(hours * 3600)))

    def validate_day_structure(self) -> None:
        """Raise ``ValueError`` naming the first weekday with an invalid layout."""
        for day in WEEKDAYS:
            day_start = self.day_start_times[day]
            lunch_start = self.lunch_break_start_times[day]
            if not is_time_of_day(day_start):
                raise ValueError(f"Invalid day start time for {day}: {day_start!r}. Use HH:MM.")
            if not is_time_of_day(lunch_start):
                raise ValueError(
                    f"Invalid lunch break start time for {day}: {lunch_start!r}. Use HH:MM."
                )
            if (
                day_start != NON_WORKING_DAY
                and lunch_start != NON_WORKING_DAY
                and parse_time_of_day(lunch_start) < parse_time_of_day(day_start)
            ):
                raise ValueError(f"Lunch break cannot start before the day starts on {day}")
            duration = self.lunch_break_durations[day]
            if not 0 <= duration <= MAX_LUNCH_BREAK_MINUTES:
                raise ValueError(
                    f"Lunch break on {day} must last between 0 and "
                    f"{MAX_LUNCH_BREAK_MINUTES} minutes, got {duration}"
                )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "UserConfig":
        """Merge a stored camelCase mapping over the defaults."""
        data = data or {}
        config = cls()
        if "soundEnabled" in data:
            config.sound_enabled = bool(data["soundEnabled"])
        if data.get("defaultSessionMaxMinutes") is not None:
            config.default_session_max_minutes = int(data["defaultSessionMaxMinutes"])
        if data.get("defaultDailyMaxMinutes") is not None:
            config.default_daily_max_minutes = int(data["defaultDailyMaxMinutes"])

        targets = data.get("dailyWorkTargets") or {}
        starts = data.get("dayStartTimes") or {}
        lunch_starts = data.get("lunchBreakStartTimes") or {}
        lunch_durations = data.get("lunchBreakDurations") or {}
        for day in WEEKDAYS:
            if targets.get(day) is not None:
                config.daily_work_targets[day] = max(0.0, float(targets[day]))
            if starts.get(day) is not None:
                config.day_start_times[day] = str(starts[day])
            if lunch_starts.get(day) is not None:
                config.lunch_break_start_times[day] = str(lunch_starts[day])
            if lunch_durations.get(day) is not None:
                config.lunch_break_durations[day] = int(lunch_durations[day])

        week_start = data.get("weekStart", "monday")
        if week_start not in WEEK_STARTS:
            logger.warning("Unknown weekStart %r; falling back to monday.", week_start)
            week_start = "monday"
        config.week_start = week_start
        return config

    def to_mapping(self) -> dict[str, Any]:
        return {
            "soundEnabled": self.sound_enabled,
            "defaultSessionMaxMinutes": self.default_session_max_minutes,
            "defaultDailyMaxMinutes": self.default_daily_max_minutes,
            "dailyWorkTargets": dict(self.daily_work_targets),
            "weekStart": self.week_start,
            "dayStartTimes": dict(self.day_start_times),
            "lunchBreakStartTimes": dict(self.lunch_break_start_times),
            "lunchBreakDurations": dict(self.lunch_break_durations),
        }


@dataclass(slots=True)
class EngineSettings:
    """Runtime configuration for the timer engine."""

    tick_interval: timedelta = timedelta(seconds=1)

    @classmethod
    def from_options(cls, tick_seconds: float | None = None) -> "EngineSettings":
        tick = tick_seconds if tick_seconds is not None else 1.0
        return cls(tick_interval=timedelta(seconds=max(tick, 0.1)))
