"""Day structure and daily feasibility planning.

Every weekday has a start time, a lunch break and a work target. The working
window closes once the target and the lunch break have both elapsed after the
day start. Feasibility compares the estimated minutes of the activities
planned for a date against that day's available minutes.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from .clock import Clock, DateLike, as_date, format_time_of_day, now_ms, parse_time_of_day, weekday_key
from .config import NON_WORKING_DAY, UserConfig
from .models import Activity
from .repository import Repository

logger = logging.getLogger(__name__)

COGNITIVE_LOAD_ORDER: tuple[str, ...] = ("intense", "moderate", "light")
TIGHT_RATIO = 0.8


class FeasibilityStatus(str, Enum):
    FEASIBLE = "feasible"
    TIGHT = "tight"
    NOT_FEASIBLE = "not-feasible"
    NOT_APPLICABLE = "not-applicable"

    @property
    def color(self) -> str:
        return _STATUS_COLORS[self]


_STATUS_COLORS = {
    FeasibilityStatus.FEASIBLE: "green",
    FeasibilityStatus.TIGHT: "yellow",
    FeasibilityStatus.NOT_FEASIBLE: "red",
    FeasibilityStatus.NOT_APPLICABLE: "gray",
}


@dataclass(slots=True)
class DayStructure:
    date: date
    day_start_time: str
    lunch_break_start: str
    lunch_break_end: str
    work_window_end: str
    total_available_minutes: int
    is_working_day: bool

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["date"] = self.date.isoformat()
        return payload


@dataclass(slots=True)
class Feasibility:
    date: date
    total_duration_minutes: int
    daily_work_target_minutes: int
    status: FeasibilityStatus
    activities_count: int
    cognitive_load_distribution: dict[str, int]

    @property
    def color(self) -> str:
        return self.status.color

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["date"] = self.date.isoformat()
        payload["status"] = self.status.value
        payload["color"] = self.color
        return payload


def get_day_structure(config: UserConfig, day: DateLike) -> DayStructure:
    current = as_date(day)
    weekday = weekday_key(current)
    day_start = config.day_start_times[weekday]
    lunch_start = config.lunch_break_start_times[weekday]
    lunch_minutes = config.lunch_break_durations[weekday]
    lunch_end = format_time_of_day(parse_time_of_day(lunch_start) + lunch_minutes)

    if day_start == NON_WORKING_DAY:
        return DayStructure(
            date=current,
            day_start_time=day_start,
            lunch_break_start=lunch_start,
            lunch_break_end=lunch_end,
            work_window_end=NON_WORKING_DAY,
            total_available_minutes=0,
            is_working_day=False,
        )

    target_minutes = config.target_seconds(current) // 60
    window_end = parse_time_of_day(day_start) + target_minutes + lunch_minutes
    return DayStructure(
        date=current,
        day_start_time=day_start,
        lunch_break_start=lunch_start,
        lunch_break_end=lunch_end,
        work_window_end=format_time_of_day(window_end),
        total_available_minutes=target_minutes,
        is_working_day=True,
    )


def check_daily_feasibility(
    activities: Iterable[Activity], config: UserConfig, day: DateLike
) -> Feasibility:
    """Compare planned estimates for ``day`` with its available minutes.

    Archived activities are never planned. Activities without scheduled days
    count on every day.
    """
    structure = get_day_structure(config, day)
    weekday = weekday_key(structure.date)
    planned = [a for a in activities if not a.archived and a.is_scheduled_on(weekday)]

    total = 0
    distribution = {load: 0 for load in COGNITIVE_LOAD_ORDER}
    for activity in planned:
        minutes = activity.estimated_duration or 0
        total += minutes
        if activity.cognitive_load in distribution:
            distribution[activity.cognitive_load] += minutes

    available = structure.total_available_minutes
    if total == 0:
        status = FeasibilityStatus.FEASIBLE
    elif available == 0:
        status = FeasibilityStatus.NOT_APPLICABLE
    elif total > available:
        status = FeasibilityStatus.NOT_FEASIBLE
    elif total > available * TIGHT_RATIO:
        status = FeasibilityStatus.TIGHT
    else:
        status = FeasibilityStatus.FEASIBLE

    return Feasibility(
        date=structure.date,
        total_duration_minutes=total,
        daily_work_target_minutes=available,
        status=status,
        activities_count=len(planned),
        cognitive_load_distribution=distribution,
    )


class Planner:
    """Repository-backed access to the day structure and feasibility checks."""

    def __init__(self, repository: Repository, *, clock: Clock = now_ms) -> None:
        self.repository = repository
        self._clock = clock

    def _day(self, day: Optional[DateLike]) -> date:
        return as_date(day if day is not None else self._clock())

    def get_day_structure(self, day: Optional[DateLike] = None) -> DayStructure:
        return get_day_structure(self.repository.get_user_config(), self._day(day))

    def check_daily_feasibility(self, day: Optional[DateLike] = None) -> Feasibility:
        result = check_daily_feasibility(
            self.repository.get_activities(),
            self.repository.get_user_config(),
            self._day(day),
        )
        logger.debug(
            "Feasibility for %s: %s (%d of %d minutes).",
            result.date,
            result.status.value,
            result.total_duration_minutes,
            result.daily_work_target_minutes,
        )
        return result

    def set_day_structure(self, changes: Mapping[str, Any]) -> UserConfig:
        """Layer camelCase ``changes`` over the stored config, validate, save.

        Raises ``ValueError`` and leaves the stored config untouched when the
        resulting day structure is invalid.
        """
        merged = self.repository.get_user_config().to_mapping()
        for key, value in changes.items():
            if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value
        try:
            config = UserConfig.from_mapping(merged)
        except (AttributeError, TypeError) as exc:
            raise ValueError(f"Invalid day structure: {exc}") from exc
        config.validate_day_structure()
        self.repository.save_user_config(config)
        logger.info("Updated day structure settings: %s.", ", ".join(sorted(changes)))
        return config
