"""Bucketed statistics over the session log.

Three periods are supported, each rendered as a fixed-size window of units:
seven days, eight weeks or six months. ``offset`` pages the whole window
back in time, so ``offset=1`` ends immediately before ``offset=0`` starts.

Inactivity is target-capped: for every elapsed day, the weekday work target
from :class:`~timewise.config.UserConfig` minus the tracked time consumed
against it (never more than the target). Week and month units sum their days.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable, Optional

from .clock import (
    Clock,
    add_months,
    as_date,
    format_minutes_label,
    local_midnight_ms,
    now_ms,
    seconds_to_minutes,
    start_of_month,
    start_of_week,
)
from .config import UserConfig
from .models import Activity, Session, unknown_activity
from .repository import Repository

logger = logging.getLogger(__name__)

UNIT_COUNTS: dict[str, int] = {"daily": 7, "weekly": 8, "monthly": 6}


@dataclass(slots=True)
class ActivityRow:
    activity_id: str
    label: str
    category: str
    priority: str
    cognitive_load: str
    archived: bool
    seconds: int
    minutes: int
    formatted: str
    percent: int


@dataclass(slots=True)
class StatsUnit:
    label: str
    start: date
    end: date
    start_ms: int
    end_ms: int
    tracked_seconds: int = 0
    inactivity_seconds: int = 0
    rows: list[ActivityRow] = field(default_factory=list)

    @property
    def tracked_minutes(self) -> int:
        return seconds_to_minutes(self.tracked_seconds)

    @property
    def inactivity_minutes(self) -> int:
        return seconds_to_minutes(self.inactivity_seconds)


@dataclass(slots=True)
class StatsResult:
    period: str
    offset: int
    units: list[StatsUnit]
    table: list[ActivityRow]
    has_prev: bool
    has_next: bool

    @property
    def labels(self) -> list[str]:
        return [unit.label for unit in self.units]

    @property
    def tracked(self) -> list[int]:
        return [unit.tracked_minutes for unit in self.units]

    @property
    def inactivity(self) -> list[int]:
        return [unit.inactivity_minutes for unit in self.units]

    def to_dict(self) -> dict[str, Any]:
        units = []
        for unit in self.units:
            payload = asdict(unit)
            payload["start"] = unit.start.isoformat()
            payload["end"] = unit.end.isoformat()
            payload["tracked_minutes"] = unit.tracked_minutes
            payload["inactivity_minutes"] = unit.inactivity_minutes
            units.append(payload)
        return {
            "period": self.period,
            "offset": self.offset,
            "labels": self.labels,
            "tracked": self.tracked,
            "inactivity": self.inactivity,
            "units": units,
            "table": [asdict(row) for row in self.table],
            "has_prev": self.has_prev,
            "has_next": self.has_next,
        }


def unit_bounds(period: str, today: date, offset: int, week_start: str) -> list[tuple[date, date]]:
    """Oldest-first ``[start, end)`` date pairs for one window."""
    count = UNIT_COUNTS[period]
    bounds = []
    for index in range(count):
        back = offset * count + (count - 1 - index)
        if period == "daily":
            start = today - timedelta(days=back)
            end = start + timedelta(days=1)
        elif period == "weekly":
            start = start_of_week(today, week_start) - timedelta(weeks=back)
            end = start + timedelta(weeks=1)
        else:
            start = add_months(start_of_month(today), -back)
            end = add_months(start, 1)
        bounds.append((start, end))
    return bounds


def unit_label(period: str, start: date) -> str:
    if period == "monthly":
        return f"{start.month}/{start.year}"
    return f"{start.month}/{start.day}"


def daily_inactivity_seconds(
    sessions: Iterable[Session], day: date, config: UserConfig, today: date
) -> int:
    """Target-capped inactivity for one calendar day.

    ``sessions`` may contain any sessions; only those starting on ``day``
    count. Days after ``today`` have not happened yet and report zero.
    """
    if day > today:
        return 0
    target = config.target_seconds(day)
    if target <= 0:
        return 0
    start_ms = local_midnight_ms(day)
    end_ms = local_midnight_ms(day + timedelta(days=1))
    consumed = 0
    for session in sorted(sessions, key=lambda s: s.session_start):
        if not start_ms <= session.session_start < end_ms:
            continue
        consumed = min(target, consumed + max(0, session.total_duration))
        if consumed >= target:
            break
    return target - consumed


def build_rows(totals: dict[str, int], activities: dict[str, Activity]) -> list[ActivityRow]:
    """Rows ordered by priority rank, then most tracked, then label."""
    grand_total = sum(totals.values())
    rows = []
    for activity_id, seconds in totals.items():
        activity = activities.get(activity_id) or unknown_activity(activity_id)
        minutes = seconds_to_minutes(seconds)
        rows.append(
            (
                activity.priority_rank,
                ActivityRow(
                    activity_id=activity_id,
                    label=activity.label,
                    category=activity.category,
                    priority=activity.priority,
                    cognitive_load=activity.cognitive_load,
                    archived=activity.archived,
                    seconds=seconds,
                    minutes=minutes,
                    formatted=format_minutes_label(minutes),
                    percent=int(seconds * 100 / grand_total + 0.5) if grand_total else 0,
                ),
            )
        )
    rows.sort(key=lambda item: (item[0], -item[1].seconds, item[1].label.casefold()))
    return [row for _, row in rows]


class StatsEngine:
    """Read-only aggregation over the repository's full session log."""

    def __init__(self, repository: Repository, *, clock: Clock = now_ms) -> None:
        self.repository = repository
        self._clock = clock

    def get_stats(self, period: str, offset: int = 0) -> StatsResult:
        if period not in UNIT_COUNTS:
            raise ValueError(f"period must be one of {sorted(UNIT_COUNTS)}, got {period!r}")
        if offset < 0:
            raise ValueError("offset must be zero or positive")

        sessions = [s for s in self.repository.get_sessions() if s.is_complete]
        activities = {a.id: a for a in self.repository.get_activities()}
        config = self.repository.get_user_config()
        today = as_date(self._clock())

        units: list[StatsUnit] = []
        window_totals: dict[str, int] = defaultdict(int)
        by_day: dict[date, list[Session]] = defaultdict(list)
        for session in sessions:
            by_day[as_date(session.session_start)].append(session)

        try:
            windows = [
                (start, end, local_midnight_ms(start), local_midnight_ms(end))
                for start, end in unit_bounds(period, today, offset, config.week_start)
            ]
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError(f"offset {offset} is outside the supported calendar range") from exc

        for start, end, start_ms, end_ms in windows:
            unit = StatsUnit(
                label=unit_label(period, start),
                start=start,
                end=end,
                start_ms=start_ms,
                end_ms=end_ms,
            )
            totals: dict[str, int] = defaultdict(int)
            for session in sessions:
                if unit.start_ms <= session.session_start < unit.end_ms:
                    seconds = max(0, int(session.total_duration))
                    totals[session.activity_id] += seconds
                    window_totals[session.activity_id] += seconds
            unit.tracked_seconds = sum(totals.values())
            unit.rows = build_rows(totals, activities)

            day = start
            while day < end:
                unit.inactivity_seconds += daily_inactivity_seconds(
                    by_day.get(day, ()), day, config, today
                )
                day += timedelta(days=1)
            units.append(unit)

        earliest = min((s.session_start for s in sessions), default=None)
        result = StatsResult(
            period=period,
            offset=offset,
            units=units,
            table=build_rows(window_totals, activities),
            has_prev=earliest is not None and units[0].start_ms > earliest,
            has_next=offset > 0,
        )
        logger.debug(
            "Built %s stats at offset %d: %d units, %d sessions scanned.",
            period,
            offset,
            len(units),
            len(sessions),
        )
        return result


def find_unit(result: StatsResult, label: str) -> Optional[StatsUnit]:
    """Drill-down helper: the unit with ``label``, if present."""
    for unit in result.units:
        if unit.label == label:
            return unit
    return None
