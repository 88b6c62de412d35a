"""Domain models for tracked activities and sessions."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Optional


PRIORITY_RANK: dict[str, int] = {"high": 0, "medium": 1, "low": 2}
UNRANKED = len(PRIORITY_RANK)


@dataclass(slots=True)
class Activity:
    """Something the user tracks time against. Read-only to the timer."""

    id: str
    label: str
    category: str = "personal"
    priority: str = "medium"
    cognitive_load: str = "moderate"
    daily_max: Optional[int] = None
    session_max: Optional[int] = None
    archived: bool = False
    estimated_duration: Optional[int] = None
    scheduled_days: list[str] = field(default_factory=list)

    @property
    def priority_rank(self) -> int:
        return PRIORITY_RANK.get(self.priority, UNRANKED)

    def is_scheduled_on(self, weekday: str) -> bool:
        """Activities without scheduled days are planned for every day."""
        return not self.scheduled_days or weekday in self.scheduled_days

    def copy(self) -> "Activity":
        return replace(self, scheduled_days=list(self.scheduled_days))

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "category": self.category,
            "priority": self.priority,
            "cognitiveLoad": self.cognitive_load,
            "dailyMax": self.daily_max,
            "sessionMax": self.session_max,
            "archived": self.archived,
            "estimatedDuration": self.estimated_duration,
            "scheduledDays": list(self.scheduled_days),
        }


def unknown_activity(activity_id: str) -> Activity:
    """Placeholder for sessions whose activity no longer exists."""
    return Activity(id=activity_id, label="Unknown")


@dataclass(slots=True)
class Interval:
    """One contiguous run of active tracking. ``end`` is None while open."""

    start: int
    end: Optional[int] = None
    duration: int = 0

    @property
    def is_open(self) -> bool:
        return self.end is None

    def close(self, end: int) -> None:
        self.end = end
        # Round half up, not half-to-even.
        self.duration = max(0, math.floor((end - self.start) / 1000 + 0.5))

    def to_record(self) -> dict[str, Any]:
        return {"start": self.start, "end": self.end, "duration": self.duration}


@dataclass(slots=True)
class Session:
    """A tracked work period for one activity, made of one or more intervals."""

    id: str
    activity_id: str
    session_start: int
    session_end: Optional[int] = None
    intervals: list[Interval] = field(default_factory=list)
    total_duration: int = 0
    auto_stopped: bool = False

    @property
    def is_complete(self) -> bool:
        return self.session_end is not None

    @property
    def open_interval(self) -> Optional[Interval]:
        if self.intervals and self.intervals[-1].is_open:
            return self.intervals[-1]
        return None

    def interval_seconds(self) -> int:
        return sum(interval.duration or 0 for interval in self.intervals)

    def copy(self) -> "Session":
        return replace(self, intervals=[replace(i) for i in self.intervals])

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "activityId": self.activity_id,
            "sessionStart": self.session_start,
            "sessionEnd": self.session_end,
            "intervals": [interval.to_record() for interval in self.intervals],
            "totalDuration": self.total_duration,
            "autoStopped": self.auto_stopped,
        }
