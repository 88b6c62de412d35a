"""JSON import/export of the whole data set.

Imports are validated completely before anything is written; a corrupt
payload raises :class:`~timewise.errors.DataIntegrityError` and leaves the
repository untouched.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

from .config import UserConfig
from .errors import DataIntegrityError
from .models import Activity, Interval, Session
from .repository import Repository

logger = logging.getLogger(__name__)

DURATION_TOLERANCE_SECONDS = 1

Weekday = Literal[
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"
]


class ActivityRecord(BaseModel):
    id: str
    label: str = Field(min_length=1)
    category: Literal["professional", "personal"]
    priority: Literal["low", "medium", "high"]
    cognitive_load: Literal["light", "moderate", "intense"] = Field(alias="cognitiveLoad")
    daily_max: Optional[int] = Field(default=None, alias="dailyMax", ge=0)
    session_max: Optional[int] = Field(default=None, alias="sessionMax", ge=0)
    archived: bool = False
    estimated_duration: Optional[int] = Field(default=None, alias="estimatedDuration", ge=0)
    scheduled_days: list[Weekday] = Field(default_factory=list, alias="scheduledDays")

    model_config = ConfigDict(populate_by_name=True)

    def to_activity(self) -> Activity:
        return Activity(
            id=self.id,
            label=self.label,
            category=self.category,
            priority=self.priority,
            cognitive_load=self.cognitive_load,
            daily_max=self.daily_max,
            session_max=self.session_max,
            archived=self.archived,
            estimated_duration=self.estimated_duration,
            scheduled_days=list(self.scheduled_days),
        )


class IntervalRecord(BaseModel):
    start: int
    end: int
    duration: int = Field(ge=0)


class SessionRecord(BaseModel):
    id: str
    activity_id: str = Field(alias="activityId")
    session_start: int = Field(alias="sessionStart")
    session_end: Optional[int] = Field(default=None, alias="sessionEnd")
    intervals: list[IntervalRecord]
    total_duration: Optional[int] = Field(default=None, alias="totalDuration")
    auto_stopped: bool = Field(default=False, alias="autoStopped")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _check_intervals(self) -> "SessionRecord":
        previous_end: Optional[int] = None
        for interval in self.intervals:
            if interval.end < interval.start:
                raise ValueError(f"session {self.id}: interval ends before it starts")
            if interval.start < self.session_start:
                raise ValueError(f"session {self.id}: interval starts before the session")
            if previous_end is not None and interval.start < previous_end:
                raise ValueError(f"session {self.id}: intervals overlap or are out of order")
            previous_end = interval.end

        interval_total = sum(interval.duration for interval in self.intervals)
        if self.total_duration is None:
            self.total_duration = interval_total
        elif abs(interval_total - self.total_duration) > DURATION_TOLERANCE_SECONDS:
            raise ValueError(
                f"session {self.id}: totalDuration {self.total_duration} does not match "
                f"interval sum {interval_total}"
            )
        if self.session_end is None:
            self.session_end = previous_end if previous_end is not None else self.session_start
        return self

    def to_session(self) -> Session:
        return Session(
            id=self.id,
            activity_id=self.activity_id,
            session_start=self.session_start,
            session_end=self.session_end,
            intervals=[
                Interval(start=i.start, end=i.end, duration=i.duration) for i in self.intervals
            ],
            total_duration=self.total_duration or 0,
            auto_stopped=self.auto_stopped,
        )


class TransferPayload(BaseModel):
    activities: list[ActivityRecord] = Field(default_factory=list)
    sessions: list[SessionRecord] = Field(
        default_factory=list, validation_alias=AliasChoices("logs", "sessions")
    )
    user_config: dict[str, Any] = Field(default_factory=dict, alias="userConfig")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "TransferPayload":
        for kind, ids in (
            ("activity", [a.id for a in self.activities]),
            ("session", [s.id for s in self.sessions]),
        ):
            if len(ids) != len(set(ids)):
                raise ValueError(f"duplicate {kind} ids in payload")
        return self


def export_payload(repository: Repository) -> dict[str, Any]:
    return {
        "activities": [activity.to_record() for activity in repository.get_activities()],
        "logs": [session.to_record() for session in repository.get_sessions()],
        "userConfig": repository.get_user_config().to_mapping(),
    }


def parse_payload(payload: Any) -> TransferPayload:
    if not isinstance(payload, dict):
        raise DataIntegrityError("Invalid import payload: expected a JSON object")
    try:
        return TransferPayload.model_validate(payload)
    except ValidationError as exc:
        raise DataIntegrityError(f"Invalid import payload: {exc}") from exc


def import_payload(repository: Repository, payload: Any, *, merge: bool = False) -> TransferPayload:
    """Validate ``payload`` and write it to ``repository``.

    With ``merge`` activities are upserted by id, sessions already present
    are kept as they are (completed sessions are immutable) and config keys
    are layered over the stored config.
    """
    parsed = parse_payload(payload)
    activities = [record.to_activity() for record in parsed.activities]
    sessions = [record.to_session() for record in parsed.sessions]

    if merge:
        merged_activities = {a.id: a for a in repository.get_activities()}
        merged_activities.update({a.id: a for a in activities})
        existing_sessions = repository.get_sessions()
        known = {s.id for s in existing_sessions}
        new_sessions = [s for s in sessions if s.id not in known]
        if len(new_sessions) != len(sessions):
            logger.info("Skipped %d sessions already present.", len(sessions) - len(new_sessions))
        config_data = {**repository.get_user_config().to_mapping(), **parsed.user_config}
        activities = list(merged_activities.values())
        sessions = existing_sessions + new_sessions
    else:
        config_data = parsed.user_config
    try:
        config = UserConfig.from_mapping(config_data)
        config.validate_day_structure()
    except (AttributeError, TypeError, ValueError) as exc:
        raise DataIntegrityError(f"Invalid userConfig: {exc}") from exc

    repository.save_activities(activities)
    repository.save_sessions(sessions)
    repository.save_user_config(config)
    logger.info(
        "Imported %d activities and %d sessions (merge=%s).",
        len(parsed.activities),
        len(parsed.sessions),
        merge,
    )
    return parsed
