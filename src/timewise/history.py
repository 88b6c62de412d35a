"""Session history joined with activity metadata."""

from __future__ import annotations

from dataclasses import dataclass

from .clock import format_duration
from .models import Activity, Session, unknown_activity
from .repository import Repository


@dataclass(slots=True)
class HistoryEntry:
    session: Session
    activity: Activity
    duration_text: str


def get_history(repository: Repository, limit: int | None = None) -> list[HistoryEntry]:
    """Completed sessions, newest first."""
    activities = {activity.id: activity for activity in repository.get_activities()}
    sessions = sorted(repository.get_sessions(), key=lambda s: s.session_start, reverse=True)
    if limit is not None:
        sessions = sessions[:limit]
    return [
        HistoryEntry(
            session=session,
            activity=activities.get(session.activity_id) or unknown_activity(session.activity_id),
            duration_text=format_duration(session.total_duration),
        )
        for session in sessions
    ]
