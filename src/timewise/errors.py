"""Result and error types shared by the timer and the import layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .models import Session


class TimerError(str, Enum):
    """Expected, recoverable misuse of the timer state machine."""

    ACTIVE_SESSION_EXISTS = "active_session_exists"
    INVALID_ACTIVITY = "invalid_activity"
    NOT_RUNNING = "not_running"
    NOT_PAUSED = "not_paused"
    NO_ACTIVE_SESSION = "no_active_session"


@dataclass(slots=True, frozen=True)
class TimerResult:
    session: Optional[Session] = None
    error: Optional[TimerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: TimerError) -> "TimerResult":
        return cls(error=error)


class DataIntegrityError(ValueError):
    """Raised when an imported or stored payload is inconsistent."""
