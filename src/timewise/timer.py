"""Timer engine: one in-flight session, its intervals, pauses and auto-stop.

The engine is a small guarded state machine::

    idle --start--> running --pause--> paused --resume--> running
    running|paused --stop/reset--> idle

Precondition violations are returned as :class:`TimerResult` failures and
leave the state untouched. A single recurring ticker, started on session
start and cancelled on stop or reset, evaluates auto-stop and publishes
``tick`` notifications.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .clock import Clock, DateLike, date_key, now_ms
from .errors import TimerError, TimerResult
from .events import EventBus, Listener, TimerEvent
from .models import Activity, Interval, Session
from .repository import Repository, find_activity
from .scheduler import ThreadTicker, Ticker

logger = logging.getLogger(__name__)


class TimerStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(slots=True)
class TimerState:
    """Mutable state owned by exactly one :class:`TimerEngine`."""

    session: Optional[Session] = None
    is_paused: bool = False
    pause_start: Optional[int] = None
    total_paused_ms: int = 0

    @property
    def status(self) -> TimerStatus:
        if self.session is None:
            return TimerStatus.IDLE
        return TimerStatus.PAUSED if self.is_paused else TimerStatus.RUNNING


@dataclass(slots=True)
class TimerSnapshot:
    """Side-effect free copy of the engine state handed to listeners."""

    status: TimerStatus
    session: Optional[Session]
    is_paused: bool
    pause_start: Optional[int]
    total_paused_ms: int
    elapsed_seconds: int
    completed: Optional[Session] = None
    auto_stopped: bool = False
    activity: Optional[Activity] = None


class TimerEngine:
    """Owns the single in-flight session."""

    def __init__(
        self,
        repository: Repository,
        *,
        clock: Clock = now_ms,
        ticker: Optional[Ticker] = None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.repository = repository
        self._clock = clock
        self._ticker: Ticker = ticker if ticker is not None else ThreadTicker()
        self._new_id = id_factory
        self._events = EventBus()
        self._state = TimerState()
        self._lock = threading.RLock()
        self._generation = 0

    # Observers ---------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(event, snapshot)``; returns an unsubscribe handle."""
        return self._events.subscribe(listener)

    # Queries -----------------------------------------------------------

    @property
    def status(self) -> TimerStatus:
        return self._state.status

    def get_elapsed_seconds(self) -> int:
        with self._lock:
            return self._elapsed_seconds(self._clock())

    def get_state(self) -> TimerSnapshot:
        with self._lock:
            return self._snapshot()

    def get_daily_total_seconds(self, activity_id: str, day: DateLike) -> int:
        """Seconds persisted for ``activity_id`` on the local date of ``day``."""
        target = date_key(day)
        return sum(
            max(0, session.total_duration)
            for session in self.repository.get_sessions()
            if session.activity_id == activity_id
            and date_key(session.session_start) == target
        )

    def get_daily_remaining_seconds(self, activity_id: str, day: DateLike) -> Optional[int]:
        """Seconds left under the activity's daily cap, or None when uncapped."""
        activity = find_activity(self.repository, activity_id)
        if activity is None or not activity.daily_max:
            return None
        used = self.get_daily_total_seconds(activity_id, day)
        return max(0, activity.daily_max * 60 - used)

    # Transitions -------------------------------------------------------

    def start_session(self, activity_id: str) -> TimerResult:
        with self._lock:
            if self._state.session is not None:
                return TimerResult.failure(TimerError.ACTIVE_SESSION_EXISTS)
            activity = find_activity(self.repository, activity_id)
            if activity is None or activity.archived:
                return TimerResult.failure(TimerError.INVALID_ACTIVITY)

            now = self._clock()
            session = Session(
                id=self._new_id(),
                activity_id=activity_id,
                session_start=now,
                intervals=[Interval(start=now)],
            )
            self._state = TimerState(session=session)
            self._start_ticker()
            logger.info("Started session %s for activity %s.", session.id, activity.label)
            self._events.emit(TimerEvent.START, self._snapshot())
            return TimerResult(session=session.copy())

    def pause(self) -> TimerResult:
        with self._lock:
            if self._state.status is not TimerStatus.RUNNING:
                return TimerResult.failure(TimerError.NOT_RUNNING)
            now = self._clock()
            self._close_open_interval(now)
            self._state.is_paused = True
            self._state.pause_start = now
            logger.debug("Paused session %s.", self._state.session.id)
            self._events.emit(TimerEvent.PAUSE, self._snapshot())
            return TimerResult(session=self._state.session.copy())

    def resume(self) -> TimerResult:
        with self._lock:
            if self._state.status is not TimerStatus.PAUSED:
                return TimerResult.failure(TimerError.NOT_PAUSED)
            now = self._clock()
            self._fold_pending_pause(now)
            self._state.session.intervals.append(Interval(start=now))
            logger.debug("Resumed session %s.", self._state.session.id)
            self._events.emit(TimerEvent.RESUME, self._snapshot())
            return TimerResult(session=self._state.session.copy())

    def stop(self, auto_stopped: bool = False) -> TimerResult:
        with self._lock:
            session = self._state.session
            if session is None:
                return TimerResult.failure(TimerError.NO_ACTIVE_SESSION)

            # Finalize a copy; the live session stays untouched until the save succeeds.
            now = self._clock()
            session = session.copy()
            interval = session.open_interval
            if interval is not None:
                interval.close(now)
            session.session_end = now
            session.total_duration = session.interval_seconds()
            session.auto_stopped = bool(auto_stopped)

            sessions = self.repository.get_sessions()
            sessions.append(session.copy())
            self.repository.save_sessions(sessions)

            self._state = TimerState()
            self._stop_ticker()
            logger.info(
                "Stopped session %s after %ss%s.",
                session.id,
                session.total_duration,
                " (auto-stop)" if auto_stopped else "",
            )
            snapshot = self._snapshot()
            snapshot.completed = session.copy()
            snapshot.auto_stopped = session.auto_stopped
            self._events.emit(TimerEvent.STOP, snapshot)
            return TimerResult(session=session)

    def reset(self) -> TimerResult:
        """Discard the in-flight session without persisting it."""
        with self._lock:
            discarded = self._state.session
            self._state = TimerState()
            self._stop_ticker()
            if discarded is not None:
                logger.info("Discarded session %s.", discarded.id)
            self._events.emit(TimerEvent.RESET, self._snapshot())
            return TimerResult()

    def tick(self) -> None:
        """Evaluate auto-stop, then notify listeners. Driven by the ticker."""
        with self._lock:
            if self._state.session is None:
                return
            if self._check_auto_stop():
                return
            self._events.emit(TimerEvent.TICK, self._snapshot())

    # Internals ---------------------------------------------------------

    def _check_auto_stop(self) -> bool:
        if self._state.status is not TimerStatus.RUNNING:
            return False
        activity = find_activity(self.repository, self._state.session.activity_id)
        if activity is None or not activity.session_max:
            return False
        if self._elapsed_seconds(self._clock()) < activity.session_max * 60:
            return False

        result = self.stop(auto_stopped=True)
        logger.info("Auto-stopped %s after reaching %s minutes.", activity.label, activity.session_max)
        snapshot = self._snapshot()
        snapshot.completed = result.session.copy()
        snapshot.auto_stopped = True
        snapshot.activity = activity
        self._events.emit(TimerEvent.AUTO_STOP, snapshot)
        return True

    def _elapsed_seconds(self, now: int) -> int:
        state = self._state
        if state.session is None:
            return 0
        ongoing = now - state.pause_start if state.pause_start is not None else 0
        elapsed_ms = now - state.session.session_start - state.total_paused_ms - ongoing
        return max(0, elapsed_ms // 1000)

    def _close_open_interval(self, now: int) -> None:
        interval = self._state.session.open_interval
        if interval is not None:
            interval.close(now)

    def _fold_pending_pause(self, now: int) -> None:
        if self._state.pause_start is not None:
            self._state.total_paused_ms += now - self._state.pause_start
        self._state.is_paused = False
        self._state.pause_start = None

    def _start_ticker(self) -> None:
        self._generation += 1
        generation = self._generation
        self._ticker.start(lambda: self._on_tick(generation))

    def _stop_ticker(self) -> None:
        if self._ticker.active:
            self._ticker.cancel()

    def _on_tick(self, generation: int) -> None:
        with self._lock:
            # A ticker thread may still fire once after its session ended.
            if generation != self._generation:
                return
            self.tick()

    def _snapshot(self) -> TimerSnapshot:
        state = self._state
        return TimerSnapshot(
            status=state.status,
            session=state.session.copy() if state.session else None,
            is_paused=state.is_paused,
            pause_start=state.pause_start,
            total_paused_ms=state.total_paused_ms,
            elapsed_seconds=self._elapsed_seconds(self._clock()),
        )
