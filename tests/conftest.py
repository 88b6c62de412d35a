"""
Pytest configuration and fixtures for TimeWise tests.
"""

from datetime import datetime
from typing import Callable, Optional

import pytest

from timewise.clock import to_epoch_ms
from timewise.models import Activity, Interval, Session
from timewise.repository import InMemoryRepository
from timewise.timer import TimerEngine


class FakeClock:
    """Controllable epoch-millisecond clock."""

    def __init__(self, start: datetime) -> None:
        self.now = to_epoch_ms(start)

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float = 0, minutes: float = 0) -> int:
        self.now += int(round((seconds + minutes * 60) * 1000))
        return self.now

    def set(self, moment: datetime) -> None:
        self.now = to_epoch_ms(moment)


class ManualTicker:
    """Ticker that only fires when a test calls ``fire``."""

    def __init__(self) -> None:
        self.callback: Optional[Callable[[], None]] = None
        self.starts = 0
        self.cancels = 0

    @property
    def active(self) -> bool:
        return self.callback is not None

    def start(self, callback: Callable[[], None]) -> None:
        self.starts += 1
        self.callback = callback

    def cancel(self) -> None:
        self.cancels += 1
        self.callback = None

    def fire(self) -> None:
        if self.callback is not None:
            self.callback()


def make_session(
    session_id: str,
    activity_id: str,
    start: datetime,
    seconds: int,
    auto_stopped: bool = False,
) -> Session:
    """A completed single-interval session."""
    start_ms = to_epoch_ms(start)
    end_ms = start_ms + seconds * 1000
    return Session(
        id=session_id,
        activity_id=activity_id,
        session_start=start_ms,
        session_end=end_ms,
        intervals=[Interval(start=start_ms, end=end_ms, duration=seconds)],
        total_duration=seconds,
        auto_stopped=auto_stopped,
    )


@pytest.fixture
def activities() -> list[Activity]:
    return [
        Activity(
            id="focus",
            label="Deep work",
            category="professional",
            priority="high",
            cognitive_load="intense",
            session_max=25,
            estimated_duration=90,
            scheduled_days=["monday", "wednesday"],
        ),
        Activity(id="email", label="Email", category="professional", priority="low"),
        Activity(id="reading", label="Reading", priority="medium", daily_max=60, estimated_duration=60),
        Activity(id="old", label="Retired project", priority="medium", archived=True),
    ]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 7, 17, 9, 0, 0))


@pytest.fixture
def ticker() -> ManualTicker:
    return ManualTicker()


@pytest.fixture
def repository(activities: list[Activity]) -> InMemoryRepository:
    return InMemoryRepository(activities=activities)


@pytest.fixture
def engine(repository: InMemoryRepository, clock: FakeClock, ticker: ManualTicker) -> TimerEngine:
    counter = iter(range(1, 10_000))
    return TimerEngine(
        repository,
        clock=clock,
        ticker=ticker,
        id_factory=lambda: f"session-{next(counter)}",
    )
