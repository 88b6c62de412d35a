"""Recurring tick sources for the timer engine."""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class Ticker(Protocol):
    """A cancellable recurring task."""

    @property
    def active(self) -> bool: ...

    def start(self, callback: Callable[[], None]) -> None: ...

    def cancel(self) -> None: ...


class ThreadTicker:
    """Calls ``callback`` every ``interval`` from a daemon thread."""

    def __init__(self, interval: timedelta = timedelta(seconds=1)) -> None:
        self.interval = interval
        self._stop_event: Optional[threading.Event] = None
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        with self._lock:
            return self._stop_event is not None

    def start(self, callback: Callable[[], None]) -> None:
        stop_event = threading.Event()
        with self._lock:
            previous, self._stop_event = self._stop_event, stop_event
        if previous is not None:
            previous.set()
        threading.Thread(
            target=self._run_loop,
            args=(callback, stop_event),
            name="timewise-ticker",
            daemon=True,
        ).start()
        logger.debug("Ticker started (interval=%ss).", self.interval.total_seconds())

    def cancel(self) -> None:
        with self._lock:
            stop_event, self._stop_event = self._stop_event, None
        if stop_event is not None:
            # Not joined: the callback itself may be the caller (auto-stop).
            stop_event.set()
            logger.debug("Ticker cancelled.")

    def _run_loop(self, callback: Callable[[], None], stop_event: threading.Event) -> None:
        seconds = self.interval.total_seconds()
        while not stop_event.wait(seconds):
            try:
                callback()
            except Exception:
                logger.exception("Tick callback failed.")
