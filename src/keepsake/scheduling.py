"""Periodic schedulers that drive auto-save."""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Tick = Callable[[], None]


class PeriodicScheduler(ABC):
    """Calls ``tick`` every ``interval`` seconds once started.

    The first call happens after one full interval, never immediately.
    """

    def __init__(self, tick: Tick) -> None:
        self._tick = tick
        self._interval: Optional[float] = None

    @property
    def interval(self) -> Optional[float]:
        return self._interval

    @property
    @abstractmethod
    def running(self) -> bool:
        """Whether the schedule is active."""

    @abstractmethod
    def start(self, interval: float) -> None:
        """Begin firing every ``interval`` seconds."""

    @abstractmethod
    def stop(self) -> None:
        """Stop firing. Safe to call when not running."""

    def update(self, dt: float) -> None:
        """Advance a cooperative scheduler by ``dt`` seconds. No-op by default."""

    @staticmethod
    def _check_interval(interval: float) -> float:
        interval = float(interval)
        if not interval > 0:
            raise ValueError(f"interval must be positive, got {interval}")
        return interval


class TickScheduler(PeriodicScheduler):
    """Cooperative scheduler driven by the host loop.

    The host calls :meth:`update` once per frame with the elapsed time; the tick
    runs inline on the caller's thread, so it never overlaps a save or load that
    the same loop started.
    """

    def __init__(self, tick: Tick) -> None:
        super().__init__(tick)
        self._running = False
        self._elapsed = 0.0
        self.fired = 0

    @property
    def running(self) -> bool:
        return self._running

    def start(self, interval: float) -> None:
        self._interval = self._check_interval(interval)
        self._elapsed = 0.0
        self._running = True
        logger.debug("TickScheduler started (interval=%.2fs)", self._interval)

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._elapsed = 0.0
        logger.debug("TickScheduler stopped after %d ticks", self.fired)

    def update(self, dt: float) -> None:
        if not self._running or self._interval is None:
            return
        self._elapsed += max(0.0, float(dt))
        while self._running and self._elapsed >= self._interval:
            self._elapsed -= self._interval
            self.fired += 1
            self._tick()


class ThreadedScheduler(PeriodicScheduler):
    """Fires the tick from a daemon thread.

    Errors raised by the tick are logged and the schedule keeps running.
    """

    def __init__(self, tick: Tick, name: str = "keepsake-autosave") -> None:
        super().__init__(tick)
        self._name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def start(self, interval: float) -> None:
        interval = self._check_interval(interval)
        self.stop()
        self._interval = interval
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop, interval), name=self._name, daemon=True)
        self._thread.start()
        logger.debug("ThreadedScheduler started (interval=%.2fs)", interval)

    def stop(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop.set()
        if thread is not threading.current_thread():
            thread.join(timeout=5.0)
        self._thread = None
        logger.debug("ThreadedScheduler stopped")

    def _run(self, stop: threading.Event, interval: float) -> None:
        while not stop.wait(interval):
            try:
                self._tick()
            except Exception:
                logger.exception("Scheduled tick failed")
