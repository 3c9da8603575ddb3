from __future__ import annotations

import logging
from typing import Callable, Optional

from .scheduling import PeriodicScheduler, TickScheduler

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 15.0

SchedulerFactory = Callable[[Callable[[], None]], PeriodicScheduler]


class AutoSaveManager:
    """Toggles periodic saving on top of a :class:`PeriodicScheduler`.

    Enabling again while already enabled replaces the running schedule, so at
    most one timer is ever active per manager.
    """

    def __init__(self, save: Callable[[], None], scheduler_factory: Optional[SchedulerFactory] = None) -> None:
        self._save = save
        self._factory: SchedulerFactory = scheduler_factory or TickScheduler
        self._scheduler: Optional[PeriodicScheduler] = None

    @property
    def enabled(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def scheduler(self) -> Optional[PeriodicScheduler]:
        return self._scheduler

    def enable(self, interval: float = DEFAULT_INTERVAL) -> None:
        if self._scheduler is None:
            self._scheduler = self._factory(self._save)
        else:
            self.disable()
        self._scheduler.start(interval)
        logger.info("Auto-save enabled every %.1fs", interval)

    def disable(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.stop()
            logger.info("Auto-save disabled")

    def update(self, dt: float) -> None:
        if self._scheduler is not None:
            self._scheduler.update(dt)
