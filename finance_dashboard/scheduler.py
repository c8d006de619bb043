"""Periodic sync on fixed days of the month.

Scheduled runs go through the same ``StatusTracker.trigger`` as on-demand
ones, so the two can never overlap.
"""

from __future__ import annotations

import datetime as dt
import threading
from typing import Callable, Optional, Sequence

from .config import MAX_SCHEDULE_DAY, AggregatorSettings
from .logging_setup import get_logger
from .status import StatusTracker

logger = get_logger(__name__)


def next_run_after(now: dt.datetime, days: Sequence[int], hour: int = 6) -> dt.datetime:
    """First ``day``/``hour`` slot strictly after ``now``.

    Days above 28 are not supported so every month has every slot.
    """

    if not days:
        raise ValueError("at least one day of the month is required")
    year, month = now.year, now.month
    for _ in range(2):
        for day in sorted(days):
            candidate = now.replace(year=year, month=month, day=day, hour=hour, minute=0, second=0, microsecond=0)
            if candidate > now:
                return candidate
        month += 1
        if month > 12:
            month = 1
            year += 1
    raise AssertionError("unreachable: a slot always exists in the next month")


class SyncScheduler:
    def __init__(
        self,
        tracker: StatusTracker,
        settings: AggregatorSettings,
        days: Sequence[int] = (1, 15),
        hour: int = 6,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
    ) -> None:
        days = tuple(days)
        if not days or any(not 1 <= d <= MAX_SCHEDULE_DAY for d in days):
            raise ValueError(f"schedule days must be within 1..{MAX_SCHEDULE_DAY}, got {list(days)}")
        if not 0 <= hour <= 23:
            raise ValueError(f"schedule hour must be within 0..23, got {hour}")
        self.tracker = tracker
        self.settings = settings
        self.days = days
        self.hour = hour
        self._clock = clock
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._stopped = False

    def start(self) -> None:
        with self._lock:
            self._stopped = False
        self._arm()

    def stop(self) -> None:
        with self._lock:
            self._stopped = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _arm(self) -> None:
        now = self._clock()
        when = next_run_after(now, self.days, self.hour)
        delay = max((when - now).total_seconds(), 0.0)
        with self._lock:
            if self._stopped:
                return
            self._timer = threading.Timer(delay, self._fire)
            self._timer.daemon = True
            self._timer.start()
        logger.info("next scheduled sync at %s", when.isoformat())

    def run_now(self) -> None:
        if not self.settings.has_credentials:
            logger.warning("scheduled sync skipped: no aggregator credentials configured")
            return
        status = self.tracker.trigger(self.settings.secret_id, self.settings.secret_key, [])
        result = status.get("lastResult") or {}
        if result.get("ok"):
            logger.info("scheduled sync added %s, total %s", result.get("added"), result.get("total"))
        else:
            logger.warning("scheduled sync did not succeed: %s", result.get("error"))

    def _fire(self) -> None:
        try:
            self.run_now()
        finally:
            self._arm()
