"""Process-wide sync status with an at-most-one-run policy.

The composition root (web app factory or CLI) creates one ``StatusTracker``
and passes it to whatever triggers or reports syncs. The running flag is
tested and set under a lock; the sync itself runs outside the lock so
``get_status`` never waits for it.
"""

from __future__ import annotations

import copy
import datetime as dt
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from .logging_setup import get_logger
from .sync import SyncEngine

logger = get_logger(__name__)


@dataclass
class SyncStatus:
    last_run: Optional[str] = None
    last_result: Optional[Dict[str, Any]] = None
    running: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastRun": self.last_run,
            "lastResult": copy.deepcopy(self.last_result),
            "running": self.running,
        }


class StatusTracker:
    def __init__(
        self,
        engine: SyncEngine,
        clock: Callable[[], dt.datetime] = lambda: dt.datetime.now(dt.timezone.utc),
    ) -> None:
        self.engine = engine
        self._clock = clock
        self._lock = threading.Lock()
        self._status = SyncStatus()

    def get_status(self) -> Dict[str, Any]:
        with self._lock:
            return self._status.to_dict()

    def trigger(
        self,
        secret_id: Optional[str],
        secret_key: Optional[str],
        account_ids: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """Run one sync unless one is already in flight.

        A concurrent call returns the current status (``running`` is true)
        without starting a second run. Failures are recorded as
        ``{"ok": False, "error": ...}`` and never raised.
        """

        with self._lock:
            if self._status.running:
                logger.info("sync already running, trigger ignored")
                return self._status.to_dict()
            self._status.running = True
            self._status.last_run = self._clock().isoformat()

        outcome: Optional[Dict[str, Any]] = None
        try:
            result = self.engine.run(secret_id, secret_key, list(account_ids or []))
            outcome = {"ok": True, **result.to_dict()}
        except Exception as exc:  # noqa: BLE001
            logger.exception("sync run failed")
            outcome = {"ok": False, "error": str(exc)}
        finally:
            # Interrupts still propagate, but must not leave the flag set.
            with self._lock:
                if outcome is not None:
                    self._status.last_result = outcome
                self._status.running = False
                status = self._status.to_dict()

        return status
