"""
Periodic housekeeping for the alert engine.
"""

import logging
import threading
import time
from typing import Callable, Dict, Optional

from repowatch.alerts.alert_store import AlertStore
from repowatch.alerts.notification_router import NotificationRouter
from repowatch.alerts.suppression import SuppressionManager

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 3600  # seconds


class MaintenanceSweeper:
    """Trims history, expired suppressions and rate-limit windows"""

    def __init__(self, store: AlertStore, suppressions: SuppressionManager,
                 router: NotificationRouter, interval: float = DEFAULT_INTERVAL,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.suppressions = suppressions
        self.router = router
        self.interval = interval
        self.clock = clock

        self.last_run: Optional[float] = None
        self.running = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> Dict[str, int]:
        """Perform one maintenance pass"""
        result = {
            'history_trimmed': self.store.trim_history(),
            'suppressions_expired': self.suppressions.prune_expired(),
            'rate_limit_entries_pruned': self.router.prune_rate_limits(),
        }
        self.last_run = self.clock()
        logger.info(
            f"Alert system maintenance completed: {result['history_trimmed']} history entries trimmed, "
            f"{result['suppressions_expired']} suppressions expired"
        )
        return result

    def start(self) -> None:
        if self.running:
            return
        self.running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, daemon=True, name="alert-maintenance")
        self._thread.start()
        logger.info(f"Alert system maintenance timer started (interval: {self.interval}s)")

    def stop(self, timeout: float = 2.0) -> None:
        if not self.running:
            return
        self.running = False
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)

    def _run_loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Error in alert maintenance: {e}", exc_info=True)
