"""
Active alert table, bounded history and per-key locking.
"""

import logging
import threading
import time
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional

from repowatch.alerts.models import Alert, AlertKey, HistoryEntry
from repowatch.alerts.suppression import SuppressionManager

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 1000


class ProcessOutcome(str, Enum):
    CREATED = 'created'
    UPDATED = 'updated'
    UNCHANGED = 'unchanged'
    SUPPRESSED = 'suppressed'


class _KeyLock:
    """Re-entrant lock plus the number of callers currently using it"""

    def __init__(self):
        self.lock = threading.RLock()
        self.users = 0


class AlertStore:
    """
    Owns the alert lifecycle.

    At most one active alert exists per (repository, threshold type) key.
    Callers serialize same-key operations with ``lock_for(key)``; the
    internal guard only protects the maps themselves. A key lock exists
    only while some caller is inside ``lock_for`` for that key.
    """

    def __init__(self, suppressions: SuppressionManager,
                 clock: Callable[[], float] = time.time,
                 history_limit: int = DEFAULT_HISTORY_LIMIT):
        """
        Initialize alert store.

        Args:
            suppressions: Consulted before any candidate is processed
            clock: Time source (epoch seconds)
            history_limit: Entries kept by trim_history
        """
        self.suppressions = suppressions
        self.clock = clock
        self.history_limit = history_limit

        self._active: Dict[AlertKey, Alert] = {}
        self._history: List[HistoryEntry] = []
        self._key_locks: Dict[AlertKey, _KeyLock] = {}
        self._guard = threading.Lock()

    @contextmanager
    def lock_for(self, key: AlertKey) -> Iterator[None]:
        """Hold the lock serializing all operations on one alert key"""
        with self._guard:
            entry = self._key_locks.get(key)
            if entry is None:
                entry = _KeyLock()
                self._key_locks[key] = entry
            entry.users += 1

        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._key_locks[key]

    def lock_count(self) -> int:
        """Key locks currently in use"""
        with self._guard:
            return len(self._key_locks)

    def process(self, candidate: Alert) -> ProcessOutcome:
        """
        Apply a breach candidate to the active table.

        Args:
            candidate: Alert built from the current evaluation

        Returns:
            What happened to the candidate
        """
        key = candidate.key
        if self.suppressions.is_suppressed(key):
            logger.debug(f"Alert suppressed: {key[0]}/{key[1]}")
            return ProcessOutcome.SUPPRESSED

        with self._guard:
            existing = self._active.get(key)
            if existing is None:
                self._active[key] = candidate
                self._record('created', candidate)
                logger.info(f"New {candidate.severity.value} alert: {candidate.message}")
                return ProcessOutcome.CREATED

            if existing.severity == candidate.severity:
                return ProcessOutcome.UNCHANGED

            # Escalation keeps running on the original policy timeline
            previous = existing.severity
            existing.severity = candidate.severity
            existing.message = candidate.message
            existing.current_value = candidate.current_value
            existing.threshold_value = candidate.threshold_value
            self._record('updated', existing)

        logger.info(f"Alert {existing.id} severity changed {previous.value} -> {existing.severity.value}")
        return ProcessOutcome.UPDATED

    def acknowledge(self, alert_id: str, actor: str) -> Optional[Alert]:
        """
        Mark an active alert as acknowledged.

        Returns:
            The acknowledged alert, or None if no active alert has that id
        """
        with self._guard:
            alert = self._find(alert_id)
            if alert is None:
                return None
            alert.acknowledged = True
            alert.acknowledged_at = self.clock()
            alert.acknowledged_by = actor

        logger.info(f"Alert acknowledged: {alert_id} by {actor}")
        return alert

    def resolve(self, key: AlertKey, reason: str) -> Optional[Alert]:
        """
        Remove the active alert for a key and move it to history.

        Returns:
            The resolved alert, or None if nothing was active
        """
        with self._guard:
            alert = self._active.pop(key, None)
            if alert is None:
                return None
            alert.resolved_at = self.clock()
            alert.resolved_by = reason
            self._record('resolved', alert, reason=reason)

        logger.info(f"Alert resolved: {key[0]}/{key[1]} ({reason})")
        return alert

    def get(self, key: AlertKey) -> Optional[Alert]:
        with self._guard:
            return self._active.get(key)

    def find_by_id(self, alert_id: str) -> Optional[Alert]:
        with self._guard:
            return self._find(alert_id)

    def is_active(self, key: AlertKey) -> bool:
        with self._guard:
            return key in self._active

    def active_alerts(self) -> List[Alert]:
        with self._guard:
            return list(self._active.values())

    def history(self) -> List[HistoryEntry]:
        with self._guard:
            return list(self._history)

    def trim_history(self, limit: Optional[int] = None) -> int:
        """Keep only the most recent entries, returning how many were dropped"""
        limit = self.history_limit if limit is None else limit
        with self._guard:
            excess = len(self._history) - limit
            if excess <= 0:
                return 0
            del self._history[:excess]
        return excess

    def active_count(self) -> int:
        with self._guard:
            return len(self._active)

    def history_count(self) -> int:
        with self._guard:
            return len(self._history)

    def _find(self, alert_id: str) -> Optional[Alert]:
        for alert in self._active.values():
            if alert.id == alert_id:
                return alert
        return None

    def _record(self, action: str, alert: Alert, reason: Optional[str] = None) -> None:
        self._history.append(HistoryEntry(
            action=action,
            alert=alert.to_dict(),
            recorded_at=self.clock(),
            reason=reason,
        ))
