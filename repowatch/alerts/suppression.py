"""
Temporary per-key mutes for alert processing.
"""

import logging
import threading
import time
from typing import Callable, Dict, Optional

from repowatch.alerts.models import AlertKey, Suppression
from repowatch.utils.helpers import format_duration

logger = logging.getLogger(__name__)


class SuppressionManager:
    """Tracks suppressions keyed by alert key"""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._suppressions: Dict[AlertKey, Suppression] = {}
        self._lock = threading.Lock()

    def suppress(self, key: AlertKey, duration: float, actor: str = 'system') -> Suppression:
        """
        Create or overwrite the suppression for a key.

        Args:
            key: Alert key to mute
            duration: Suppression length in seconds
            actor: Who requested the suppression

        Returns:
            The stored suppression
        """
        if duration <= 0:
            raise ValueError(f"Suppression duration must be > 0, got {duration}")

        now = self.clock()
        suppression = Suppression(until=now + duration, suppressed_by=actor, suppressed_at=now)
        with self._lock:
            self._suppressions[key] = suppression

        logger.info(f"Suppressed {key[0]}/{key[1]} for {format_duration(duration)} by {actor}")
        return suppression

    def is_suppressed(self, key: AlertKey) -> bool:
        """True while an unexpired suppression exists; expired entries are dropped"""
        with self._lock:
            suppression = self._suppressions.get(key)
            if suppression is None:
                return False
            if suppression.until > self.clock():
                return True
            del self._suppressions[key]
            return False

    def get(self, key: AlertKey) -> Optional[Suppression]:
        with self._lock:
            return self._suppressions.get(key)

    def prune_expired(self) -> int:
        """Delete expired suppressions, returning how many were removed"""
        now = self.clock()
        with self._lock:
            expired = [k for k, s in self._suppressions.items() if s.until <= now]
            for key in expired:
                del self._suppressions[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._suppressions)
