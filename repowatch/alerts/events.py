"""
In-process event fan-out for alert lifecycle events.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

ALERT_CREATED = 'alert_created'
ALERT_RESOLVED = 'alert_resolved'
ALERT_ACKNOWLEDGED = 'alert_acknowledged'
ALERT_SUPPRESSED = 'alert_suppressed'

EVENTS = (ALERT_CREATED, ALERT_RESOLVED, ALERT_ACKNOWLEDGED, ALERT_SUPPRESSED)


class EventBus:
    """Synchronous publish/subscribe for audit and external fan-out"""

    def __init__(self):
        self._handlers: Dict[str, List[Callable[[Dict[str, Any]], None]]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event: str, handler: Callable[[Dict[str, Any]], None]) -> None:
        if event not in EVENTS:
            raise ValueError(f"Unknown event: {event}. Must be one of {list(EVENTS)}")
        with self._lock:
            if handler not in self._handlers[event]:
                self._handlers[event].append(handler)

    def unsubscribe(self, event: str, handler: Callable[[Dict[str, Any]], None]) -> bool:
        with self._lock:
            if handler in self._handlers.get(event, []):
                self._handlers[event].remove(handler)
                return True
        return False

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        """Call every handler for event; handler errors are logged, not raised"""
        with self._lock:
            handlers = list(self._handlers.get(event, []))

        for handler in handlers:
            try:
                handler(payload)
            except Exception as e:
                logger.error(f"Event handler for {event} failed: {e}", exc_info=True)
