"""
Notification routing with per-channel rate limiting.
"""

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, List, Optional

from repowatch.alerts.channels.base_channel import BaseChannel
from repowatch.alerts.models import Alert, ChannelType, NotificationChannel

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW = 60.0  # seconds


class RateLimiter:
    """Sliding one-minute window of send timestamps per channel"""

    def __init__(self, clock: Callable[[], float] = time.time, window: float = RATE_LIMIT_WINDOW):
        self.clock = clock
        self.window = window
        self._sends: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def acquire(self, channel_name: str, limit: int) -> bool:
        """
        Record a send for channel_name if it is under limit.

        Returns:
            True if the send is allowed, False if rate limited
        """
        now = self.clock()
        with self._lock:
            sends = self._sends.setdefault(channel_name, deque())
            self._expire(sends, now)
            if len(sends) >= limit:
                return False
            sends.append(now)
            return True

    def usage(self, channel_name: str) -> int:
        """Sends recorded for the channel in the current window"""
        now = self.clock()
        with self._lock:
            sends = self._sends.get(channel_name)
            if not sends:
                return 0
            self._expire(sends, now)
            return len(sends)

    def prune(self) -> int:
        """Drop timestamps older than the window on every channel"""
        now = self.clock()
        removed = 0
        with self._lock:
            for sends in self._sends.values():
                removed += self._expire(sends, now)
        return removed

    def _expire(self, sends: Deque[float], now: float) -> int:
        window_start = now - self.window
        removed = 0
        while sends and sends[0] <= window_start:
            sends.popleft()
            removed += 1
        return removed


class NotificationRouter:
    """Channel registry dispatching notifications to typed senders"""

    def __init__(self, channels: List[NotificationChannel], senders: Dict[ChannelType, BaseChannel],
                 clock: Callable[[], float] = time.time, metrics=None):
        """
        Initialize notification router.

        Args:
            channels: Configured notification channels
            senders: Sender capability per channel type
            clock: Time source (epoch seconds)
            metrics: Optional AlertMetrics recording send outcomes
        """
        self.channels: Dict[str, NotificationChannel] = {c.name: c for c in channels}
        self.senders = senders
        self.rate_limiter = RateLimiter(clock)
        self.metrics = metrics

        enabled = self.enabled_count()
        logger.info(f"Configured {enabled}/{len(self.channels)} notification channels")

    def get(self, channel_name: str) -> Optional[NotificationChannel]:
        return self.channels.get(channel_name)

    def check_rate_limit(self, channel_name: str) -> bool:
        """Consume one send from the channel's window if allowed"""
        channel = self.channels.get(channel_name)
        if channel is None:
            return False
        return self.rate_limiter.acquire(channel_name, channel.rate_limit_per_minute)

    def send(self, channel_name: str, alert: Alert, stage: int = 0) -> bool:
        """
        Deliver an alert to one channel.

        Missing, disabled and rate-limited channels are skipped. Sender
        failures are logged and reported as False, never raised.

        Returns:
            True if the sender reported success
        """
        channel = self.channels.get(channel_name)
        if channel is None or not channel.enabled:
            logger.info(f"Channel {channel_name} not available or disabled")
            self._record(channel_name, 'skipped')
            return False

        if not self.check_rate_limit(channel_name):
            logger.warning(f"Rate limit exceeded for channel {channel_name}")
            self._record(channel_name, 'rate_limited')
            return False

        sender = self.senders.get(channel.type)
        if sender is None:
            logger.error(f"No sender for channel type: {channel.type.value}")
            self._record(channel_name, 'skipped')
            return False

        try:
            success = sender.send(channel, alert, stage)
        except Exception as e:
            logger.error(f"Error sending notification via {channel_name}: {e}", exc_info=True)
            success = False

        if success:
            logger.info(f"Notification sent to {channel_name} for alert {alert.id}")
            self._record(channel_name, 'sent')
        else:
            logger.error(f"Notification failed for {channel_name} (alert {alert.id})")
            self._record(channel_name, 'failed')
        return success

    def enabled_count(self) -> int:
        return sum(1 for c in self.channels.values() if c.enabled)

    def prune_rate_limits(self) -> int:
        return self.rate_limiter.prune()

    def _record(self, channel_name: str, result: str) -> None:
        if self.metrics is not None:
            self.metrics.notification(channel_name, result)


def parse_channel(name: str, channel_config: Dict) -> NotificationChannel:
    """
    Build a NotificationChannel from its configuration mapping.

    Raises:
        ValueError: If the channel type is unknown
    """
    try:
        channel_type = ChannelType(channel_config.get('type'))
    except ValueError:
        raise ValueError(f"Unknown channel type for {name}: {channel_config.get('type')}")

    return NotificationChannel(
        name=name,
        type=channel_type,
        config=dict(channel_config.get('config', {})),
        enabled=channel_config.get('enabled', True),
        rate_limit_per_minute=int(channel_config.get('rate_limit_per_minute', 10)),
    )


def load_channels(channels_config: Dict[str, Dict]) -> List[NotificationChannel]:
    """Parse the ``alerting.channels`` section; invalid entries are logged and skipped"""
    channels = []
    for name, channel_config in (channels_config or {}).items():
        try:
            channels.append(parse_channel(name, channel_config))
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to load channel {name}: {e}")
            continue
    return channels
