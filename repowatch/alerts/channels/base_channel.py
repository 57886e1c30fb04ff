"""
Base notification channel interface.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict
import logging

logger = logging.getLogger(__name__)


class BaseChannel(ABC):
    """Abstract base class for notification senders"""

    @abstractmethod
    def send(self, channel, alert, stage: int) -> bool:
        """
        Send alert notification.

        Args:
            channel: NotificationChannel being delivered to
            alert: Alert instance
            stage: Escalation stage index that triggered the send

        Returns:
            True if notification sent successfully, False otherwise
        """
        pass

    def format_message(self, alert, stage: int) -> Dict[str, str]:
        """
        Format alert summary and description.

        Args:
            alert: Alert instance
            stage: Escalation stage index

        Returns:
            Dict with 'summary' and 'description' keys
        """
        summary = f"[{alert.severity.value.upper()}] {alert.type} in {alert.repository}"
        if stage > 0:
            summary = f"{summary} (escalation stage {stage + 1})"

        return {
            'summary': summary,
            'description': alert.message,
        }

    @staticmethod
    def format_timestamp(epoch: float) -> str:
        return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat()
