"""
Notification channel that only logs deliveries.
"""

import logging

from repowatch.alerts.channels.base_channel import BaseChannel

logger = logging.getLogger(__name__)

SEVERITY_MARKERS = {
    'critical': '!!!',
    'high': '!!',
    'medium': '!',
    'low': 'i',
}


class LogChannel(BaseChannel):
    """Writes notifications to the log instead of an external service"""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def send(self, channel, alert, stage: int) -> bool:
        message_content = self.format_message(alert, stage)
        marker = SEVERITY_MARKERS.get(alert.severity.value, '')
        target = self._describe_target(channel)

        logger.log(
            self.level,
            f"{channel.type.value} notification to {target}: {marker} "
            f"{message_content['summary']} - {message_content['description']}"
        )
        return True

    @staticmethod
    def _describe_target(channel) -> str:
        config = channel.config or {}
        for field in ('channel', 'recipients', 'numbers', 'url', 'service'):
            value = config.get(field)
            if value:
                return ', '.join(value) if isinstance(value, list) else str(value)
        return channel.name
