"""
PagerDuty notification channel using the Events API v2.
"""

import logging
from typing import Dict, Optional

import requests

from repowatch.alerts.channels.base_channel import BaseChannel

logger = logging.getLogger(__name__)

EVENTS_URL = 'https://events.pagerduty.com/v2/enqueue'

# PagerDuty only knows critical/error/warning/info
SEVERITY_MAP = {
    'critical': 'critical',
    'high': 'error',
    'medium': 'warning',
    'low': 'info',
}


class PagerDutyChannel(BaseChannel):
    """Triggers PagerDuty incidents"""

    def __init__(self, config: Optional[Dict] = None):
        config = config or {}
        self.events_url = config.get('events_url', EVENTS_URL)
        self.timeout = config.get('timeout', 10)

    def send(self, channel, alert, stage: int) -> bool:
        config = channel.config or {}
        routing_key = config.get('integration_key')
        if not routing_key:
            logger.error(f"PagerDuty channel {channel.name} has no integration_key configured")
            return False

        message_content = self.format_message(alert, stage)
        payload = {
            "routing_key": routing_key,
            "event_action": "trigger",
            # One incident per alert key; later stages update the same incident
            "dedup_key": f"{alert.repository}:{alert.type}",
            "payload": {
                "summary": f"{message_content['summary']}: {message_content['description']}",
                "source": alert.repository,
                "severity": SEVERITY_MAP.get(alert.severity.value, 'error'),
                "component": config.get('service') or alert.type,
                "custom_details": alert.to_dict(),
            },
        }

        try:
            response = requests.post(self.events_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            logger.info(f"PagerDuty incident triggered for alert: {alert.id}")
            return True
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to trigger PagerDuty incident for alert {alert.id}: {e}")
            return False
