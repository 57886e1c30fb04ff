"""
Slack notification channel using incoming webhooks.
"""

import logging
from typing import Dict

import requests

from repowatch.alerts.channels.base_channel import BaseChannel

logger = logging.getLogger(__name__)

SEVERITY_COLORS = {
    'critical': '#cc0000',
    'high': '#ff6600',
    'medium': '#ff9900',
    'low': '#0066cc',
}


class SlackChannel(BaseChannel):
    """Slack notification channel via webhooks"""

    def __init__(self, config: Dict):
        """
        Initialize Slack channel.

        Args:
            config: Slack delivery configuration dict with webhook_url
        """
        self.webhook_url = config['webhook_url']
        self.username = config.get('username', 'repowatch')
        self.icon_emoji = config.get('icon_emoji', ':rotating_light:')
        self.timeout = config.get('timeout', 10)

        logger.info("Slack channel initialized")

    def send(self, channel, alert, stage: int) -> bool:
        """
        Send Slack notification.

        Args:
            channel: NotificationChannel with 'channel' and optional 'mention'
            alert: Alert instance
            stage: Escalation stage index

        Returns:
            True if sent successfully
        """
        try:
            message_content = self.format_message(alert, stage)
            payload = self._create_slack_payload(channel, alert, message_content)

            response = requests.post(
                self.webhook_url,
                json=payload,
                headers={'Content-Type': 'application/json'},
                timeout=self.timeout
            )
            response.raise_for_status()

            logger.info(f"Slack notification sent to {payload.get('channel')} for alert: {alert.id}")
            return True

        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send Slack notification for alert {alert.id}: {e}")
            return False

    def _create_slack_payload(self, channel, alert, message_content: Dict[str, str]) -> Dict:
        """Create Slack webhook payload"""
        config = channel.config or {}
        color = SEVERITY_COLORS.get(alert.severity.value, '#666666')

        fields = [
            {
                "title": "Severity",
                "value": alert.severity.value.upper(),
                "short": True
            },
            {
                "title": "Repository",
                "value": alert.repository,
                "short": True
            },
            {
                "title": "Current Value",
                "value": f"{alert.current_value:.2f}",
                "short": True
            },
            {
                "title": "Threshold",
                "value": f"{alert.threshold_value:g}",
                "short": True
            },
        ]

        attachment = {
            "color": color,
            "title": message_content['summary'],
            "text": message_content['description'],
            "fields": fields,
            "footer": f"repowatch | {alert.id}",
            "ts": int(alert.created_at),
        }

        text = f"*{alert.severity.value.upper()} ALERT*"
        mention = config.get('mention')
        if mention:
            text = f"{mention} {text}"

        payload = {
            "username": self.username,
            "icon_emoji": self.icon_emoji,
            "text": text,
            "attachments": [attachment]
        }
        if config.get('channel'):
            payload['channel'] = config['channel']

        return payload
