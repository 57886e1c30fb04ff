"""
Custom webhook notification channel.
"""

import hashlib
import hmac
import json
import logging
from typing import Dict, Optional

import requests

from repowatch.alerts.channels.base_channel import BaseChannel

logger = logging.getLogger(__name__)


class WebhookChannel(BaseChannel):
    """Custom webhook notification channel"""

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize webhook channel.

        Args:
            config: Default settings (method, headers, timeout); the target
                url and secret come from each NotificationChannel's config
        """
        config = config or {}
        self.method = config.get('method', 'POST').upper()
        self.headers = dict(config.get('headers', {}))
        self.timeout = config.get('timeout', 10)

        # Ensure Content-Type is set
        if 'Content-Type' not in self.headers:
            self.headers['Content-Type'] = 'application/json'

        if self.method not in ('POST', 'PUT'):
            raise ValueError(f"Unsupported HTTP method: {self.method}")

        logger.info(f"Webhook channel initialized (method: {self.method})")

    def send(self, channel, alert, stage: int) -> bool:
        """
        Send webhook notification.

        Args:
            channel: NotificationChannel with 'url' and optional 'secret'
            alert: Alert instance
            stage: Escalation stage index

        Returns:
            True if sent successfully
        """
        config = channel.config or {}
        url = config.get('url')
        if not url:
            logger.error(f"Webhook channel {channel.name} has no url configured")
            return False

        try:
            message_content = self.format_message(alert, stage)
            payload = self._create_webhook_payload(alert, stage, message_content)
            body = json.dumps(payload)

            headers = dict(self.headers)
            secret = config.get('secret')
            if secret:
                signature = hmac.new(secret.encode(), body.encode(), hashlib.sha256).hexdigest()
                headers['X-Signature-256'] = f"sha256={signature}"

            response = requests.request(
                self.method,
                url,
                data=body,
                headers=headers,
                timeout=self.timeout
            )
            response.raise_for_status()

            logger.info(f"Webhook notification sent for alert: {alert.id}")
            return True

        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send webhook notification for alert {alert.id}: {e}")
            return False

    def _create_webhook_payload(self, alert, stage: int, message_content: Dict[str, str]) -> Dict:
        """Create webhook payload"""
        return {
            "alert": {
                "id": alert.id,
                "type": alert.type,
                "severity": alert.severity.value,
                "status": "firing",
                "repository": alert.repository,
                "created_at": self.format_timestamp(alert.created_at),
                "escalation_policy": alert.escalation_policy,
                "escalation_stage": stage,
            },
            "metric": {
                "value": alert.current_value,
                "threshold": alert.threshold_value,
            },
            "annotations": {
                "summary": message_content['summary'],
                "description": message_content['description'],
            }
        }
