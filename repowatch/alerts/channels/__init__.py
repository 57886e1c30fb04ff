"""
Notification senders, one per channel type.
"""

import logging
from typing import Dict

from repowatch.alerts.channels.base_channel import BaseChannel
from repowatch.alerts.channels.log_channel import LogChannel
from repowatch.alerts.channels.pagerduty_channel import PagerDutyChannel
from repowatch.alerts.channels.slack_channel import SlackChannel
from repowatch.alerts.channels.webhook_channel import WebhookChannel
from repowatch.alerts.models import ChannelType

logger = logging.getLogger(__name__)


def build_senders(delivery_config: Dict) -> Dict[ChannelType, BaseChannel]:
    """
    Choose a sender per channel type from the ``alerting.delivery`` config.

    In ``log`` mode every type logs instead of delivering. In ``live``
    mode slack, webhook and pagerduty use their HTTP senders; email and
    sms have no bundled transport and keep logging.
    """
    delivery_config = delivery_config or {}
    mode = delivery_config.get('mode', 'log')
    log_channel = LogChannel()
    senders: Dict[ChannelType, BaseChannel] = {t: log_channel for t in ChannelType}

    if mode == 'log':
        logger.info("Notification delivery mode: log")
        return senders

    if mode != 'live':
        raise ValueError(f"Invalid delivery mode: {mode}. Must be 'log' or 'live'")

    slack_config = delivery_config.get('slack', {})
    if slack_config.get('webhook_url'):
        senders[ChannelType.SLACK] = SlackChannel(slack_config)
    else:
        logger.warning("Slack webhook_url not set, Slack notifications will be logged")

    senders[ChannelType.WEBHOOK] = WebhookChannel(delivery_config.get('webhook', {}))
    senders[ChannelType.PAGERDUTY] = PagerDutyChannel(delivery_config.get('pagerduty', {}))

    for channel_type in (ChannelType.EMAIL, ChannelType.SMS):
        logger.warning(f"No {channel_type.value} transport configured, notifications will be logged")

    logger.info("Notification delivery mode: live")
    return senders


__all__ = [
    'BaseChannel',
    'LogChannel',
    'PagerDutyChannel',
    'SlackChannel',
    'WebhookChannel',
    'build_senders',
]
