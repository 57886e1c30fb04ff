"""Shared fixtures for alert engine tests"""

import pytest

from repowatch.alerts.alert_manager import AlertManager
from repowatch.alerts.channels.base_channel import BaseChannel
from repowatch.alerts.models import ChannelType
from repowatch.config.settings import get_default_config, merge_configs

START_TIME = 1_700_000_000.0


class ManualClock:
    """Clock that only moves when told to"""

    def __init__(self, start=START_TIME):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingChannel(BaseChannel):
    """Sender that records every delivery instead of sending it"""

    def __init__(self, result=True, error=None, fail_channels=()):
        self.result = result
        self.error = error
        self.fail_channels = set(fail_channels)
        self.sent = []

    def send(self, channel, alert, stage):
        if channel.name in self.fail_channels:
            raise RuntimeError(f"{channel.name} is down")
        if self.error is not None:
            raise self.error
        self.sent.append((channel.name, alert.id, stage))
        return self.result

    def channels_sent(self):
        return [name for name, _, _ in self.sent]


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def recorder():
    return RecordingChannel()


@pytest.fixture
def make_recorder():
    """Build extra recording senders with custom behaviour"""
    return RecordingChannel


@pytest.fixture
def alerting_config():
    """Default alerting section"""
    return get_default_config()['alerting']


@pytest.fixture
def make_manager(clock, recorder):
    """Build an AlertManager with a manual clock and recording senders"""
    created = []

    def _make(overrides=None, sender=None):
        config = get_default_config()['alerting']
        if overrides:
            config = merge_configs(config, overrides)
        sender = sender or recorder
        manager = AlertManager(
            config,
            senders={channel_type: sender for channel_type in ChannelType},
            clock=clock,
        )
        created.append(manager)
        return manager

    yield _make

    for manager in created:
        manager.shutdown()


@pytest.fixture
def manager(make_manager):
    return make_manager()
