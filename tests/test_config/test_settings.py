"""Tests for configuration loading"""

import os
import tempfile

import pytest

from repowatch.config.settings import (
    get_default_config, load_config, merge_configs, override_from_env, validate_config,
)


def write_config(content):
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        f.write(content)
        return f.name


class TestDefaults:
    def test_default_config_is_valid(self):
        config = get_default_config()

        validate_config(config)
        assert config['alerting']['delivery']['mode'] == 'log'
        assert config['prometheus']['port'] == 9105
        assert len(config['alerting']['thresholds']) == 7

    def test_defaults_are_fresh_copies(self):
        first = get_default_config()
        first['alerting']['thresholds']['stale_issues']['critical'] = 1

        assert get_default_config()['alerting']['thresholds']['stale_issues']['critical'] == 50


class TestLoadConfig:
    """Test YAML loading and merging"""

    def test_no_path_uses_defaults(self):
        assert load_config()['agent']['log_level'] == 'INFO'

    def test_yaml_merged_over_defaults(self):
        path = write_config("""
alerting:
  thresholds:
    stale_issues:
      critical: 100
  channels:
    slack-alerts:
      rate_limit_per_minute: 20
""")
        try:
            config = load_config(path)
        finally:
            os.unlink(path)

        stale = config['alerting']['thresholds']['stale_issues']
        assert stale['critical'] == 100
        assert stale['high'] == 25
        assert config['alerting']['channels']['slack-alerts']['rate_limit_per_minute'] == 20
        assert config['alerting']['channels']['slack-alerts']['type'] == 'slack'

    def test_missing_file(self):
        with pytest.raises(ValueError, match="Config file not found"):
            load_config("/nonexistent/config.yaml")

    def test_invalid_values_rejected(self):
        path = write_config("prometheus:\n  port: 70000\n")
        try:
            with pytest.raises(ValueError, match="Invalid Prometheus port"):
                load_config(path)
        finally:
            os.unlink(path)

    def test_merge_replaces_lists(self):
        merged = merge_configs({'a': {'b': [1, 2], 'c': 1}}, {'a': {'b': [3]}})
        assert merged == {'a': {'b': [3], 'c': 1}}


class TestEnvironment:
    """Test environment variable overrides"""

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv('LOG_LEVEL', 'debug')
        monkeypatch.setenv('PROMETHEUS_ENABLED', 'true')
        monkeypatch.setenv('PROMETHEUS_PORT', '9200')
        monkeypatch.setenv('DELIVERY_MODE', 'LIVE')
        monkeypatch.setenv('SLACK_WEBHOOK_URL', 'https://hooks.slack.test/x')

        config = override_from_env(get_default_config())

        assert config['agent']['log_level'] == 'DEBUG'
        assert config['prometheus']['enabled'] is True
        assert config['prometheus']['port'] == 9200
        assert config['alerting']['delivery']['mode'] == 'live'
        assert config['alerting']['delivery']['slack']['webhook_url'] == 'https://hooks.slack.test/x'

    def test_channel_secrets_enable_channels(self, monkeypatch):
        monkeypatch.setenv('WEBHOOK_URL', 'https://hooks.test/alerts')
        monkeypatch.setenv('PAGERDUTY_INTEGRATION_KEY', 'key-123')

        channels = override_from_env(get_default_config())['alerting']['channels']

        assert channels['webhook']['enabled']
        assert channels['webhook']['config']['url'] == 'https://hooks.test/alerts'
        assert channels['pagerduty']['enabled']
        assert channels['pagerduty']['config']['integration_key'] == 'key-123'


class TestValidateConfig:
    """Test validation of individual settings"""

    @pytest.mark.parametrize("section,key,value,match", [
        ('agent', 'log_level', 'LOUD', "Invalid log level"),
        ('agent', 'log_format', 'xml', "Invalid log format"),
        ('agent', 'evaluation_interval', 0, "evaluation_interval"),
    ])
    def test_agent_settings(self, section, key, value, match):
        config = get_default_config()
        config[section][key] = value

        with pytest.raises(ValueError, match=match):
            validate_config(config)

    def test_delivery_mode(self):
        config = get_default_config()
        config['alerting']['delivery']['mode'] = 'smoke-signals'

        with pytest.raises(ValueError, match="Invalid delivery mode"):
            validate_config(config)

    def test_history_limit(self):
        config = get_default_config()
        config['alerting']['history_limit'] = 0

        with pytest.raises(ValueError, match="history_limit"):
            validate_config(config)

    def test_channel_type(self):
        config = get_default_config()
        config['alerting']['channels']['fax'] = {'type': 'fax'}

        with pytest.raises(ValueError, match="invalid type"):
            validate_config(config)

    def test_enabled_webhook_needs_url(self):
        config = get_default_config()
        config['alerting']['channels']['webhook']['enabled'] = True

        with pytest.raises(ValueError, match="url not set"):
            validate_config(config)

    def test_unknown_severity(self):
        config = get_default_config()
        config['alerting']['severity_policies']['urgent'] = 'immediate'

        with pytest.raises(ValueError, match="Invalid severity"):
            validate_config(config)

    def test_unknown_policy_warns(self):
        config = get_default_config()
        config['alerting']['severity_policies']['low'] = 'missing'

        with pytest.warns(UserWarning, match="unknown escalation policy"):
            validate_config(config)

    def test_missing_thresholds_file(self):
        config = get_default_config()
        config['alerting']['thresholds_file'] = '/nonexistent/thresholds.yaml'

        with pytest.raises(ValueError, match="Thresholds file not found"):
            validate_config(config)

    def test_thresholds_file_from_env(self, monkeypatch):
        monkeypatch.setenv('THRESHOLDS_FILE', '/etc/repowatch/thresholds.yaml')

        config = override_from_env(get_default_config())

        assert config['alerting']['thresholds_file'] == '/etc/repowatch/thresholds.yaml'
