"""Configuration management"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR

VALID_CHANNEL_TYPES = ['slack', 'email', 'sms', 'pagerduty', 'webhook']
VALID_SEVERITIES = ['critical', 'high', 'medium', 'low']


def get_default_thresholds() -> Dict[str, Any]:
    """Default repository health thresholds"""
    return {
        'workflow_success_rate': {
            'comparison': 'less_than',
            'critical': 70,
            'high': 80,
            'medium': 90,
            'low': 95,
            'enabled': True,
            'evaluation_period': HOUR,
            'description': 'GitHub Actions workflow success rate monitoring',
        },
        'stale_issues': {
            'comparison': 'greater_than',
            'critical': 50,
            'high': 25,
            'medium': 15,
            'low': 10,
            'enabled': True,
            'evaluation_period': DAY,
            'description': 'Stale issue accumulation monitoring',
        },
        'security_vulnerabilities': {
            'comparison': 'greater_than',
            'critical': 1,
            'high': 3,
            'medium': 5,
            'low': 10,
            'enabled': True,
            'evaluation_period': HOUR,
            'description': 'Security vulnerability detection',
        },
        'api_response_time': {
            'comparison': 'greater_than',
            'critical': 5000,
            'high': 3000,
            'medium': 2000,
            'low': 1000,
            'enabled': True,
            'evaluation_period': 30 * MINUTE,
            'description': 'GitHub API response time monitoring',
        },
        'rate_limit_usage': {
            'comparison': 'greater_than',
            'critical': 95,
            'high': 85,
            'medium': 75,
            'low': 65,
            'enabled': True,
            'evaluation_period': 15 * MINUTE,
            'description': 'GitHub API rate limit usage monitoring',
        },
        'pr_review_coverage': {
            'comparison': 'less_than',
            'critical': 20,
            'high': 40,
            'medium': 60,
            'low': 80,
            'enabled': True,
            'evaluation_period': DAY,
            'description': 'Pull request review coverage monitoring',
        },
        'deployment_failure_rate': {
            'comparison': 'greater_than',
            'critical': 50,
            'high': 30,
            'medium': 20,
            'low': 10,
            'enabled': True,
            'evaluation_period': 2 * HOUR,
            'description': 'Deployment failure rate monitoring',
        },
    }


def get_default_escalation_policies() -> Dict[str, Any]:
    """Default escalation policies (delays are seconds after alert creation)"""
    return {
        'immediate': {
            'name': 'Immediate Response',
            'description': 'Critical issues requiring immediate attention',
            'stages': [
                {'delay': 0, 'channels': ['slack-critical', 'email-oncall'], 'requires_acknowledge': False},
                {'delay': 5 * MINUTE, 'channels': ['sms-oncall', 'pagerduty'], 'requires_acknowledge': True},
                {'delay': 15 * MINUTE, 'channels': ['slack-management', 'email-management'],
                 'requires_acknowledge': True},
            ],
            'auto_resolve': False,
            'max_escalations': 3,
        },
        'standard': {
            'name': 'Standard Response',
            'description': 'High/medium priority issues with standard escalation',
            'stages': [
                {'delay': 0, 'channels': ['slack-alerts'], 'requires_acknowledge': False},
                {'delay': 30 * MINUTE, 'channels': ['email-team'], 'requires_acknowledge': True},
                {'delay': 2 * HOUR, 'channels': ['slack-management'], 'requires_acknowledge': True},
            ],
            'auto_resolve': True,
            'auto_resolve_after': DAY,
            'max_escalations': 2,
        },
        'low_priority': {
            'name': 'Low Priority',
            'description': 'Low priority issues with minimal escalation',
            'stages': [
                {'delay': 0, 'channels': ['slack-alerts'], 'requires_acknowledge': False},
                {'delay': DAY, 'channels': ['email-daily-summary'], 'requires_acknowledge': False},
            ],
            'auto_resolve': True,
            'auto_resolve_after': 7 * DAY,
            'max_escalations': 1,
        },
        'security': {
            'name': 'Security Incident',
            'description': 'Security-related issues with specialized routing',
            'stages': [
                {'delay': 0, 'channels': ['slack-security', 'email-security-team'], 'requires_acknowledge': False},
                {'delay': 10 * MINUTE, 'channels': ['sms-security-lead', 'pagerduty-security'],
                 'requires_acknowledge': True},
                {'delay': 30 * MINUTE, 'channels': ['email-ciso', 'slack-leadership'],
                 'requires_acknowledge': True},
            ],
            'auto_resolve': False,
            'require_manual_resolution': True,
            'max_escalations': 3,
        },
    }


def get_default_channels() -> Dict[str, Any]:
    """Default notification channels"""
    return {
        'slack-critical': {
            'type': 'slack',
            'config': {'channel': '#critical-alerts', 'mention': '@channel'},
            'enabled': True,
            'rate_limit_per_minute': 5,
        },
        'slack-alerts': {
            'type': 'slack',
            'config': {'channel': '#github-alerts'},
            'enabled': True,
            'rate_limit_per_minute': 10,
        },
        'slack-security': {
            'type': 'slack',
            'config': {'channel': '#security-alerts', 'mention': '@security-team'},
            'enabled': True,
            'rate_limit_per_minute': 3,
        },
        'slack-management': {
            'type': 'slack',
            'config': {'channel': '#management', 'mention': '@managers'},
            'enabled': True,
            'rate_limit_per_minute': 2,
        },
        'email-oncall': {
            'type': 'email',
            'config': {'recipients': ['oncall@company.com'], 'priority': 'high'},
            'enabled': True,
            'rate_limit_per_minute': 3,
        },
        'email-team': {
            'type': 'email',
            'config': {'recipients': ['dev-team@company.com'], 'priority': 'normal'},
            'enabled': True,
            'rate_limit_per_minute': 5,
        },
        'email-security-team': {
            'type': 'email',
            'config': {'recipients': ['security@company.com'], 'priority': 'urgent'},
            'enabled': True,
            'rate_limit_per_minute': 2,
        },
        'sms-oncall': {
            'type': 'sms',
            'config': {'numbers': [], 'service': 'twilio'},
            'enabled': False,
            'rate_limit_per_minute': 1,
        },
        'pagerduty': {
            'type': 'pagerduty',
            'config': {'integration_key': '', 'service': ''},
            'enabled': False,
            'rate_limit_per_minute': 2,
        },
        'webhook': {
            'type': 'webhook',
            'config': {'url': '', 'secret': ''},
            'enabled': False,
            'rate_limit_per_minute': 10,
        },
    }


def get_default_config() -> Dict[str, Any]:
    """Get default configuration"""
    return {
        'agent': {
            'log_level': 'INFO',
            'log_file': None,
            'log_format': 'text',
            'evaluation_interval': 5 * MINUTE,
            'snapshots_file': None,
        },
        'prometheus': {
            'enabled': False,
            'port': 9105,
            'host': '0.0.0.0',
        },
        'alerting': {
            'thresholds': get_default_thresholds(),
            'thresholds_file': None,
            'escalation_policies': get_default_escalation_policies(),
            'severity_policies': {
                'critical': 'immediate',
                'high': 'standard',
                'medium': 'standard',
                'low': 'low_priority',
            },
            'channels': get_default_channels(),
            'delivery': {
                'mode': 'log',  # log or live
                'slack': {
                    'webhook_url': '',
                    'username': 'repowatch',
                    'icon_emoji': ':rotating_light:',
                    'timeout': 10,
                },
                'webhook': {
                    'method': 'POST',
                    'headers': {},
                    'timeout': 10,
                },
                'pagerduty': {
                    'timeout': 10,
                },
            },
            'maintenance': {
                'interval': HOUR,
            },
            'history_limit': 1000,
        },
    }


def load_config(config_path: str = None) -> Dict[str, Any]:
    """
    Load configuration from file and environment variables

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Configuration dictionary
    """
    # Start with defaults
    config = get_default_config()

    # Load from YAML file if provided
    if config_path and Path(config_path).exists():
        try:
            with open(config_path, 'r') as f:
                yaml_config = yaml.safe_load(f)
                if yaml_config:
                    config = merge_configs(config, yaml_config)
        except Exception as e:
            raise ValueError(f"Failed to load config from {config_path}: {e}")
    elif config_path:
        raise ValueError(f"Config file not found: {config_path}")

    # Override with environment variables
    config = override_from_env(config)

    # Validate configuration
    validate_config(config)

    return config


def merge_configs(base: Dict, override: Dict) -> Dict:
    """Recursively merge two configuration dictionaries"""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value
    return result


def override_from_env(config: Dict) -> Dict:
    """Override configuration from environment variables"""

    # Agent settings
    if 'LOG_LEVEL' in os.environ:
        config['agent']['log_level'] = os.environ['LOG_LEVEL'].upper()
    if 'LOG_FILE' in os.environ:
        config['agent']['log_file'] = os.environ['LOG_FILE']
    if 'LOG_FORMAT' in os.environ:
        config['agent']['log_format'] = os.environ['LOG_FORMAT'].lower()

    # Prometheus settings
    if 'PROMETHEUS_ENABLED' in os.environ:
        config['prometheus']['enabled'] = os.environ['PROMETHEUS_ENABLED'].lower() == 'true'
    if 'PROMETHEUS_PORT' in os.environ:
        config['prometheus']['port'] = int(os.environ['PROMETHEUS_PORT'])
    if 'PROMETHEUS_HOST' in os.environ:
        config['prometheus']['host'] = os.environ['PROMETHEUS_HOST']

    # Alerting settings
    alerting = config['alerting']
    if 'DELIVERY_MODE' in os.environ:
        alerting['delivery']['mode'] = os.environ['DELIVERY_MODE'].lower()
    if 'THRESHOLDS_FILE' in os.environ:
        alerting['thresholds_file'] = os.environ['THRESHOLDS_FILE']
    if 'MAINTENANCE_INTERVAL' in os.environ:
        alerting['maintenance']['interval'] = int(os.environ['MAINTENANCE_INTERVAL'])
    if 'SLACK_WEBHOOK_URL' in os.environ:
        alerting['delivery']['slack']['webhook_url'] = os.environ['SLACK_WEBHOOK_URL']

    # Per-channel secrets for the default webhook and pagerduty channels
    channels = alerting['channels']
    if 'WEBHOOK_URL' in os.environ and 'webhook' in channels:
        channels['webhook'].setdefault('config', {})['url'] = os.environ['WEBHOOK_URL']
        channels['webhook']['enabled'] = True
    if 'PAGERDUTY_INTEGRATION_KEY' in os.environ and 'pagerduty' in channels:
        channels['pagerduty'].setdefault('config', {})['integration_key'] = os.environ['PAGERDUTY_INTEGRATION_KEY']
        channels['pagerduty']['enabled'] = True

    return config


def validate_config(config: Dict):
    """
    Validate configuration values

    Raises:
        ValueError: If configuration is invalid
    """
    # Validate Prometheus port
    port = config['prometheus']['port']
    if not (1 <= port <= 65535):
        raise ValueError(f"Invalid Prometheus port: {port}. Must be between 1 and 65535")

    # Validate log level
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    log_level = config['agent']['log_level'].upper()
    if log_level not in valid_log_levels:
        raise ValueError(f"Invalid log level: {log_level}. Must be one of {valid_log_levels}")

    valid_formats = ['text', 'json']
    if config['agent']['log_format'] not in valid_formats:
        raise ValueError(f"Invalid log format: {config['agent']['log_format']}. Must be one of {valid_formats}")

    eval_interval = config['agent'].get('evaluation_interval', 300)
    if eval_interval <= 0:
        raise ValueError(f"Invalid evaluation_interval: {eval_interval}. Must be > 0")

    alerting = config['alerting']

    # Validate delivery
    mode = alerting['delivery'].get('mode', 'log')
    if mode not in ['log', 'live']:
        raise ValueError(f"Invalid delivery mode: {mode}. Must be 'log' or 'live'")

    thresholds_file = alerting.get('thresholds_file')
    if thresholds_file and not Path(thresholds_file).exists():
        raise ValueError(f"Thresholds file not found: {thresholds_file}")

    # Validate maintenance and history
    interval = alerting['maintenance'].get('interval', 3600)
    if interval <= 0:
        raise ValueError(f"Invalid maintenance interval: {interval}. Must be > 0")

    history_limit = alerting.get('history_limit', 1000)
    if history_limit < 1:
        raise ValueError(f"Invalid history_limit: {history_limit}. Must be >= 1")

    # Validate channels
    for name, channel in alerting['channels'].items():
        channel_type = channel.get('type')
        if channel_type not in VALID_CHANNEL_TYPES:
            raise ValueError(f"Channel {name}: invalid type {channel_type}. Must be one of {VALID_CHANNEL_TYPES}")
        rate_limit = channel.get('rate_limit_per_minute', 10)
        if rate_limit < 0:
            raise ValueError(f"Channel {name}: rate_limit_per_minute must be >= 0, got {rate_limit}")
        if channel.get('enabled') and channel_type == 'webhook' and not channel.get('config', {}).get('url'):
            raise ValueError(f"Channel {name}: webhook channel enabled but url not set")

    # Validate severity -> policy mapping
    policies = alerting['escalation_policies']
    for severity, policy_name in alerting.get('severity_policies', {}).items():
        if severity not in VALID_SEVERITIES:
            raise ValueError(f"Invalid severity in severity_policies: {severity}")
        if policy_name not in policies:
            import warnings
            warnings.warn(f"Severity {severity} maps to unknown escalation policy: {policy_name}")
