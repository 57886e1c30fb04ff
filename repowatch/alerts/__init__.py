"""
Alert evaluation and escalation engine for monitored repositories.
"""

from repowatch.alerts.alert_manager import AlertManager
from repowatch.alerts.alert_store import AlertStore, ProcessOutcome
from repowatch.alerts.escalation import EscalationEngine, load_escalation_policies
from repowatch.alerts.metric_evaluator import MetricEvaluator
from repowatch.alerts.models import Alert, ChannelType, Comparison, ResolveReason, Severity
from repowatch.alerts.notification_router import NotificationRouter, RateLimiter
from repowatch.alerts.suppression import SuppressionManager
from repowatch.alerts.thresholds import Threshold, ThresholdRegistry, load_thresholds

__all__ = [
    'Alert',
    'AlertManager',
    'AlertStore',
    'ChannelType',
    'Comparison',
    'EscalationEngine',
    'MetricEvaluator',
    'NotificationRouter',
    'ProcessOutcome',
    'RateLimiter',
    'ResolveReason',
    'Severity',
    'SuppressionManager',
    'Threshold',
    'ThresholdRegistry',
    'load_escalation_policies',
    'load_thresholds',
]
