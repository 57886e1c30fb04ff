"""
Metric evaluator for checking thresholds against repository snapshots.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from repowatch.alerts.models import (
    ActionKind, Alert, AlertAction, AlertKey, ResolveReason, Severity, generate_alert_id,
)
from repowatch.alerts.thresholds import MetricKind, Threshold, ThresholdRegistry
from repowatch.utils.helpers import safe_divide

logger = logging.getLogger(__name__)

SECURITY_COUNTERS = ('vulnerabilityAlerts', 'dependabotAlerts', 'codeScanning', 'secretScanning')

DEFAULT_SEVERITY_POLICIES = {
    Severity.CRITICAL.value: 'immediate',
    Severity.HIGH.value: 'standard',
    Severity.MEDIUM.value: 'standard',
    Severity.LOW.value: 'low_priority',
}


def _field(snapshot: Mapping, section: str, name: str) -> Optional[float]:
    """Numeric field from a snapshot section, None when absent"""
    value = (snapshot.get(section) or {}).get(name)
    if value is None:
        return None
    return float(value)


def _workflow_success_rate(snapshot: Mapping) -> Optional[float]:
    return _field(snapshot, 'workflows', 'successRate')


def _stale_issues(snapshot: Mapping) -> Optional[float]:
    return _field(snapshot, 'issues', 'stale')


def _security_vulnerabilities(snapshot: Mapping) -> Optional[float]:
    security = snapshot.get('security') or {}
    counts = [security.get(counter) for counter in SECURITY_COUNTERS]
    if all(count is None for count in counts):
        return None
    return float(sum(count or 0 for count in counts))


def _api_response_time(snapshot: Mapping) -> Optional[float]:
    return _field(snapshot, 'performance', 'avgResponseTime')


def _rate_limit_usage(snapshot: Mapping) -> Optional[float]:
    remaining = _field(snapshot, 'performance', 'rateLimitRemaining')
    total = _field(snapshot, 'performance', 'rateLimitTotal')
    if remaining is None or not total:
        return None
    return safe_divide(total - remaining, total) * 100


def _pr_review_coverage(snapshot: Mapping) -> Optional[float]:
    return _field(snapshot, 'pullrequests', 'reviewCoverage')


def _deployment_failure_rate(snapshot: Mapping) -> Optional[float]:
    recent = (snapshot.get('deployments') or {}).get('recent')
    if not recent:
        return None
    failed = sum(1 for d in recent if d.get('latestStatus') == 'failure')
    return safe_divide(failed, len(recent)) * 100


EXTRACTORS: Dict[MetricKind, Callable[[Mapping], Optional[float]]] = {
    MetricKind.WORKFLOW_SUCCESS_RATE: _workflow_success_rate,
    MetricKind.STALE_ISSUES: _stale_issues,
    MetricKind.SECURITY_VULNERABILITIES: _security_vulnerabilities,
    MetricKind.API_RESPONSE_TIME: _api_response_time,
    MetricKind.RATE_LIMIT_USAGE: _rate_limit_usage,
    MetricKind.PR_REVIEW_COVERAGE: _pr_review_coverage,
    MetricKind.DEPLOYMENT_FAILURE_RATE: _deployment_failure_rate,
}

MESSAGE_TEMPLATES = {
    MetricKind.WORKFLOW_SUCCESS_RATE: "Workflow success rate is {value:.1f}% (threshold: {threshold:g}%) in {repository}",
    MetricKind.STALE_ISSUES: "{value:g} stale issues detected (threshold: {threshold:g}) in {repository}",
    MetricKind.SECURITY_VULNERABILITIES: "{value:g} security vulnerabilities found (threshold: {threshold:g}) in {repository}",
    MetricKind.API_RESPONSE_TIME: "API response time is {value:g}ms (threshold: {threshold:g}ms) for {repository}",
    MetricKind.RATE_LIMIT_USAGE: "Rate limit usage is {value:.1f}% (threshold: {threshold:g}%) for {repository}",
    MetricKind.PR_REVIEW_COVERAGE: "PR review coverage is {value:.1f}% (threshold: {threshold:g}%) in {repository}",
    MetricKind.DEPLOYMENT_FAILURE_RATE: "Deployment failure rate is {value:.1f}% (threshold: {threshold:g}%) in {repository}",
}


class MetricEvaluator:
    """Evaluates enabled thresholds against a repository snapshot"""

    def __init__(self, registry: ThresholdRegistry, is_active: Callable[[AlertKey], bool],
                 severity_policies: Optional[Dict[str, str]] = None,
                 on_error: Optional[Callable[[str, Exception], None]] = None):
        """
        Initialize metric evaluator.

        Args:
            registry: Thresholds to evaluate
            is_active: Returns True if an alert is active for a key
            severity_policies: Severity name -> escalation policy name
            on_error: Called with (threshold name, exception) on evaluation failure
        """
        self.registry = registry
        self.is_active = is_active
        self.severity_policies = dict(DEFAULT_SEVERITY_POLICIES)
        self.severity_policies.update(severity_policies or {})
        self.on_error = on_error

        logger.info(f"Metric evaluator initialized with {len(registry)} thresholds")

    def extract(self, threshold_name: str, snapshot: Mapping[str, Any]) -> Optional[float]:
        """
        Extract the input value for a threshold.

        Returns:
            Metric value, or None when the snapshot lacks the field
        """
        threshold = self.registry.get(threshold_name)
        if threshold is None:
            return None
        return EXTRACTORS[threshold.metric](snapshot)

    def evaluate(self, repository: str, snapshot: Mapping[str, Any], now: float) -> List[AlertAction]:
        """
        Evaluate every enabled threshold for a repository.

        A failing threshold is logged and skipped; the rest of the batch
        is still returned.
        """
        actions = []
        for threshold in self.registry.enabled():
            try:
                action = self._evaluate_threshold(repository, threshold, snapshot, now)
            except Exception as e:
                logger.error(f"Error evaluating threshold {threshold.name} for {repository}: {e}",
                             exc_info=True)
                if self.on_error:
                    self.on_error(threshold.name, e)
                continue

            if action is not None:
                actions.append(action)

        return actions

    def _evaluate_threshold(self, repository: str, threshold: Threshold,
                            snapshot: Mapping[str, Any], now: float) -> Optional[AlertAction]:
        key = (repository, threshold.name)
        value = EXTRACTORS[threshold.metric](snapshot)
        if value is None:
            logger.debug(f"No value for threshold {threshold.name} in {repository}")
            return None

        severity = threshold.classify(value)
        if severity is None:
            if self.is_active(key):
                return AlertAction(ActionKind.RESOLVE, key, reason=ResolveReason.METRIC_RECOVERED)
            return None

        bound = threshold.level(severity)
        logger.debug(f"Threshold {threshold.name} breached in {repository}: {value} ({severity.value})")

        alert = Alert(
            id=generate_alert_id(now),
            repository=repository,
            type=threshold.name,
            severity=severity,
            message=self.format_message(threshold, value, bound, repository),
            current_value=value,
            threshold_value=bound,
            created_at=now,
            escalation_policy=self.policy_for(severity),
            metadata={
                'threshold': threshold.name,
                'description': threshold.description,
                'evaluation_period': threshold.evaluation_period,
            },
        )
        return AlertAction(ActionKind.BREACH, key, alert=alert)

    def policy_for(self, severity: Severity) -> str:
        return self.severity_policies.get(severity.value, 'standard')

    @staticmethod
    def format_message(threshold: Threshold, value: float, bound: float, repository: str) -> str:
        template = MESSAGE_TEMPLATES.get(threshold.metric)
        if template is None:
            return f"Threshold {threshold.name} breached in {repository}"
        return template.format(value=value, threshold=bound, repository=repository)
