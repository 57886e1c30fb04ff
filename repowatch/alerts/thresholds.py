"""
Threshold definitions and the registry used to classify metric values.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional

import yaml

from repowatch.alerts.models import Comparison, Severity, SEVERITY_ORDER

logger = logging.getLogger(__name__)


class MetricKind(str, Enum):
    """Snapshot extraction rule a threshold is evaluated against"""
    WORKFLOW_SUCCESS_RATE = 'workflow_success_rate'
    STALE_ISSUES = 'stale_issues'
    SECURITY_VULNERABILITIES = 'security_vulnerabilities'
    API_RESPONSE_TIME = 'api_response_time'
    RATE_LIMIT_USAGE = 'rate_limit_usage'
    PR_REVIEW_COVERAGE = 'pr_review_coverage'
    DEPLOYMENT_FAILURE_RATE = 'deployment_failure_rate'


@dataclass
class Threshold:
    """Monitored condition with one bound per severity"""
    name: str
    critical: float
    high: float
    medium: float
    low: float
    comparison: Comparison
    metric: MetricKind
    enabled: bool = True
    evaluation_period: float = 3600  # seconds, informational
    description: str = ""

    def __post_init__(self):
        """Validate threshold configuration"""
        if self.evaluation_period < 0:
            raise ValueError(f"evaluation_period must be >= 0, got {self.evaluation_period}")

    def level(self, severity: Severity) -> float:
        """Bound configured for a severity"""
        return getattr(self, severity.value)

    def classify(self, value: float) -> Optional[Severity]:
        """
        Return the highest severity whose bound is breached by value.

        Args:
            value: Extracted metric value

        Returns:
            Severity or None if no level is breached
        """
        for severity in SEVERITY_ORDER:
            if self.comparison.breached(value, self.level(severity)):
                return severity
        return None


class ThresholdRegistry:
    """Catalogue of thresholds keyed by name"""

    def __init__(self, thresholds: Optional[List[Threshold]] = None):
        self._thresholds: Dict[str, Threshold] = {}
        for threshold in thresholds or []:
            self.add(threshold)

    def add(self, threshold: Threshold) -> None:
        self._thresholds[threshold.name] = threshold

    def get(self, name: str) -> Optional[Threshold]:
        return self._thresholds.get(name)

    def classify(self, name: str, value: float) -> Optional[Severity]:
        """
        Classify value against the named threshold.

        Critical is checked first, then high, medium and low; the first
        breached level wins.
        """
        threshold = self._thresholds.get(name)
        if threshold is None:
            logger.warning(f"Unknown threshold: {name}")
            return None
        return threshold.classify(value)

    def enabled(self) -> List[Threshold]:
        return [t for t in self._thresholds.values() if t.enabled]

    def __iter__(self) -> Iterator[Threshold]:
        return iter(self._thresholds.values())

    def __len__(self) -> int:
        return len(self._thresholds)

    def __contains__(self, name: str) -> bool:
        return name in self._thresholds


def parse_threshold(name: str, threshold_config: Dict) -> Threshold:
    """
    Build a Threshold from its configuration mapping.

    Raises:
        KeyError: If a severity level is missing
        ValueError: If comparison, metric or levels are invalid
    """
    try:
        comparison = Comparison(threshold_config.get('comparison', 'greater_than'))
    except ValueError:
        raise ValueError(f"Invalid comparison for threshold {name}: {threshold_config.get('comparison')}")

    metric_name = threshold_config.get('metric', name)
    try:
        metric = MetricKind(metric_name)
    except ValueError:
        raise ValueError(f"Unknown metric for threshold {name}: {metric_name}")

    return Threshold(
        name=name,
        critical=float(threshold_config['critical']),
        high=float(threshold_config['high']),
        medium=float(threshold_config['medium']),
        low=float(threshold_config['low']),
        comparison=comparison,
        metric=metric,
        enabled=threshold_config.get('enabled', True),
        evaluation_period=float(threshold_config.get('evaluation_period', 3600)),
        description=threshold_config.get('description', ''),
    )


def load_thresholds(thresholds_config: Dict[str, Dict]) -> ThresholdRegistry:
    """
    Build the registry from the ``alerting.thresholds`` config section.

    Invalid entries are logged and skipped.
    """
    registry = ThresholdRegistry()
    for name, threshold_config in (thresholds_config or {}).items():
        try:
            registry.add(parse_threshold(name, threshold_config))
            logger.debug(f"Loaded threshold: {name}")
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to load threshold {name}: {e}")
            continue

    logger.info(f"Loaded {len(registry)} alert thresholds")
    return registry


def load_thresholds_file(thresholds_file: str) -> ThresholdRegistry:
    """
    Load thresholds from a YAML file with a top-level ``thresholds`` mapping.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not valid YAML
    """
    try:
        with open(thresholds_file, 'r') as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        logger.error(f"Thresholds file not found: {thresholds_file}")
        raise
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML file {thresholds_file}: {e}")
        raise ValueError(f"Invalid YAML format: {e}")

    if not config or 'thresholds' not in config:
        logger.warning(f"No thresholds found in {thresholds_file}")
        return ThresholdRegistry()

    return load_thresholds(config['thresholds'])
