"""Tests for Threshold classification and loading"""

import os
import tempfile

import pytest

from repowatch.alerts.models import Comparison, Severity
from repowatch.alerts.thresholds import (
    MetricKind, Threshold, ThresholdRegistry, load_thresholds, load_thresholds_file, parse_threshold,
)
from repowatch.config.settings import get_default_thresholds


@pytest.fixture
def registry():
    return load_thresholds(get_default_thresholds())


class TestThreshold:
    """Test Threshold data class"""

    def test_greater_than_levels(self):
        """Test each severity band for a greater-than threshold"""
        threshold = Threshold(
            name="stale_issues", critical=50, high=25, medium=15, low=10,
            comparison=Comparison.GREATER_THAN, metric=MetricKind.STALE_ISSUES,
        )

        assert threshold.classify(51) == Severity.CRITICAL
        assert threshold.classify(30) == Severity.HIGH
        assert threshold.classify(20) == Severity.MEDIUM
        assert threshold.classify(11) == Severity.LOW
        assert threshold.classify(10) is None

    def test_less_than_levels(self):
        """Test each severity band for a less-than threshold"""
        threshold = Threshold(
            name="workflow_success_rate", critical=70, high=80, medium=90, low=95,
            comparison=Comparison.LESS_THAN, metric=MetricKind.WORKFLOW_SUCCESS_RATE,
        )

        assert threshold.classify(65) == Severity.CRITICAL
        assert threshold.classify(75) == Severity.HIGH
        assert threshold.classify(85) == Severity.MEDIUM
        assert threshold.classify(94) == Severity.LOW
        assert threshold.classify(95) is None

    def test_negative_evaluation_period(self):
        """Test that a negative evaluation period raises error"""
        with pytest.raises(ValueError, match="evaluation_period"):
            Threshold(
                name="x", critical=1, high=2, medium=3, low=4,
                comparison=Comparison.GREATER_THAN, metric=MetricKind.STALE_ISSUES,
                evaluation_period=-1,
            )


class TestThresholdRegistry:
    """Test ThresholdRegistry lookups and classification"""

    def test_defaults_loaded(self, registry):
        """Test all default thresholds are registered"""
        assert len(registry) == 7
        assert registry.get('workflow_success_rate').comparison == Comparison.LESS_THAN
        assert registry.get('pr_review_coverage').comparison == Comparison.LESS_THAN
        assert registry.get('rate_limit_usage').comparison == Comparison.GREATER_THAN

    def test_critical_takes_precedence(self, registry):
        """Test a value breaching every level is reported as critical"""
        # 5 also breaches the high level (3)
        assert registry.classify('security_vulnerabilities', 5) == Severity.CRITICAL
        assert registry.classify('security_vulnerabilities', 100) == Severity.CRITICAL

    def test_no_breach(self, registry):
        assert registry.classify('api_response_time', 200) is None

    def test_unknown_threshold(self, registry):
        assert registry.get('nope') is None
        assert registry.classify('nope', 1) is None

    def test_enabled_filter(self):
        """Test disabled thresholds are excluded from enabled()"""
        config = get_default_thresholds()
        config['stale_issues']['enabled'] = False
        registry = load_thresholds(config)

        names = [t.name for t in registry.enabled()]
        assert 'stale_issues' not in names
        assert 'stale_issues' in registry


class TestLoadThresholds:
    """Test loading thresholds from config and YAML"""

    def test_parse_custom_metric(self):
        """Test a threshold can point at a differently named metric"""
        threshold = parse_threshold('ci_health', {
            'metric': 'workflow_success_rate',
            'comparison': 'less_than',
            'critical': 50, 'high': 60, 'medium': 70, 'low': 80,
        })

        assert threshold.metric == MetricKind.WORKFLOW_SUCCESS_RATE
        assert threshold.classify(55) == Severity.HIGH

    def test_invalid_comparison(self):
        with pytest.raises(ValueError, match="Invalid comparison"):
            parse_threshold('x', {'comparison': 'sideways', 'critical': 1, 'high': 2, 'medium': 3, 'low': 4})

    def test_unknown_metric(self):
        with pytest.raises(ValueError, match="Unknown metric"):
            parse_threshold('custom', {'critical': 1, 'high': 2, 'medium': 3, 'low': 4})

    def test_invalid_entries_skipped(self):
        """Test a broken entry does not prevent the others from loading"""
        registry = load_thresholds({
            'stale_issues': {'critical': 50, 'high': 25, 'medium': 15, 'low': 10},
            'broken': {'critical': 1},
        })

        assert len(registry) == 1
        assert 'stale_issues' in registry

    def test_load_yaml_file(self):
        """Test loading thresholds from a YAML file"""
        yaml_content = """
thresholds:
  stale_issues:
    comparison: greater_than
    critical: 40
    high: 20
    medium: 10
    low: 5
    description: "Stale issues"
"""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(yaml_content)
            temp_file = f.name

        try:
            registry = load_thresholds_file(temp_file)
            assert len(registry) == 1
            assert registry.get('stale_issues').critical == 40.0
            assert registry.classify('stale_issues', 6) == Severity.LOW
        finally:
            os.unlink(temp_file)

    def test_load_empty_file(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("")
            temp_file = f.name

        try:
            assert len(load_thresholds_file(temp_file)) == 0
        finally:
            os.unlink(temp_file)

    def test_load_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_thresholds_file("/nonexistent/thresholds.yaml")

    def test_load_invalid_yaml(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("invalid: yaml: content: [")
            temp_file = f.name

        try:
            with pytest.raises(ValueError, match="Invalid YAML"):
                load_thresholds_file(temp_file)
        finally:
            os.unlink(temp_file)
