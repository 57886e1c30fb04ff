"""Tests for escalation scheduling and firing"""

import pytest

from repowatch.alerts.escalation import load_escalation_policies, parse_policy
from repowatch.alerts.models import ResolveReason
from repowatch.config.settings import DAY, get_default_escalation_policies

REPO = "acme/widgets"
CRITICAL_SNAPSHOT = {'workflows': {'successRate': 65}}
HIGH_SNAPSHOT = {'issues': {'stale': 30}}
KEY = (REPO, 'workflow_success_rate')

TIERED_POLICY = {
    'escalation_policies': {
        'immediate': {
            'stages': [
                {'delay': 0, 'channels': ['slack-critical']},
                {'delay': 300, 'channels': ['email-oncall'], 'requires_acknowledge': True},
                {'delay': 900, 'channels': ['slack-management'], 'requires_acknowledge': True},
            ],
            'auto_resolve': False,
        },
    },
}


@pytest.fixture
def tiered(make_manager):
    return make_manager(TIERED_POLICY)


class TestEscalationStages:
    """Test stage timing and gating"""

    def test_first_stage_runs_on_scheduler(self, tiered, recorder):
        """Test evaluation does not notify on the calling path"""
        alerts = tiered.evaluate_metrics(REPO, CRITICAL_SNAPSHOT)

        assert recorder.sent == []
        tiered.scheduler.run_pending()
        assert recorder.sent == [('slack-critical', alerts[0].id, 0)]
        assert alerts[0].escalation_stage == 0

    def test_delays_are_offsets_from_creation(self, tiered, recorder, clock):
        alert = tiered.evaluate_metrics(REPO, CRITICAL_SNAPSHOT)[0]
        tiered.scheduler.run_pending()

        clock.advance(300)
        tiered.scheduler.run_pending()
        assert recorder.channels_sent() == ['slack-critical', 'email-oncall']
        assert alert.escalation_stage == 1
        assert alert.last_escalated == clock()

        # Third stage is due 900s after creation, not 900s after stage two
        clock.advance(599)
        tiered.scheduler.run_pending()
        assert len(recorder.sent) == 2
        clock.advance(1)
        tiered.scheduler.run_pending()
        assert recorder.channels_sent() == ['slack-critical', 'email-oncall', 'slack-management']
        assert alert.escalation_stage == 2

    def test_acknowledged_skips_gated_stages(self, tiered, recorder, clock):
        alert = tiered.evaluate_metrics(REPO, CRITICAL_SNAPSHOT)[0]
        tiered.scheduler.run_pending()

        assert tiered.acknowledge_alert(alert.id, 'oncall-bob')

        clock.advance(900)
        tiered.scheduler.run_pending()
        assert recorder.channels_sent() == ['slack-critical']
        assert alert.escalation_stage == 0
        assert tiered.store.is_active(KEY)

    def test_ungated_stage_runs_after_acknowledge(self, make_manager, recorder, clock):
        manager = make_manager({'escalation_policies': {'immediate': {'stages': [
            {'delay': 0, 'channels': ['slack-critical']},
            {'delay': 60, 'channels': ['slack-alerts'], 'requires_acknowledge': False},
        ]}}})
        alert = manager.evaluate_metrics(REPO, CRITICAL_SNAPSHOT)[0]
        manager.acknowledge_alert(alert.id, 'bob')

        clock.advance(60)
        manager.scheduler.run_pending()
        assert recorder.channels_sent() == ['slack-critical', 'slack-alerts']

    def test_resolve_cancels_pending_stages(self, tiered, recorder, clock):
        tiered.evaluate_metrics(REPO, CRITICAL_SNAPSHOT)
        tiered.scheduler.run_pending()
        assert tiered.scheduler.pending(KEY) == 2

        tiered.resolve_alert(KEY, ResolveReason.MANUAL)
        assert tiered.scheduler.pending(KEY) == 0

        clock.advance(3600)
        tiered.scheduler.run_pending()
        assert recorder.channels_sent() == ['slack-critical']

    def test_recreated_alert_ignores_old_schedule(self, tiered, recorder, clock):
        """Test a stage belonging to a resolved alert never fires for its successor"""
        first = tiered.evaluate_metrics(REPO, CRITICAL_SNAPSHOT)[0]
        # Fire the old stage directly, as if cancellation had raced with it
        stale_stage = tiered.policies['immediate'].stages[1]
        tiered.resolve_alert(KEY)
        second = tiered.evaluate_metrics(REPO, CRITICAL_SNAPSHOT)[0]

        tiered.escalation._fire_stage(KEY, first.id, 1, stale_stage)

        assert recorder.sent == []
        assert second.escalation_stage is None

    def test_severity_change_keeps_schedule(self, make_manager, clock):
        """Test a severity increase does not restart escalation"""
        manager = make_manager()
        low = manager.evaluate_metrics(REPO, {'pullrequests': {'reviewCoverage': 75}})[0]
        key = low.key
        pending = manager.scheduler.pending(key)

        clock.advance(60)
        updated = manager.evaluate_metrics(REPO, {'pullrequests': {'reviewCoverage': 10}})

        assert updated[0] is low
        assert low.escalation_policy == 'low_priority'
        assert manager.scheduler.pending(key) == pending

    def test_unknown_policy_leaves_alert_unescalated(self, make_manager, recorder):
        manager = make_manager({'severity_policies': {'critical': 'does-not-exist'}})

        alerts = manager.evaluate_metrics(REPO, CRITICAL_SNAPSHOT)

        assert len(alerts) == 1
        assert manager.store.is_active(KEY)
        assert manager.scheduler.pending(KEY) == 0
        manager.scheduler.run_pending()
        assert recorder.sent == []


class TestAutoResolve:
    """Test auto-resolution"""

    def test_auto_resolves_after_delay(self, manager, clock):
        alert = manager.evaluate_metrics(REPO, HIGH_SNAPSHOT)[0]
        key = alert.key

        clock.advance(DAY - 1)
        manager.scheduler.run_pending()
        assert manager.store.is_active(key)

        clock.advance(1)
        manager.scheduler.run_pending()
        assert not manager.store.is_active(key)
        assert alert.resolved_by == ResolveReason.AUTO_RESOLVED
        assert manager.scheduler.pending(key) == 0

    def test_no_auto_resolve_for_immediate(self, manager, clock):
        manager.evaluate_metrics(REPO, CRITICAL_SNAPSHOT)

        clock.advance(30 * DAY)
        manager.scheduler.run_pending()
        assert manager.store.is_active(KEY)


class TestPolicyLoading:
    """Test escalation policy parsing"""

    def test_default_policies(self):
        policies = load_escalation_policies(get_default_escalation_policies())

        assert set(policies) == {'immediate', 'standard', 'low_priority', 'security'}
        assert [s.delay for s in policies['immediate'].stages] == [0, 300, 900]
        assert policies['standard'].auto_resolve_after == DAY
        assert policies['security'].require_manual_resolution is True
        assert policies['immediate'].max_escalations == 3

    def test_policy_without_stages(self):
        with pytest.raises(ValueError, match="no stages"):
            parse_policy('empty', {'stages': []})

    def test_auto_resolve_requires_delay(self):
        with pytest.raises(ValueError, match="auto_resolve_after"):
            parse_policy('bad', {'stages': [{'delay': 0, 'channels': ['x']}], 'auto_resolve': True})

    def test_negative_delay(self):
        with pytest.raises(ValueError, match="delay"):
            parse_policy('bad', {'stages': [{'delay': -5, 'channels': ['x']}]})

    def test_invalid_policy_skipped(self):
        policies = load_escalation_policies({
            'ok': {'stages': [{'delay': 0, 'channels': ['x']}]},
            'broken': {'stages': [{'delay': 0}]},
        })
        assert list(policies) == ['ok']
