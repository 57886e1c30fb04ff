"""
Alert manager: the public entry point of the alert engine.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from repowatch.alerts.alert_store import AlertStore, ProcessOutcome
from repowatch.alerts.channels import BaseChannel, build_senders
from repowatch.alerts.escalation import EscalationEngine, load_escalation_policies
from repowatch.alerts.events import (
    ALERT_ACKNOWLEDGED, ALERT_CREATED, ALERT_RESOLVED, ALERT_SUPPRESSED, EventBus,
)
from repowatch.alerts.maintenance import MaintenanceSweeper
from repowatch.alerts.metric_evaluator import MetricEvaluator
from repowatch.alerts.models import ActionKind, Alert, AlertKey, ChannelType, ResolveReason
from repowatch.alerts.notification_router import NotificationRouter, load_channels
from repowatch.alerts.scheduler import TaskScheduler
from repowatch.alerts.suppression import SuppressionManager
from repowatch.alerts.thresholds import load_thresholds, load_thresholds_file
from repowatch.exporters.prometheus_exporter import AlertMetrics

logger = logging.getLogger(__name__)

DEFAULT_SUPPRESSION_DURATION = 3600  # seconds


class AlertManager:
    """Manages alert evaluation, lifecycle, escalation and notifications"""

    def __init__(self, config: Dict, senders: Optional[Dict[ChannelType, BaseChannel]] = None,
                 clock: Callable[[], float] = time.time, metrics: Optional[AlertMetrics] = None):
        """
        Initialize alert manager.

        Args:
            config: Alerting configuration dict (the 'alerting' section)
            senders: Sender per channel type; built from config['delivery'] when omitted
            clock: Time source (epoch seconds)
            metrics: Prometheus metrics recorder
        """
        self.config = config
        self.clock = clock
        self.metrics = metrics or AlertMetrics()
        self.events = EventBus()

        self.registry = load_thresholds(config.get('thresholds', {}))
        thresholds_file = config.get('thresholds_file')
        if thresholds_file:
            # File entries replace same-named thresholds from the config
            for threshold in load_thresholds_file(thresholds_file):
                self.registry.add(threshold)
            logger.info(f"Loaded thresholds from {thresholds_file}")
        self.policies = load_escalation_policies(config.get('escalation_policies', {}))

        if senders is None:
            senders = build_senders(config.get('delivery', {}))
        self.router = NotificationRouter(
            load_channels(config.get('channels', {})),
            senders,
            clock=clock,
            metrics=self.metrics,
        )

        self.suppressions = SuppressionManager(clock)
        self.store = AlertStore(
            self.suppressions,
            clock=clock,
            history_limit=config.get('history_limit', 1000),
        )
        self.scheduler = TaskScheduler(clock)
        self.escalation = EscalationEngine(
            self.policies, self.scheduler, self.router, self.store,
            resolve=self.resolve_alert,
            clock=clock,
        )
        self.evaluator = MetricEvaluator(
            self.registry,
            self.store.is_active,
            severity_policies=config.get('severity_policies'),
            on_error=self.metrics.evaluation_error,
        )
        self.sweeper = MaintenanceSweeper(
            self.store, self.suppressions, self.router,
            interval=config.get('maintenance', {}).get('interval', 3600),
            clock=clock,
        )

        logger.info("Alert manager initialized")

    def evaluate_metrics(self, repository: str, snapshot: Mapping[str, Any]) -> List[Alert]:
        """
        Evaluate a repository snapshot and apply the results.

        Escalation and notification run later on the scheduler thread.

        Args:
            repository: Monitored repository (e.g. "org/name")
            snapshot: Metrics snapshot

        Returns:
            Alerts created or updated by this call
        """
        logger.debug(f"Evaluating alerts for {repository}")
        now = self.clock()
        changed = []

        for action in self.evaluator.evaluate(repository, snapshot, now):
            try:
                if action.kind is ActionKind.RESOLVE:
                    self.resolve_alert(action.key, action.reason)
                    continue

                with self.store.lock_for(action.key):
                    alert = self._process(action.alert)
                    if alert is not None:
                        changed.append(alert)
            except Exception as e:
                logger.error(f"Alert processing failed for {action.key[0]}/{action.key[1]}: {e}",
                             exc_info=True)

        return changed

    def _process(self, candidate: Alert) -> Optional[Alert]:
        outcome = self.store.process(candidate)

        if outcome is ProcessOutcome.CREATED:
            self.escalation.start(candidate)
            self.metrics.alert_created(candidate)
            self.metrics.set_active(self.store.active_count())
            self.events.emit(ALERT_CREATED, {'alert': candidate})
            return candidate

        if outcome is ProcessOutcome.UPDATED:
            return self.store.get(candidate.key)

        return None

    def acknowledge_alert(self, alert_id: str, actor: str) -> bool:
        """
        Acknowledge an active alert.

        Acknowledged alerts skip stages that require acknowledgement; the
        alert itself stays active.

        Returns:
            True if an active alert with that id was found
        """
        alert = self.store.find_by_id(alert_id)
        if alert is None:
            return False

        with self.store.lock_for(alert.key):
            alert = self.store.acknowledge(alert_id, actor)
        if alert is None:
            return False

        self.events.emit(ALERT_ACKNOWLEDGED, {'alert': alert})
        return True

    def suppress_alert(self, alert_id: str, duration: float = DEFAULT_SUPPRESSION_DURATION,
                       actor: str = 'system') -> bool:
        """
        Suppress new processing for the key of an active alert.

        Args:
            alert_id: Id of an active alert
            duration: Suppression length in seconds
            actor: Who requested the suppression

        Returns:
            True if an active alert with that id was found and the
            duration is positive
        """
        if duration <= 0:
            logger.error(f"Invalid suppression duration for alert {alert_id}: {duration}")
            return False

        alert = self.store.find_by_id(alert_id)
        if alert is None:
            return False

        with self.store.lock_for(alert.key):
            if self.store.find_by_id(alert_id) is None:
                return False
            suppression = self.suppressions.suppress(alert.key, duration, actor)

        self.events.emit(ALERT_SUPPRESSED, {'alert': alert, 'suppression': suppression})
        return True

    def resolve_alert(self, key: AlertKey, reason: str = ResolveReason.MANUAL) -> Optional[Alert]:
        """
        Resolve the active alert for a key and cancel its pending escalation.

        Returns:
            The resolved alert, or None if nothing was active
        """
        with self.store.lock_for(key):
            alert = self.store.resolve(key, reason)
            if alert is None:
                return None
            self.escalation.cancel(key)

        self.metrics.alert_resolved(alert, reason)
        self.metrics.set_active(self.store.active_count())
        self.events.emit(ALERT_RESOLVED, {'alert': alert, 'reason': reason})
        return alert

    def is_suppressed(self, key: AlertKey) -> bool:
        return self.suppressions.is_suppressed(key)

    def get_active_alerts(self) -> List[Alert]:
        return sorted(self.store.active_alerts(), key=lambda a: (a.severity.rank, a.created_at))

    def get_alerts_by_severity(self) -> Dict[str, int]:
        """Get active alert counts by severity"""
        counts: Dict[str, int] = {}
        for alert in self.store.active_alerts():
            counts[alert.severity.value] = counts.get(alert.severity.value, 0) + 1
        return counts

    def get_statistics(self) -> Dict[str, Any]:
        """Get alert system statistics"""
        return {
            'active_alerts': self.store.active_count(),
            'total_alerts': self.store.history_count(),
            'thresholds': len(self.registry),
            'escalation_policies': len(self.policies),
            'enabled_channels': self.router.enabled_count(),
            'suppressions': len(self.suppressions),
            'last_maintenance': self.sweeper.last_run,
        }

    def start(self) -> None:
        """Start the escalation scheduler and maintenance threads"""
        self.scheduler.start()
        self.sweeper.start()

    def shutdown(self) -> None:
        """Stop background threads and drop pending escalations"""
        logger.info("Shutting down alert manager")
        self.sweeper.stop()
        self.scheduler.stop()
        self.scheduler.clear()
