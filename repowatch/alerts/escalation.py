"""
Escalation policies and the engine that drives their delayed stages.
"""

import logging
import time
from typing import Callable, Dict, Optional

from repowatch.alerts.alert_store import AlertStore
from repowatch.alerts.models import (
    Alert, AlertKey, EscalationPolicy, EscalationStage, ResolveReason,
)
from repowatch.alerts.notification_router import NotificationRouter
from repowatch.alerts.scheduler import TaskScheduler

logger = logging.getLogger(__name__)


class EscalationEngine:
    """
    Schedules and fires escalation stages for active alerts.

    Stage delays are offsets from the alert's creation time, not from
    the previous stage. Every task is keyed by the alert key so that
    resolving an alert cancels whatever is still pending for it.
    """

    def __init__(self, policies: Dict[str, EscalationPolicy], scheduler: TaskScheduler,
                 router: NotificationRouter, store: AlertStore,
                 resolve: Callable[[AlertKey, str], Optional[Alert]],
                 clock: Callable[[], float] = time.time):
        """
        Initialize escalation engine.

        Args:
            policies: Escalation policies by name
            scheduler: Delayed task scheduler
            router: Notification router used by stages
            store: Active alert table
            resolve: Resolves an alert key with a reason (used by auto-resolve)
            clock: Time source (epoch seconds)
        """
        self.policies = policies
        self.scheduler = scheduler
        self.router = router
        self.store = store
        self.resolve = resolve
        self.clock = clock

    def start(self, alert: Alert) -> bool:
        """
        Schedule every stage of the alert's policy.

        Returns:
            False if the policy is unknown and nothing was scheduled
        """
        policy = self.policies.get(alert.escalation_policy)
        if policy is None:
            logger.error(f"Unknown escalation policy: {alert.escalation_policy} (alert {alert.id} not escalated)")
            return False

        key = alert.key
        logger.info(f"Starting escalation for {key[0]}/{key[1]} using policy: {policy.display_name or policy.name}")

        for index, stage in enumerate(policy.stages):
            self.scheduler.schedule(
                alert.created_at + stage.delay,
                key,
                lambda index=index, stage=stage: self._fire_stage(key, alert.id, index, stage),
                description=f"{alert.id} stage {index + 1}",
            )

        if policy.auto_resolve:
            self.scheduler.schedule(
                alert.created_at + policy.auto_resolve_after,
                key,
                lambda: self._auto_resolve(key, alert.id),
                description=f"{alert.id} auto-resolve",
            )

        return True

    def cancel(self, key: AlertKey) -> int:
        """Cancel all pending stage and auto-resolve tasks for a key"""
        return self.scheduler.cancel(key)

    def _current(self, key: AlertKey, alert_id: str) -> Optional[Alert]:
        # A newer alert for the same key must not inherit this schedule
        alert = self.store.get(key)
        if alert is None or alert.id != alert_id:
            return None
        return alert

    def _fire_stage(self, key: AlertKey, alert_id: str, index: int, stage: EscalationStage) -> None:
        with self.store.lock_for(key):
            alert = self._current(key, alert_id)
            if alert is None:
                logger.debug(f"Skipping stage {index + 1} for {alert_id}: alert no longer active")
                return

            if stage.requires_acknowledge and alert.acknowledged:
                logger.info(f"Skipping stage {index + 1} for {alert_id}: alert acknowledged")
                return

            logger.info(f"Executing escalation stage {index + 1} for {key[0]}/{key[1]}")
            for channel_name in stage.channels:
                self.router.send(channel_name, alert, index)

            alert.escalation_stage = index
            alert.last_escalated = self.clock()

    def _auto_resolve(self, key: AlertKey, alert_id: str) -> None:
        with self.store.lock_for(key):
            if self._current(key, alert_id) is None:
                return
            self.resolve(key, ResolveReason.AUTO_RESOLVED)


def parse_policy(name: str, policy_config: Dict) -> EscalationPolicy:
    """
    Build an EscalationPolicy from its configuration mapping.

    Raises:
        KeyError: If a stage lacks its channels
        ValueError: If stages or auto-resolve settings are invalid
    """
    stages = [
        EscalationStage(
            delay=float(stage_config.get('delay', 0)),
            channels=list(stage_config['channels']),
            requires_acknowledge=stage_config.get('requires_acknowledge', False),
        )
        for stage_config in policy_config.get('stages', [])
    ]

    auto_resolve_after = policy_config.get('auto_resolve_after')
    return EscalationPolicy(
        name=name,
        stages=stages,
        display_name=policy_config.get('name', name),
        description=policy_config.get('description', ''),
        auto_resolve=policy_config.get('auto_resolve', False),
        auto_resolve_after=float(auto_resolve_after) if auto_resolve_after is not None else None,
        max_escalations=policy_config.get('max_escalations'),
        require_manual_resolution=policy_config.get('require_manual_resolution', False),
    )


def load_escalation_policies(policies_config: Dict[str, Dict]) -> Dict[str, EscalationPolicy]:
    """Parse the ``alerting.escalation_policies`` section; invalid entries are logged and skipped"""
    policies = {}
    for name, policy_config in (policies_config or {}).items():
        try:
            policies[name] = parse_policy(name, policy_config)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to load escalation policy {name}: {e}")
            continue

    logger.info(f"Configured {len(policies)} escalation policies")
    return policies
