"""
Alert engine data structures.
"""

import random
import string
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

# (repository, threshold type)
AlertKey = Tuple[str, str]


class Severity(str, Enum):
    """Alert severity, ordered critical > high > medium > low"""
    CRITICAL = 'critical'
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'

    @property
    def rank(self) -> int:
        return SEVERITY_ORDER.index(self)


# Highest first; classification checks levels in this order
SEVERITY_ORDER = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]


class Comparison(str, Enum):
    """Direction in which a threshold is breached"""
    GREATER_THAN = 'greater_than'
    LESS_THAN = 'less_than'

    def breached(self, value: float, bound: float) -> bool:
        if self is Comparison.GREATER_THAN:
            return value > bound
        return value < bound


class ChannelType(str, Enum):
    SLACK = 'slack'
    EMAIL = 'email'
    SMS = 'sms'
    PAGERDUTY = 'pagerduty'
    WEBHOOK = 'webhook'


class ResolveReason:
    """Alert resolution reason constants"""
    MANUAL = 'manual'
    METRIC_RECOVERED = 'metric_recovered'
    AUTO_RESOLVED = 'auto_resolved'


class ActionKind(str, Enum):
    BREACH = 'breach'
    RESOLVE = 'resolve'


@dataclass
class EscalationStage:
    """One delayed step of an escalation policy"""
    delay: float  # seconds after alert creation
    channels: List[str]
    requires_acknowledge: bool = False

    def __post_init__(self):
        if self.delay < 0:
            raise ValueError(f"Stage delay must be >= 0, got {self.delay}")


@dataclass
class EscalationPolicy:
    """Ordered schedule of notification stages"""
    name: str
    stages: List[EscalationStage]
    display_name: str = ""
    description: str = ""
    auto_resolve: bool = False
    auto_resolve_after: Optional[float] = None
    # Carried from configuration, not enforced
    max_escalations: Optional[int] = None
    require_manual_resolution: bool = False

    def __post_init__(self):
        if not self.stages:
            raise ValueError(f"Escalation policy {self.name} has no stages")
        if self.auto_resolve and (self.auto_resolve_after is None or self.auto_resolve_after <= 0):
            raise ValueError(f"Escalation policy {self.name} auto-resolves but auto_resolve_after is not set")


@dataclass
class NotificationChannel:
    """Named notification destination"""
    name: str
    type: ChannelType
    config: Dict[str, Any] = field(default_factory=dict)
    enabled: bool = True
    rate_limit_per_minute: int = 10

    def __post_init__(self):
        if self.rate_limit_per_minute < 0:
            raise ValueError(f"rate_limit_per_minute must be >= 0, got {self.rate_limit_per_minute}")


@dataclass
class Alert:
    """Active or resolved alert instance"""
    id: str
    repository: str
    type: str
    severity: Severity
    message: str
    current_value: float
    threshold_value: float
    created_at: float
    escalation_policy: str
    source: str = 'threshold_monitoring'
    metadata: Dict[str, Any] = field(default_factory=dict)
    acknowledged: bool = False
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[float] = None
    escalation_stage: Optional[int] = None
    last_escalated: Optional[float] = None
    resolved_at: Optional[float] = None
    resolved_by: Optional[str] = None

    @property
    def key(self) -> AlertKey:
        return (self.repository, self.type)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (history entries, event payloads)"""
        return {
            'id': self.id,
            'repository': self.repository,
            'type': self.type,
            'severity': self.severity.value,
            'message': self.message,
            'current_value': self.current_value,
            'threshold_value': self.threshold_value,
            'created_at': self.created_at,
            'escalation_policy': self.escalation_policy,
            'source': self.source,
            'metadata': dict(self.metadata),
            'acknowledged': self.acknowledged,
            'acknowledged_by': self.acknowledged_by,
            'acknowledged_at': self.acknowledged_at,
            'escalation_stage': self.escalation_stage,
            'last_escalated': self.last_escalated,
            'resolved_at': self.resolved_at,
            'resolved_by': self.resolved_by,
        }


@dataclass
class AlertAction:
    """Outcome of evaluating one threshold against a snapshot"""
    kind: ActionKind
    key: AlertKey
    alert: Optional[Alert] = None
    reason: Optional[str] = None


@dataclass
class Suppression:
    until: float
    suppressed_by: str
    suppressed_at: float


@dataclass
class HistoryEntry:
    """Snapshot of an alert at a lifecycle transition"""
    action: str  # created, updated, resolved
    alert: Dict[str, Any]
    recorded_at: float
    reason: Optional[str] = None


def generate_alert_id(now: Optional[float] = None) -> str:
    """Opaque unique alert id: alert_<millis>_<random suffix>"""
    millis = int((now if now is not None else time.time()) * 1000)
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"alert_{millis}_{suffix}"
