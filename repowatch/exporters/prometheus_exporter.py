"""Prometheus metrics for the alert engine"""

from prometheus_client import start_http_server, Gauge, Counter
from prometheus_client.core import CollectorRegistry
from repowatch.utils.logger import get_logger


class AlertMetrics:
    """Alert engine counters and gauges on a private registry"""

    def __init__(self, config=None):
        """
        Initialize alert metrics

        Args:
            config: Configuration dictionary (uses the 'prometheus' section)
        """
        config = config or {}
        self.logger = get_logger(self.__class__.__name__)

        self.enabled = config.get('prometheus', {}).get('enabled', False)
        self.host = config.get('prometheus', {}).get('host', '0.0.0.0')
        self.port = config.get('prometheus', {}).get('port', 9105)

        self.registry = CollectorRegistry()
        self.running = False

        self._setup_metrics()

    def _setup_metrics(self):
        """Register alert engine metrics"""
        self.info = Gauge(
            'repowatch_info',
            'Alert engine information',
            ['version', 'hostname'],
            registry=self.registry
        )

        self.alerts_created = Counter(
            'repowatch_alerts_created_total',
            'Alerts created',
            ['type', 'severity'],
            registry=self.registry
        )

        self.alerts_resolved = Counter(
            'repowatch_alerts_resolved_total',
            'Alerts resolved',
            ['type', 'reason'],
            registry=self.registry
        )

        self.active_alerts = Gauge(
            'repowatch_active_alerts',
            'Currently active alerts',
            registry=self.registry
        )

        self.notifications = Counter(
            'repowatch_notifications_total',
            'Notification attempts by outcome (sent, failed, rate_limited, skipped)',
            ['channel', 'result'],
            registry=self.registry
        )

        self.evaluation_errors = Counter(
            'repowatch_evaluation_errors_total',
            'Threshold evaluation failures',
            ['threshold'],
            registry=self.registry
        )

    def alert_created(self, alert):
        self.alerts_created.labels(type=alert.type, severity=alert.severity.value).inc()

    def alert_resolved(self, alert, reason):
        self.alerts_resolved.labels(type=alert.type, reason=reason).inc()

    def set_active(self, count):
        self.active_alerts.set(count)

    def notification(self, channel_name, result):
        self.notifications.labels(channel=channel_name, result=result).inc()

    def evaluation_error(self, threshold_name, error=None):
        self.evaluation_errors.labels(threshold=threshold_name).inc()

    def start(self):
        """Start HTTP server"""
        if not self.enabled:
            self.logger.info("Prometheus endpoint disabled")
            return
        try:
            self.logger.info(f"Starting Prometheus HTTP server on {self.host}:{self.port}")
            start_http_server(self.port, addr=self.host, registry=self.registry)
            self.running = True
            self.logger.info(f"Metrics available at http://{self.host}:{self.port}/metrics")
        except Exception as e:
            self.logger.error(f"Failed to start Prometheus HTTP server: {e}")
            raise

    def stop(self):
        """Stop HTTP server"""
        self.running = False
        self.logger.info("Prometheus HTTP server stopped")
