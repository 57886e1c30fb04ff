"""Main agent orchestration"""

import signal
import threading
from typing import Any, Dict, List, Optional

import yaml

from repowatch import __version__
from repowatch.alerts.alert_manager import AlertManager
from repowatch.alerts.models import Alert
from repowatch.exporters.prometheus_exporter import AlertMetrics
from repowatch.utils.helpers import get_hostname
from repowatch.utils.logger import get_logger


def load_snapshots(snapshots_file: str) -> Dict[str, Dict[str, Any]]:
    """
    Load repository snapshots from a YAML or JSON file.

    The file maps repository names to snapshots, either at the top level
    or under a ``repositories`` key.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file can't be parsed or has the wrong shape
    """
    try:
        with open(snapshots_file, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid snapshots file {snapshots_file}: {e}")

    if not data:
        return {}
    if 'repositories' in data:
        data = data['repositories']
    if not isinstance(data, dict) or not all(isinstance(v, dict) for v in data.values()):
        raise ValueError(f"Snapshots file {snapshots_file} must map repository names to snapshots")
    return data


class Agent:
    """Runs the alert engine against periodically reloaded snapshots"""

    def __init__(self, config: Dict[str, Any], snapshots_file: Optional[str] = None):
        """
        Initialize agent

        Args:
            config: Configuration dictionary
            snapshots_file: Snapshot file to evaluate (overrides config)
        """
        self.config = config
        self.logger = get_logger(self.__class__.__name__)
        self.running = False
        self._stop_event = threading.Event()

        self.snapshots_file = snapshots_file or config['agent'].get('snapshots_file')
        self.interval = config['agent'].get('evaluation_interval', 300)
        self.hostname = get_hostname()

        self.metrics = AlertMetrics(config)
        self.alert_manager = AlertManager(config['alerting'], metrics=self.metrics)

        self.logger.info(f"Initializing agent on host: {self.hostname}")

    def _setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown"""
        def signal_handler(signum, frame):
            self.logger.info(f"Received signal {signum}, initiating graceful shutdown...")
            self.stop()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def evaluate_snapshots(self) -> List[Alert]:
        """Evaluate every repository in the snapshots file once"""
        if not self.snapshots_file:
            return []

        try:
            snapshots = load_snapshots(self.snapshots_file)
        except (OSError, ValueError) as e:
            self.logger.error(f"Failed to load snapshots: {e}")
            return []

        changed = []
        for repository, snapshot in snapshots.items():
            changed.extend(self.alert_manager.evaluate_metrics(repository, snapshot))

        self.logger.info(f"Evaluated {len(snapshots)} repositories, {len(changed)} alerts created or updated")
        return changed

    def run_once(self) -> Dict[str, Any]:
        """Evaluate snapshots, deliver anything already due, and return statistics"""
        self.evaluate_snapshots()
        self.alert_manager.scheduler.run_pending()
        return self.alert_manager.get_statistics()

    def start(self):
        """Start the agent and block until stopped"""
        self.logger.info("Starting agent...")
        self.running = True
        self._stop_event.clear()
        self._setup_signal_handlers()

        try:
            self.metrics.start()
            self.metrics.info.labels(version=__version__, hostname=self.hostname).set(1)
            self.alert_manager.start()

            if not self.snapshots_file:
                self.logger.warning("No snapshots file configured, waiting for API calls only")

            self.logger.info("Agent started successfully")

            while self.running:
                try:
                    self.evaluate_snapshots()
                except Exception as e:
                    self.logger.error(f"Error in evaluation loop: {e}", exc_info=True)
                self._stop_event.wait(self.interval)

        except KeyboardInterrupt:
            self.logger.info("Keyboard interrupt received")
        except Exception as e:
            self.logger.error(f"Agent error: {e}", exc_info=True)
            raise
        finally:
            self.stop()

    def stop(self):
        """Stop the agent"""
        self._stop_event.set()
        if not self.running:
            return

        self.logger.info("Stopping agent...")
        self.running = False

        self.alert_manager.shutdown()
        self.metrics.stop()

        self.logger.info("Agent stopped")
