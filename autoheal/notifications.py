"""
Alerting for failed container restarts - Prometheus Pushgateway or log
"""

import logging
import socket
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import requests

from autoheal.config import Config
from autoheal.docker_client import ContainerRef

logger = logging.getLogger(__name__)


class NotificationManager:
    def __init__(self, pushgateway_url: Optional[str] = None, job_name: str = "autoheal",
                 cooldown: timedelta = timedelta(minutes=30)):
        self.pushgateway_url = pushgateway_url.rstrip("/") if pushgateway_url else None
        self.job_name = job_name
        self.notification_cooldown = cooldown
        self.instance = socket.gethostname()
        self.sent_notifications: Dict[str, datetime] = {}

    @classmethod
    def from_config(cls, config: Config) -> "NotificationManager":
        return cls(
            pushgateway_url=config.pushgateway_url,
            job_name=config.pushgateway_job,
            cooldown=timedelta(minutes=config.notification_cooldown_minutes),
        )

    def send_notification(self, container: ContainerRef, error_details: str,
                          observed_at: Optional[datetime] = None) -> bool:
        """Report a failed restart, at most once per container per cooldown"""
        now = datetime.now(timezone.utc)
        last_notification = self.sent_notifications.get(container.id)
        if last_notification and now - last_notification < self.notification_cooldown:
            logger.debug(f"Notification for {container.name} is in cooldown")
            return False

        self.sent_notifications[container.id] = now
        if not self.pushgateway_url:
            return self._send_log_notification(container, error_details, observed_at)

        try:
            self._push_to_pushgateway(container, now)
            logger.info(f"Prometheus alert sent for {container.name} ({container.short_id})")
            return True
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to push to Pushgateway: {e}")
            return self._send_log_notification(container, error_details, observed_at)

    def _send_log_notification(self, container: ContainerRef, error_details: str,
                               observed_at: Optional[datetime]) -> bool:
        """Log-based notification (fallback)"""
        logger.error(
            f"CONTAINER RESTART FAILED - {container.name} ({container.short_id})\n"
            f"   Error: {error_details}\n"
            f"   Last unhealthy at: {observed_at.isoformat() if observed_at else 'unknown'}"
        )
        return True

    def _push_to_pushgateway(self, container: ContainerRef, now: datetime) -> None:
        labels = f'container_id="{container.short_id}",container="{container.name}",instance="{self.instance}"'
        metrics_data = f"""# HELP autoheal_restart_failure Container restart failure event
# TYPE autoheal_restart_failure gauge
autoheal_restart_failure{{{labels}}} 1

# HELP autoheal_last_failure_timestamp Timestamp of last failed restart
# TYPE autoheal_last_failure_timestamp gauge
autoheal_last_failure_timestamp{{{labels}}} {now.timestamp()}
"""
        url = f"{self.pushgateway_url}/metrics/job/{self.job_name}"
        response = requests.put(url, data=metrics_data, timeout=10)
        response.raise_for_status()
        logger.debug(f"Pushed restart failure for {container.name} to {url}")
