"""
Prometheus metrics for autoheal
"""

import logging

from prometheus_client import Counter, Gauge, start_http_server

logger = logging.getLogger(__name__)

POLLS = Counter(
    "autoheal_polls_total",
    "Poll cycles against the Docker daemon",
    ["result"],
)

UNHEALTHY_EVENTS = Counter(
    "autoheal_unhealthy_events_total",
    "Unhealthy container sightings processed by the tracker",
)

RESTARTS = Counter(
    "autoheal_restarts_total",
    "Container restarts triggered by autoheal",
    ["result"],
)

TRACKED_CONTAINERS = Gauge(
    "autoheal_tracked_containers",
    "Containers with an open unhealthy streak",
)


def start_metrics_server(port: int) -> None:
    """Expose the default registry over HTTP"""
    start_http_server(port)
    logger.info(f"Serving Prometheus metrics on :{port}/metrics")
