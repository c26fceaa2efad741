"""
autoheal - Docker Unhealthy Container Watchdog

A Python application that polls the Docker daemon for containers reporting
an unhealthy status and restarts those that stay unhealthy for several
consecutive probes.
"""

__version__ = "1.0.0"
