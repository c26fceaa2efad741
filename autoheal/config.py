"""
Configuration management for autoheal
"""

import argparse
import os
import re
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv

# Label filter value meaning "consider every container"
FILTER_ALL = "all"

DEFAULT_API_VERSION = "1.38"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


class ConfigError(ValueError):
    """Raised when a configuration value cannot be used"""


def parse_duration(value: Any) -> float:
    """Parse a Go-style duration ("61s", "1m30s", "500ms") or bare seconds"""
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip().lower()
        if not text:
            raise ConfigError("empty duration")
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for match in _DURATION_PART.finditer(text):
                if match.start() != pos:
                    break
                seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
                pos = match.end()
            if pos != len(text):
                raise ConfigError(f"invalid duration: {value!r}")
    if seconds <= 0:
        raise ConfigError(f"duration must be positive: {value!r}")
    return seconds


@dataclass(frozen=True)
class Config:
    """Immutable runtime configuration, built once at startup"""

    # Polling
    interval: float = 61.0
    timeout: float = 30.0
    unhealthy_count: int = 3
    max_poll_failures: int = 0

    # Docker runtime
    socket: str = "/var/run/docker.sock"
    filter: str = FILTER_ALL
    api_version: str = DEFAULT_API_VERSION

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"

    # Metrics and alerting
    metrics_port: Optional[int] = None
    pushgateway_url: Optional[str] = None
    pushgateway_job: str = "autoheal"
    notification_cooldown_minutes: int = 30

    def __post_init__(self):
        if self.interval <= 0 or self.timeout <= 0:
            raise ConfigError("interval and timeout must be positive")
        if self.unhealthy_count < 1:
            raise ConfigError(f"unhealthy_count must be at least 1, got {self.unhealthy_count}")
        if self.max_poll_failures < 0:
            raise ConfigError("max_poll_failures cannot be negative")
        if self.log_format not in ("json", "console"):
            raise ConfigError(f"unknown log format: {self.log_format!r}")
        if self.metrics_port is not None and not 0 < self.metrics_port < 65536:
            raise ConfigError(f"invalid metrics port: {self.metrics_port}")
        if not self.socket:
            raise ConfigError("docker socket path is required")

    @property
    def label_filter(self) -> Optional[str]:
        """Label constraint to send to the runtime, or None for no filtering"""
        if not self.filter or self.filter == FILTER_ALL:
            return None
        return self.filter

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Build a configuration from defaults overridden by environment variables"""
        env = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}
        try:
            if env.get("AUTOHEAL_INTERVAL"):
                overrides["interval"] = parse_duration(env["AUTOHEAL_INTERVAL"])
            if env.get("AUTOHEAL_TIMEOUT"):
                overrides["timeout"] = parse_duration(env["AUTOHEAL_TIMEOUT"])
            if env.get("AUTOHEAL_UNHEALTHY_COUNT"):
                overrides["unhealthy_count"] = int(env["AUTOHEAL_UNHEALTHY_COUNT"])
            if env.get("MAX_POLL_FAILURES"):
                overrides["max_poll_failures"] = int(env["MAX_POLL_FAILURES"])
            if env.get("METRICS_PORT"):
                overrides["metrics_port"] = int(env["METRICS_PORT"])
            if env.get("NOTIFICATION_COOLDOWN_MINUTES"):
                overrides["notification_cooldown_minutes"] = int(env["NOTIFICATION_COOLDOWN_MINUTES"])
        except ValueError as e:
            raise ConfigError(str(e)) from e

        for key, name in (
            ("socket", "DOCKER_SOCKET"),
            ("filter", "AUTOHEAL_FILTER"),
            ("api_version", "DOCKER_API_VERSION"),
            ("log_level", "LOG_LEVEL"),
            ("log_format", "LOG_FORMAT"),
            ("pushgateway_url", "PROMETHEUS_PUSHGATEWAY_URL"),
            ("pushgateway_job", "PROMETHEUS_JOB_NAME"),
        ):
            if env.get(name):
                overrides[key] = env[name]

        return cls(**overrides)


def build_parser(defaults: Config) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autoheal",
        description="Restart Docker containers that stay unhealthy for several consecutive probes.",
    )
    parser.add_argument("--interval", type=parse_duration, default=defaults.interval,
                        help="Interval between checks (default: %(default)ss)")
    parser.add_argument("--timeout", type=parse_duration, default=defaults.timeout,
                        help="Time to wait for Docker to respond (default: %(default)ss)")
    parser.add_argument("--unhealthy_count", "--unhealthy-count", dest="unhealthy_count", type=int,
                        default=defaults.unhealthy_count,
                        help="Number of consecutive unhealthy probes before restarting the container")
    parser.add_argument("--socket", default=defaults.socket, help="Path to Docker socket")
    parser.add_argument("--filter", default=defaults.filter,
                        help="Only restart containers with this label. 'all' means all containers will be considered.")
    parser.add_argument("--api-version", dest="api_version", default=defaults.api_version,
                        help="Docker Engine API version")
    parser.add_argument("--max-poll-failures", dest="max_poll_failures", type=int,
                        default=defaults.max_poll_failures,
                        help="Exit after this many consecutive failed polls (0 = never)")
    parser.add_argument("--log-level", dest="log_level", default=defaults.log_level)
    parser.add_argument("--log-format", dest="log_format", choices=["json", "console"],
                        default=defaults.log_format)
    parser.add_argument("--metrics-port", dest="metrics_port", type=int, default=defaults.metrics_port,
                        help="Serve Prometheus metrics on this port")
    return parser


def load_config(argv: Optional[List[str]] = None,
                environ: Optional[Mapping[str, str]] = None) -> Config:
    """Defaults, then environment (.env included), then command-line flags"""
    if environ is None:
        load_dotenv()
    base = Config.from_env(environ)
    args = build_parser(base).parse_args(argv)
    return replace(base, **vars(args))
