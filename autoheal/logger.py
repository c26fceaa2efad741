"""
Logging configuration for autoheal
"""

import logging
import sys
from typing import Any, Dict, Optional

import structlog
from colorama import init as colorama_init


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Setup structured logging for the application"""

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        # Initialize colorama for cross-platform colored output
        colorama_init()
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Suppress verbose docker SDK / transport logs
    logging.getLogger("docker").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance"""
    return structlog.get_logger(name)


class WatchdogLogger:
    """Specialized logger for watchdog lifecycle events"""

    def __init__(self, name: str = "autoheal"):
        self.logger = get_logger(name)

    def log_startup(self, config_dict: Dict[str, Any], version: str) -> None:
        self.logger.info("autoheal starting up", version=version, config=config_dict)

    def log_poll(self, unhealthy: int, label_filter: Optional[str]) -> None:
        self.logger.debug("Poll completed", unhealthy_containers=unhealthy, label_filter=label_filter)

    def log_poll_failed(self, error: Exception, consecutive_failures: int) -> None:
        self.logger.error(
            "Error fetching containers",
            error=str(error),
            error_type=type(error).__name__,
            consecutive_failures=consecutive_failures,
        )

    def log_unhealthy(self, container_id: str, name: str, count: int, threshold: int) -> None:
        self.logger.info(
            "Container unhealthy",
            container_id=container_id,
            container_name=name,
            count=count,
            threshold=threshold,
        )

    def log_restart(self, container_id: str, name: str) -> None:
        self.logger.warning("Restarting container", container_id=container_id, container_name=name)

    def log_restart_failed(self, container_id: str, name: str, error: Exception) -> None:
        self.logger.error(
            "Error restarting container",
            container_id=container_id,
            container_name=name,
            error=str(error),
            error_type=type(error).__name__,
        )

    def log_task_exited(self, task: str, error: Optional[BaseException] = None) -> None:
        """Log a background task that stopped without being asked to"""
        self.logger.critical(
            "Background task exited",
            task=task,
            error=str(error) if error else None,
            error_type=type(error).__name__ if error else None,
            exc_info=error,
        )

    def log_shutdown(self, exit_code: int) -> None:
        self.logger.info("autoheal shutting down", exit_code=exit_code)

    def log_error(self, error: Exception, context: Optional[str] = None) -> None:
        """Log errors with context"""
        self.logger.error(
            "Error occurred",
            error=str(error),
            error_type=type(error).__name__,
            context=context,
            exc_info=True,
        )
