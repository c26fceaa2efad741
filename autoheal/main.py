#!/usr/bin/env python3
"""
autoheal - Main Application
"""

import signal
import sys

from autoheal import __version__
from autoheal.config import ConfigError, load_config
from autoheal.docker_client import RuntimeClientError
from autoheal.logger import WatchdogLogger, setup_logging
from autoheal.metrics import start_metrics_server
from autoheal.watchdog import Watchdog


def main(argv=None):
    """Main application entry point"""
    try:
        config = load_config(argv)
    except ConfigError as e:
        print(f"autoheal: invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(config.log_level, config.log_format)
    logger = WatchdogLogger()
    logger.log_startup(config.to_dict(), __version__)

    try:
        watchdog = Watchdog.create(config)
    except RuntimeClientError as e:
        logger.log_error(e, context="startup")
        return 1

    if config.metrics_port:
        try:
            start_metrics_server(config.metrics_port)
        except OSError as e:
            logger.log_error(e, context="metrics server")
            watchdog.client.close()
            return 1

    def handle_signal(signum, frame):
        logger.logger.info("Received signal, shutting down...", signal=signal.Signals(signum).name)
        watchdog.stop()

    signal.signal(signal.SIGTERM, handle_signal)

    try:
        return watchdog.run()
    except KeyboardInterrupt:
        logger.logger.info("Received interrupt signal, shutting down...")
        watchdog.stop()
        return watchdog.shutdown()


if __name__ == "__main__":
    sys.exit(main())
