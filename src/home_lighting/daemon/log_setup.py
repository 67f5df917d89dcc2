"""Root logger configuration for the daemon."""

import logging
import sys

from .config import DaemonConfig

LOG_FORMAT = "%(asctime)s  %(message)s"
DATE_FORMAT = "%a %b %d %H:%M:%S %Y"


def configure_logging(config: DaemonConfig) -> logging.Handler:
    """
    Send log records to the log file, or to stdout when debugging.

    Returns:
        The installed handler
    """
    if config.debug:
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.FileHandler(config.log_path, mode="a", encoding="utf-8")

    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if config.verbose else logging.INFO)
    return handler
