"""
Process configuration for the lighting daemon.

Values come from the environment and can be overridden on the command
line.
"""

import argparse
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence, Tuple
from urllib.parse import urlsplit

from home_lighting.lighting.models import LightingConfig

DEFAULT_BROKER = "tcp://localhost:1883"
DEFAULT_CLIENT_ID = "lighting-daemon"
DEFAULT_LOG_DIRECTORY = "/var/log"
DEFAULT_LOG_FILE_NAME = "HomeLighting.log"
DEFAULT_MQTT_PORT = 1883


@dataclass
class DaemonConfig:
    """Configuration for one daemon process."""

    broker: str = DEFAULT_BROKER
    client_id: str = DEFAULT_CLIENT_ID
    log_directory: str = DEFAULT_LOG_DIRECTORY
    log_file_name: str = DEFAULT_LOG_FILE_NAME
    verbose: bool = False
    debug: bool = False
    lighting: LightingConfig = field(default_factory=LightingConfig)

    @property
    def log_path(self) -> str:
        return os.path.join(self.log_directory, self.log_file_name)

    @property
    def broker_address(self) -> Tuple[str, int]:
        """(host, port) parsed from a "tcp://host:port" broker URL."""
        url = self.broker if "://" in self.broker else f"tcp://{self.broker}"
        parts = urlsplit(url)
        return parts.hostname or "localhost", parts.port or DEFAULT_MQTT_PORT


def build_parser(environ: Mapping[str, str]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="home-lighting",
        description="Run the region lighting control daemon",
    )
    parser.add_argument("-D", "--debug", action="store_true", help="log to stdout at debug level")
    parser.add_argument("--broker", default=environ.get("MQTTBROKER") or DEFAULT_BROKER)
    parser.add_argument("--client-id", default=DEFAULT_CLIENT_ID)
    parser.add_argument(
        "--darkness-threshold",
        type=int,
        default=environ.get("DARKNESS_THRESHOLD") or str(LightingConfig.darkness_threshold),
        help="light level below which a 'light' window counts as dark",
    )
    return parser


def load_config(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DaemonConfig:
    """
    Build the daemon configuration.

    Args:
        argv: Command line arguments (default sys.argv[1:])
        environ: Environment (default os.environ)

    Returns:
        The merged configuration
    """
    if environ is None:
        environ = os.environ

    args = build_parser(environ).parse_args(argv)

    return DaemonConfig(
        broker=args.broker,
        client_id=args.client_id,
        log_directory=environ.get("LOGDIR") or DEFAULT_LOG_DIRECTORY,
        log_file_name=environ.get("LOGFILENAME") or DEFAULT_LOG_FILE_NAME,
        verbose="VERBOSE_LOG" in environ or args.debug,
        debug=args.debug,
        lighting=LightingConfig(darkness_threshold=args.darkness_threshold),
    )
