"""Settings loader for the GPIO D-Bus daemon.

The daemon keeps no persisted configuration. The only runtime knob is the
``--debug`` command line flag; everything else is fixed by the bus identity
the daemon serves.
"""

from __future__ import annotations

import argparse
import re
from collections.abc import Sequence
from dataclasses import dataclass

from ..const import (
    DEFAULT_BUS_NAME,
    DEFAULT_BUS_TYPE,
    DEFAULT_CONSUMER,
    DEFAULT_DEBUG_LOGGING,
    DEFAULT_OBJECT_ROOT,
    DEFAULT_UDEV_SUBSYSTEM,
    PROGRAM_NAME,
)
from ..errors import ConfigurationError


_BUS_NAME_RE = re.compile(r"^[A-Za-z_-][A-Za-z0-9_-]*(\.[A-Za-z_-][A-Za-z0-9_-]*)+$")
_OBJECT_PATH_RE = re.compile(r"^/([A-Za-z0-9_]+(/[A-Za-z0-9_]+)*)?$")
_BUS_TYPES = frozenset({"system", "session"})


@dataclass(slots=True)
class RuntimeConfig:
    """Strongly typed configuration for the daemon."""

    bus_name: str = DEFAULT_BUS_NAME
    bus_type: str = DEFAULT_BUS_TYPE
    object_root: str = DEFAULT_OBJECT_ROOT
    udev_subsystem: str = DEFAULT_UDEV_SUBSYSTEM
    consumer: str = DEFAULT_CONSUMER
    debug_logging: bool = DEFAULT_DEBUG_LOGGING

    def __post_init__(self) -> None:
        if len(self.bus_name) > 255 or not _BUS_NAME_RE.match(self.bus_name):
            raise ValueError(f"bus_name '{self.bus_name}' is not a valid well-known name")
        if self.bus_type not in _BUS_TYPES:
            raise ValueError(f"bus_type must be one of {sorted(_BUS_TYPES)}")
        if self.object_root == "/" or not _OBJECT_PATH_RE.match(self.object_root):
            raise ValueError(f"object_root '{self.object_root}' is not a valid object path")
        if not self.udev_subsystem.strip():
            raise ValueError("udev_subsystem must be a non-empty string")
        if not self.consumer.strip():
            raise ValueError("consumer must be a non-empty string")


class _OptionParser(argparse.ArgumentParser):
    """ArgumentParser that reports errors instead of exiting the process."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise ConfigurationError(f"option parsing failed: {message}")


def gpiod_version() -> str:
    """libgpiod API version reported by the bindings."""
    import gpiod

    return str(getattr(gpiod, "api_version", gpiod.__version__))


def build_parser() -> argparse.ArgumentParser:
    parser = _OptionParser(
        prog=PROGRAM_NAME,
        description=f"{PROGRAM_NAME} (libgpiod) v{gpiod_version()} - dbus daemon for libgpiod",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        default=DEFAULT_DEBUG_LOGGING,
        help="print additional debug messages",
    )
    return parser


def load_runtime_config(argv: Sequence[str] | None = None) -> RuntimeConfig:
    """Build the runtime configuration from the command line."""

    args = build_parser().parse_args(argv)
    try:
        return RuntimeConfig(debug_logging=bool(args.debug))
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


__all__ = ["RuntimeConfig", "build_parser", "gpiod_version", "load_runtime_config"]
