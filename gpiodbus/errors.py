"""Exception hierarchy for the GPIO D-Bus daemon."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .protocol.structures import NameLostReason


class DaemonFatal(RuntimeError):
    """Unrecoverable condition; only ``main()`` turns it into an exit status."""


class ConfigurationError(DaemonFatal):
    """Command line or runtime configuration could not be parsed."""


class BusNameLost(DaemonFatal):
    """The well-known name or the bus connection is gone for good."""

    def __init__(self, reason: NameLostReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class GpioError(Exception):
    """A chip or line operation failed; reported back to the bus caller."""


__all__ = ["BusNameLost", "ConfigurationError", "DaemonFatal", "GpioError"]
