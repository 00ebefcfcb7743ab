"""Constants shared across the GPIO D-Bus daemon."""

from __future__ import annotations

import logging
from typing import Final

PROGRAM_NAME: Final[str] = "gpio-dbus"

# Bus identity
DEFAULT_BUS_NAME: Final[str] = "org.gpiod"
DEFAULT_BUS_TYPE: Final[str] = "system"
DEFAULT_OBJECT_ROOT: Final[str] = "/org/gpiod"

# Hotplug
DEFAULT_UDEV_SUBSYSTEM: Final[str] = "gpio"
CHIP_NAME_PREFIX: Final[str] = "gpiochip"
LINE_NODE_PREFIX: Final[str] = "line"
DEV_ROOT: Final[str] = "/dev"

# GPIO
DEFAULT_CONSUMER: Final[str] = "gpio-dbus"
DEFAULT_DEBUG_LOGGING: Final[bool] = False

# Interfaces exported under the object root
MANAGER_INTERFACE: Final[str] = "org.gpiod.Manager"
CHIP_INTERFACE: Final[str] = "org.gpiod.Chip"
LINE_INTERFACE: Final[str] = "org.gpiod.Line"

# Standard freedesktop interfaces answered by the dispatcher
INTROSPECTABLE_INTERFACE: Final[str] = "org.freedesktop.DBus.Introspectable"
PROPERTIES_INTERFACE: Final[str] = "org.freedesktop.DBus.Properties"

# Bus daemon identity used for NameLost tracking
DBUS_PATH: Final[str] = "/org/freedesktop/DBus"
DBUS_INTERFACE: Final[str] = "org.freedesktop.DBus"

# Error names
ERROR_UNKNOWN_OBJECT: Final[str] = "org.freedesktop.DBus.Error.UnknownObject"
ERROR_UNKNOWN_INTERFACE: Final[str] = "org.freedesktop.DBus.Error.UnknownInterface"
ERROR_UNKNOWN_METHOD: Final[str] = "org.freedesktop.DBus.Error.UnknownMethod"
ERROR_UNKNOWN_PROPERTY: Final[str] = "org.freedesktop.DBus.Error.UnknownProperty"
ERROR_PROPERTY_READ_ONLY: Final[str] = "org.freedesktop.DBus.Error.PropertyReadOnly"
ERROR_INVALID_ARGS: Final[str] = "org.freedesktop.DBus.Error.InvalidArgs"
ERROR_GPIO_FAILED: Final[str] = "org.gpiod.Error.Failed"

# Logging
NOTICE: Final[int] = 25

# syslog-style priority prefixes written in front of every log line
LOG_PRIORITIES: Final[tuple[tuple[int, str], ...]] = (
    (logging.CRITICAL, "0"),
    (logging.ERROR, "3"),
    (logging.WARNING, "4"),
    (NOTICE, "5"),
    (logging.INFO, "6"),
    (logging.DEBUG, "7"),
)
DEFAULT_LOG_PRIORITY: Final[str] = "5"

# Exit codes
EXIT_SUCCESS: Final[int] = 0
EXIT_FAILURE: Final[int] = 1
