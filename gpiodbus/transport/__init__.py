"""Transports feeding the event loop: bus ownership and udev hotplug."""

from .bus import BusFactory, BusOwner, message_bus_factory
from .udev import DeviceMonitor

__all__ = ["BusFactory", "BusOwner", "DeviceMonitor", "message_bus_factory"]
