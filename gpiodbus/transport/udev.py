"""Hotplug monitoring for GPIO devices through udev."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import pyudev

from ..protocol.structures import DeviceAction, DeviceEvent

logger = logging.getLogger("gpiodbus.udev")

DeviceEventCallback = Callable[[DeviceEvent], None]
MonitorFactory = Callable[[Any], Any]


def _netlink_monitor(context: Any) -> Any:
    return pyudev.Monitor.from_netlink(context)


class DeviceMonitor:
    """Forward udev notifications for one subsystem as ``DeviceEvent`` values.

    The netlink socket is registered with the loop as a reader; each
    readiness callback drains every queued notification without blocking.
    """

    def __init__(
        self,
        subsystem: str,
        on_event: DeviceEventCallback,
        *,
        context: Any | None = None,
        monitor_factory: MonitorFactory | None = None,
    ) -> None:
        self.subsystem = subsystem
        self._on_event = on_event
        self._context = context
        self._monitor_factory = monitor_factory or _netlink_monitor
        self._monitor: Any | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._fd: int | None = None

    @property
    def context(self) -> Any:
        if self._context is None:
            self._context = pyudev.Context()
        return self._context

    @property
    def active(self) -> bool:
        return self._monitor is not None

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._monitor is not None:
            logger.debug("Device monitor for '%s' already running", self.subsystem)
            return
        monitor = self._monitor_factory(self.context)
        monitor.filter_by(subsystem=self.subsystem)
        monitor.start()
        fd = monitor.fileno()
        loop.add_reader(fd, self._on_readable)
        self._monitor = monitor
        self._loop = loop
        self._fd = fd
        logger.debug("Subscribed to '%s' uevents", self.subsystem)

    def stop(self) -> None:
        monitor, self._monitor = self._monitor, None
        if monitor is None:
            return
        if self._loop is not None and self._fd is not None:
            self._loop.remove_reader(self._fd)
        self._loop = None
        self._fd = None
        logger.debug("Unsubscribed from '%s' uevents", self.subsystem)

    def enumerate(self) -> list[DeviceEvent]:
        """List devices already present in the subsystem as ``add`` events."""
        events: list[DeviceEvent] = []
        for device in self.context.list_devices(subsystem=self.subsystem):
            name = device.sys_name
            if not name:
                continue
            events.append(
                DeviceEvent(
                    action=DeviceAction.ADD,
                    device_name=name,
                    raw_action=DeviceAction.ADD.value,
                    device_node=device.device_node,
                )
            )
        logger.debug("Enumerated %d '%s' device(s)", len(events), self.subsystem)
        return events

    def _on_readable(self) -> None:
        monitor = self._monitor
        while monitor is not None:
            try:
                device = monitor.poll(timeout=0)
            except OSError as exc:
                logger.warning("Failed to receive uevent: %s", exc)
                return
            if device is None:
                return
            event = self._to_event(device)
            if event is not None:
                self._on_event(event)
            monitor = self._monitor

    @staticmethod
    def _to_event(device: Any) -> DeviceEvent | None:
        action = getattr(device, "action", None)
        name = getattr(device, "sys_name", None)
        if not action or not name:
            logger.warning("Dropping malformed uevent (action=%r, device=%r)", action, name)
            return None
        return DeviceEvent.from_raw(action, name, getattr(device, "device_node", None))


__all__ = ["DeviceEventCallback", "DeviceMonitor", "MonitorFactory"]
