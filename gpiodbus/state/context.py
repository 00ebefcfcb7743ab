"""Runtime context shared by the daemon's event handlers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from ..config.settings import RuntimeConfig
from ..services.dispatcher import BusDispatcher
from ..services.registry import ObjectRegistry
from ..transport.bus import BusOwner
from ..transport.udev import DeviceMonitor

logger = logging.getLogger("gpiodbus.state")


@dataclass
class DaemonContext:
    """Handles acquired while the daemon runs.

    Resources are torn down in the reverse order they were acquired:
    hotplug subscription, exported objects, bus name, connection.
    """

    config: RuntimeConfig
    loop: asyncio.AbstractEventLoop
    monitor: DeviceMonitor
    registry: ObjectRegistry
    dispatcher: BusDispatcher
    owner: BusOwner | None = None
    bus: Any | None = None
    exported: bool = False
    started_tasks: list[asyncio.Task[Any]] = field(default_factory=list)

    def attach_bus(self, bus: Any) -> None:
        self.bus = bus

    def export_objects(self) -> None:
        if self.bus is None or self.exported:
            return
        self.bus.add_message_handler(self.dispatcher.handle_message)
        self.exported = True
        logger.debug("Exporting objects under %s", self.registry.root)

    def unexport_objects(self) -> None:
        if self.exported and self.bus is not None:
            self.bus.remove_message_handler(self.dispatcher.handle_message)
        self.exported = False
        self.registry.clear()

    def cancel_tasks(self) -> None:
        for task in self.started_tasks:
            if not task.done():
                task.cancel()
        self.started_tasks.clear()

    async def close(self) -> None:
        """Graceful teardown."""
        self.cancel_tasks()
        self.monitor.stop()
        self.unexport_objects()
        if self.owner is not None:
            await self.owner.release()
        self.bus = None

    def abort(self) -> None:
        """Best-effort release used on the fatal path."""
        self.cancel_tasks()
        self.monitor.stop()
        if self.owner is not None:
            self.owner.drop()
        self.bus = None


def create_daemon_context(
    config: RuntimeConfig,
    loop: asyncio.AbstractEventLoop,
    *,
    monitor: DeviceMonitor,
    registry: ObjectRegistry,
) -> DaemonContext:
    return DaemonContext(
        config=config,
        loop=loop,
        monitor=monitor,
        registry=registry,
        dispatcher=BusDispatcher(registry),
    )


__all__ = ["DaemonContext", "create_daemon_context"]
