#!/usr/bin/env python3
"""Async orchestrator for the GPIO D-Bus daemon.

One event loop owns three sources: termination signals, ownership of the
well-known bus name, and udev hotplug notifications for GPIO chips. Any
way of losing the bus name is fatal; a termination signal ends the loop
gracefully.

Architecture:
    main() -> GpioDaemon.run()
        ├── SignalBridge (SIGTERM/SIGINT one-shot stop, SIGHUP inert)
        ├── BusOwner (connection + name FSM)
        │     └── on NameAcquired: export objects, subscribe DeviceMonitor,
        │         seed the object tree from the devices already present
        └── DeviceMonitor -> ObjectRegistry (hotplug sync)
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Sequence
from typing import Any, NoReturn

# uvloop is mandatory; fail at import if it is missing.
import uvloop

from .config.logging import configure_logging
from .config.settings import RuntimeConfig, gpiod_version, load_runtime_config
from .const import EXIT_FAILURE, EXIT_SUCCESS, NOTICE, PROGRAM_NAME
from .errors import BusNameLost, ConfigurationError, DaemonFatal
from .protocol.structures import DeviceEvent, NameLostReason
from .services.gpio import ChipFactory
from .services.registry import ObjectRegistry
from .signals import SignalBridge, default_signal_specs
from .state.context import DaemonContext, create_daemon_context
from .transport.bus import BusFactory, BusOwner, message_bus_factory
from .transport.udev import DeviceMonitor, MonitorFactory

logger = logging.getLogger("gpiodbus")


class GpioDaemon:
    """Main orchestrator for the daemon's event sources.

    ``run()`` returns after ``stop()`` once every resource has been released
    in order, and raises ``BusNameLost`` as soon as the bus name or the
    connection goes away.

    Attributes:
        config: Runtime configuration parsed from the command line.
        signals: Loop-level signal handlers.
        context: Resources held while running, ``None`` otherwise.
    """

    def __init__(
        self,
        config: RuntimeConfig,
        *,
        bus_factory: BusFactory | None = None,
        udev_context: Any | None = None,
        netlink_factory: MonitorFactory | None = None,
        chip_factory: ChipFactory | None = None,
    ) -> None:
        self.config = config
        self._bus_factory = bus_factory or message_bus_factory(config.bus_type)
        self._udev_context = udev_context
        self._netlink_factory = netlink_factory
        self._chip_factory = chip_factory
        self.signals = SignalBridge(default_signal_specs(self.stop))
        self.context: DaemonContext | None = None
        self._exit: asyncio.Future[None] | None = None

    def stop(self) -> None:
        """Request a graceful exit at the next loop iteration."""
        if self._exit is not None and not self._exit.done():
            logger.debug("Stop requested")
            self._exit.set_result(None)

    def fatal(self, exc: DaemonFatal) -> None:
        if self._exit is not None and not self._exit.done():
            self._exit.set_exception(exc)

    async def run(self) -> None:
        """Main async entry point."""
        loop = asyncio.get_running_loop()
        logger.log(NOTICE, "initiating %s", PROGRAM_NAME)

        self._exit = loop.create_future()
        context = self._build_context(loop)
        self.context = context
        self.signals.install(loop)
        try:
            acquire = loop.create_task(context.owner.acquire(), name="bus-acquire")
            acquire.add_done_callback(self._on_acquire_done)
            context.started_tasks.append(acquire)
            logger.log(NOTICE, "%s started", PROGRAM_NAME)
            await self._exit
        except (DaemonFatal, asyncio.CancelledError):
            context.abort()
            raise
        else:
            await context.close()
            logger.log(NOTICE, "%s exiting cleanly", PROGRAM_NAME)
        finally:
            self.signals.uninstall()
            self.context = None
            self._exit = None

    def _build_context(self, loop: asyncio.AbstractEventLoop) -> DaemonContext:
        registry = ObjectRegistry(
            self.config.object_root,
            consumer=self.config.consumer,
            version=gpiod_version(),
            chip_factory=self._chip_factory,
        )
        monitor = DeviceMonitor(
            self.config.udev_subsystem,
            self._on_device_event,
            context=self._udev_context,
            monitor_factory=self._netlink_factory,
        )
        context = create_daemon_context(self.config, loop, monitor=monitor, registry=registry)
        context.owner = BusOwner(
            self.config.bus_name,
            on_connection_acquired=self._on_connection_acquired,
            on_name_acquired=self._on_name_acquired,
            on_name_lost=self._on_name_lost,
            bus_factory=self._bus_factory,
        )
        return context

    # -- bus and hotplug callbacks -------------------------------------

    def _on_acquire_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        if isinstance(exc, DaemonFatal):
            self.fatal(exc)
            return
        fatal = DaemonFatal(f"unable to bring up {self.config.bus_name}: {exc!r}")
        fatal.__cause__ = exc
        self.fatal(fatal)

    def _on_connection_acquired(self, bus: Any) -> None:
        if self.context is not None:
            self.context.attach_bus(bus)

    def _on_name_acquired(self) -> None:
        context = self.context
        if context is None:
            return
        logger.info("Acquired bus name %s", self.config.bus_name)
        context.export_objects()
        context.monitor.start(context.loop)
        added = context.registry.seed(context.monitor.enumerate())
        logger.info("Exported %d gpio chip(s) present at startup", added)

    def _on_name_lost(self, reason: NameLostReason) -> None:
        self.fatal(BusNameLost(reason, reason.describe(self.config.bus_name)))

    def _on_device_event(self, event: DeviceEvent) -> None:
        if self.context is not None:
            self.context.registry.handle_device_event(event)


def main(argv: Sequence[str] | None = None) -> NoReturn:  # pragma: no cover (Entry point wrapper)
    try:
        config = load_runtime_config(argv)
    except ConfigurationError as exc:
        configure_logging(RuntimeConfig())
        logger.critical("%s", exc)
        sys.exit(EXIT_FAILURE)

    configure_logging(config)

    try:
        daemon = GpioDaemon(config)
        asyncio.run(daemon.run(), loop_factory=uvloop.new_event_loop)
    except DaemonFatal as exc:
        logger.critical("%s", exc)
        sys.exit(EXIT_FAILURE)
    except KeyboardInterrupt:
        logger.log(NOTICE, "%s interrupted", PROGRAM_NAME)
        sys.exit(EXIT_SUCCESS)
    except OSError as exc:
        logger.critical("System/OS error during daemon execution: %s", exc, exc_info=True)
        sys.exit(EXIT_FAILURE)
    sys.exit(EXIT_SUCCESS)


if __name__ == "__main__":
    main()
