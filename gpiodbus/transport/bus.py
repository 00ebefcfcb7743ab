"""Ownership of the daemon's well-known name on the message bus."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from dbus_fast import (
    AuthError,
    BusType,
    DBusError,
    InvalidAddressError,
    Message,
    MessageType,
    NameFlag,
    RequestNameReply,
)
from dbus_fast.aio import MessageBus
from transitions import Machine

from ..const import DBUS_INTERFACE, DBUS_PATH
from ..protocol.structures import BusNameState, NameLostReason

logger = logging.getLogger("gpiodbus.bus")

BusFactory = Callable[[], Any]

_ACQUIRED_REPLIES = frozenset({RequestNameReply.PRIMARY_OWNER, RequestNameReply.ALREADY_OWNER})


def message_bus_factory(bus_type: str) -> BusFactory:
    """Return a factory building unconnected dbus-fast buses of *bus_type*."""
    resolved = BusType.SESSION if bus_type == "session" else BusType.SYSTEM

    def _factory() -> MessageBus:
        return MessageBus(bus_type=resolved)

    return _factory


class BusOwner:
    """Drive the ``BusNameState`` machine for one well-known name.

    The owner connects, requests the name without queueing and then watches
    both the ``NameLost`` signal and the connection itself. Every way of
    losing the name ends in ``NAME_LOST``; there is no retry.
    """

    if TYPE_CHECKING:
        # FSM generated methods and attributes for static analysis
        fsm_state: BusNameState
        request: Callable[[], bool]
        connection_acquired: Callable[[Any], bool]
        name_acquired: Callable[[], bool]
        name_lost: Callable[[NameLostReason], bool]

    def __init__(
        self,
        bus_name: str,
        *,
        on_connection_acquired: Callable[[Any], None],
        on_name_acquired: Callable[[], None],
        on_name_lost: Callable[[NameLostReason], None],
        bus_factory: BusFactory | None = None,
    ) -> None:
        self.bus_name = bus_name
        self._on_connection_acquired = on_connection_acquired
        self._on_name_acquired = on_name_acquired
        self._on_name_lost = on_name_lost
        self._bus_factory = bus_factory or message_bus_factory("system")
        self._bus: Any | None = None
        self._watcher: asyncio.Task[None] | None = None
        self._releasing = False

        self.state_machine = Machine(
            model=self,
            states=BusNameState,
            initial=BusNameState.UNREQUESTED,
            ignore_invalid_triggers=True,
            model_attribute="fsm_state",
        )
        self.state_machine.add_transition(
            trigger="request",
            source=BusNameState.UNREQUESTED,
            dest=BusNameState.REQUESTED,
        )
        self.state_machine.add_transition(
            trigger="connection_acquired",
            source=BusNameState.REQUESTED,
            dest=BusNameState.CONNECTION_ACQUIRED,
            after="_after_connection_acquired",
        )
        self.state_machine.add_transition(
            trigger="name_acquired",
            source=BusNameState.CONNECTION_ACQUIRED,
            dest=BusNameState.NAME_ACQUIRED,
            after="_after_name_acquired",
        )
        self.state_machine.add_transition(
            trigger="name_lost",
            source=[
                BusNameState.REQUESTED,
                BusNameState.CONNECTION_ACQUIRED,
                BusNameState.NAME_ACQUIRED,
            ],
            dest=BusNameState.NAME_LOST,
            after="_after_name_lost",
        )

    @property
    def state(self) -> BusNameState:
        return self.fsm_state

    @property
    def connection(self) -> Any | None:
        return self._bus

    async def acquire(self) -> None:
        """Connect and request the name; outcomes are reported via callbacks."""
        if not self.request():
            logger.debug("Bus name %s already requested", self.bus_name)
            return

        try:
            bus = await self._bus_factory().connect()
        except (OSError, EOFError, AuthError, DBusError, InvalidAddressError) as exc:
            logger.debug("Bus connection failed: %s", exc)
            self.name_lost(NameLostReason.NO_CONNECTION)
            return

        self._bus = bus
        bus.add_message_handler(self._on_message)
        self._watcher = asyncio.get_running_loop().create_task(
            self._watch_disconnect(bus), name="bus-disconnect-watch"
        )
        self.connection_acquired(bus)

        try:
            reply = await bus.request_name(self.bus_name, NameFlag.DO_NOT_QUEUE)
        except (DBusError, OSError, EOFError) as exc:
            logger.debug("RequestName for %s failed: %s", self.bus_name, exc)
            self.name_lost(NameLostReason.NAME_LOST)
            return

        if reply in _ACQUIRED_REPLIES:
            self.name_acquired()
        else:
            logger.debug("RequestName for %s answered %s", self.bus_name, reply)
            self.name_lost(NameLostReason.NAME_LOST)

    async def release(self) -> None:
        """Give the name back and close the connection."""
        bus = self._detach()
        if bus is None:
            return
        if self.fsm_state is BusNameState.NAME_ACQUIRED and bus.connected:
            try:
                await bus.release_name(self.bus_name)
            except (DBusError, OSError) as exc:
                logger.warning("Failed to release bus name %s: %s", self.bus_name, exc)
            else:
                logger.debug("Released bus name %s", self.bus_name)
        bus.disconnect()
        await self._stop_watcher()

    def drop(self) -> None:
        """Close the connection without the name handshake."""
        bus = self._detach()
        if bus is None:
            return
        bus.disconnect()
        if self._watcher is not None:
            self._watcher.cancel()
            self._watcher = None

    def _detach(self) -> Any | None:
        bus, self._bus = self._bus, None
        if bus is not None:
            self._releasing = True
            bus.remove_message_handler(self._on_message)
        return bus

    async def _stop_watcher(self) -> None:
        watcher, self._watcher = self._watcher, None
        if watcher is None or watcher.done():
            return
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher

    async def _watch_disconnect(self, bus: Any) -> None:
        try:
            await bus.wait_for_disconnect()
        except Exception as exc:  # the reader finishes the future with whatever broke it
            logger.warning("Bus connection failed: %r", exc)
        if not self._releasing:
            self.name_lost(NameLostReason.CONNECTION_CLOSED)

    def _on_message(self, message: Message) -> None:
        if (
            message.message_type is MessageType.SIGNAL
            and message.path == DBUS_PATH
            and message.interface == DBUS_INTERFACE
            and message.member == "NameLost"
            and message.body
            and message.body[0] == self.bus_name
        ):
            self.name_lost(NameLostReason.NAME_LOST)

    # -- FSM callbacks ---------------------------------------------------

    def _after_connection_acquired(self, bus: Any) -> None:
        logger.debug("Connected to the bus as %s", getattr(bus, "unique_name", "?"))
        self._on_connection_acquired(bus)

    def _after_name_acquired(self) -> None:
        logger.debug("Acquired bus name %s", self.bus_name)
        self._on_name_acquired()

    def _after_name_lost(self, reason: NameLostReason) -> None:
        logger.debug("Bus name %s lost (%s)", self.bus_name, reason.value)
        self._on_name_lost(reason)


__all__ = ["BusFactory", "BusOwner", "message_bus_factory"]
