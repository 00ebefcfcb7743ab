"""Shared fakes for gpio-dbus tests: bus, udev and libgpiod chips."""

from __future__ import annotations

import asyncio
import errno
import os
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

from dbus_fast import Message, MessageType, RequestNameReply
from gpiod.line import Direction, Value

from gpiodbus.const import DBUS_INTERFACE, DBUS_PATH


# -- message bus ---------------------------------------------------------


class FakeBusDaemon:
    """Name registry shared by every ``FakeBus`` connected to it."""

    def __init__(self) -> None:
        self.owners: dict[str, FakeBus] = {}
        self._serial = 0

    def next_unique_name(self) -> str:
        self._serial += 1
        return f":1.{self._serial}"

    def request(self, name: str, bus: FakeBus) -> RequestNameReply:
        owner = self.owners.get(name)
        if owner is bus:
            return RequestNameReply.ALREADY_OWNER
        if owner is not None:
            return RequestNameReply.EXISTS
        self.owners[name] = bus
        return RequestNameReply.PRIMARY_OWNER

    def release(self, name: str, bus: FakeBus) -> None:
        if self.owners.get(name) is bus:
            del self.owners[name]

    def revoke(self, name: str) -> None:
        """Take *name* away from its owner and send NameLost."""
        owner = self.owners.pop(name, None)
        if owner is not None:
            owner.emit(Message.new_signal(DBUS_PATH, DBUS_INTERFACE, "NameLost", "s", [name]))


class FakeBus:
    """Stand-in for ``dbus_fast.aio.MessageBus``."""

    def __init__(
        self,
        daemon: FakeBusDaemon | None = None,
        *,
        connect_error: BaseException | None = None,
        journal: list[str] | None = None,
    ) -> None:
        self.daemon = daemon or FakeBusDaemon()
        self.connect_error = connect_error
        self.connect_gate: asyncio.Event | None = None
        self.request_gate: asyncio.Event | None = None
        self.journal = journal if journal is not None else []
        self.connected = False
        self.unique_name: str | None = None
        self.handlers: list[Callable[[Message], Any]] = []
        self.sent: list[Message] = []
        self.released: list[str] = []
        self._disconnected: asyncio.Future[None] | None = None

    async def connect(self) -> FakeBus:
        if self.connect_gate is not None:
            await self.connect_gate.wait()
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True
        self.unique_name = self.daemon.next_unique_name()
        self._disconnected = asyncio.get_running_loop().create_future()
        self.journal.append("connect")
        return self

    def add_message_handler(self, handler: Callable[[Message], Any]) -> None:
        self.handlers.append(handler)

    def remove_message_handler(self, handler: Callable[[Message], Any]) -> None:
        for index, candidate in enumerate(self.handlers):
            if candidate == handler:
                del self.handlers[index]
                return

    async def request_name(self, name: str, flags: Any = None) -> RequestNameReply:
        self.journal.append("request_name")
        if self.request_gate is not None:
            await self.request_gate.wait()
        return self.daemon.request(name, self)

    async def release_name(self, name: str) -> None:
        self.journal.append("release_name")
        self.released.append(name)
        self.daemon.release(name, self)

    async def wait_for_disconnect(self) -> None:
        assert self._disconnected is not None
        await asyncio.shield(self._disconnected)

    def disconnect(self) -> None:
        self.journal.append("disconnect")
        self._finalize()

    def hang_up(self) -> None:
        """Simulate the bus daemon closing the connection."""
        for name, owner in list(self.daemon.owners.items()):
            if owner is self:
                del self.daemon.owners[name]
        self._finalize()

    def fail(self, exc: BaseException) -> None:
        """Simulate the reader finishing the connection with *exc*."""
        self.connected = False
        if self._disconnected is not None and not self._disconnected.done():
            self._disconnected.set_exception(exc)

    def emit(self, message: Message) -> list[Message]:
        """Run *message* through the handlers as the library would."""
        replies: list[Message] = []
        for handler in list(self.handlers):
            result = handler(message)
            if isinstance(result, Message):
                replies.append(result)
                self.sent.append(result)
                break
        return replies

    def call(
        self,
        path: str,
        interface: str | None,
        member: str,
        signature: str = "",
        body: Iterable[Any] = (),
    ) -> list[Message]:
        message = Message(
            destination="org.gpiod",
            path=path,
            interface=interface,
            member=member,
            signature=signature,
            body=list(body),
            serial=len(self.sent) + 1,
        )
        return self.emit(message)

    def _finalize(self) -> None:
        self.connected = False
        if self._disconnected is not None and not self._disconnected.done():
            self._disconnected.set_result(None)


def bus_factory(bus: FakeBus) -> Callable[[], FakeBus]:
    return lambda: bus


def is_error(message: Message, name: str) -> bool:
    return message.message_type is MessageType.ERROR and message.error_name == name


# -- libgpiod ------------------------------------------------------------


@dataclass
class FakeLine:
    offset: int
    name: str = ""
    consumer: str = ""
    used: bool = False
    direction: Direction = Direction.INPUT
    active_low: bool = False
    level: Value = Value.INACTIVE


class FakeLineRequest:
    def __init__(self, chip: FakeChip, offsets: list[int]) -> None:
        self.chip = chip
        self.offsets = offsets
        self.released = False

    def get_value(self, offset: int) -> Value:
        if self.chip.io_error is not None:
            raise self.chip.io_error
        return self.chip.lines[offset].level

    def set_value(self, offset: int, value: Value) -> None:
        if self.chip.io_error is not None:
            raise self.chip.io_error
        self.chip.lines[offset].level = value

    def release(self) -> None:
        self.released = True
        for offset in self.offsets:
            line = self.chip.lines[offset]
            line.used = False
            line.consumer = ""


class FakeChip:
    """Stand-in for ``gpiod.Chip``."""

    def __init__(self, path: str, *, label: str = "pinctrl-test", num_lines: int = 4) -> None:
        self.path = path
        self.name = os.path.basename(path)
        self.label = label
        self.lines = [FakeLine(offset, name=f"GPIO{offset}") for offset in range(num_lines)]
        self.requests: list[FakeLineRequest] = []
        self.closed = False
        self.io_error: OSError | None = None
        self.journal: list[str] | None = None

    def get_info(self) -> SimpleNamespace:
        return SimpleNamespace(name=self.name, label=self.label, num_lines=len(self.lines))

    def get_line_info(self, offset: int) -> SimpleNamespace:
        line = self.lines[offset]
        return SimpleNamespace(
            offset=line.offset,
            name=line.name,
            consumer=line.consumer,
            used=line.used,
            direction=line.direction,
            active_low=line.active_low,
        )

    def request_lines(self, config: dict[int, Any], consumer: str | None = None) -> FakeLineRequest:
        if self.io_error is not None:
            raise self.io_error
        for offset in config:
            if self.lines[offset].used:
                raise OSError(errno.EBUSY, "Device or resource busy")
        for offset, settings in config.items():
            line = self.lines[offset]
            line.used = True
            line.consumer = consumer or ""
            line.direction = settings.direction
            if settings.direction is Direction.OUTPUT:
                line.level = settings.output_value
        request = FakeLineRequest(self, list(config))
        self.requests.append(request)
        return request

    def close(self) -> None:
        self.closed = True
        if self.journal is not None:
            self.journal.append(f"close {self.name}")


class FakeChipFactory:
    """Callable replacing ``gpiod.Chip``; paths listed in *missing* fail to open."""

    def __init__(self, *, num_lines: int = 4, missing: Iterable[str] = (), journal: list[str] | None = None):
        self.num_lines = num_lines
        self.missing = set(missing)
        self.journal = journal
        self.chips: dict[str, FakeChip] = {}

    def __call__(self, path: str) -> FakeChip:
        if path in self.missing:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        chip = FakeChip(path, num_lines=self.num_lines)
        chip.journal = self.journal
        self.chips[path] = chip
        return chip


# -- udev ----------------------------------------------------------------


@dataclass
class FakeUdevDevice:
    action: str | None
    sys_name: str | None
    device_node: str | None = None


@dataclass
class FakeUdevContext:
    devices: list[FakeUdevDevice] = field(default_factory=list)
    queried: list[str] = field(default_factory=list)

    def list_devices(self, subsystem: str | None = None) -> list[FakeUdevDevice]:
        if subsystem is not None:
            self.queried.append(subsystem)
        return list(self.devices)


class FakeNetlinkMonitor:
    """Stand-in for ``pyudev.Monitor`` backed by a pipe the loop can watch."""

    def __init__(self, context: Any) -> None:
        self.context = context
        self.filters: list[str] = []
        self.started = False
        self._queue: deque[FakeUdevDevice] = deque()
        self._read_fd, self._write_fd = os.pipe()
        os.set_blocking(self._read_fd, False)

    def filter_by(self, subsystem: str, device_type: str | None = None) -> None:
        self.filters.append(subsystem)

    def start(self) -> None:
        self.started = True

    def fileno(self) -> int:
        return self._read_fd

    def push(self, device: FakeUdevDevice) -> None:
        self._queue.append(device)
        os.write(self._write_fd, b"\x00")

    def poll(self, timeout: float | None = None) -> FakeUdevDevice | None:
        if not self._queue:
            return None
        os.read(self._read_fd, 1)
        return self._queue.popleft()

    def close(self) -> None:
        os.close(self._read_fd)
        os.close(self._write_fd)


class NetlinkMonitorFactory:
    """Records every monitor the code under test opens."""

    def __init__(self) -> None:
        self.monitors: list[FakeNetlinkMonitor] = []

    def __call__(self, context: Any) -> FakeNetlinkMonitor:
        monitor = FakeNetlinkMonitor(context)
        self.monitors.append(monitor)
        return monitor

    def close(self) -> None:
        for monitor in self.monitors:
            monitor.close()


async def wait_for(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Spin the loop until *predicate* holds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)
