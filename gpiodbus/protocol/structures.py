"""Typed structures for bus state, hotplug events and method calls."""

from __future__ import annotations

from enum import Enum
from typing import Any

import msgspec


class BusNameState(Enum):
    """Lifecycle of the well-known bus name owned by this process."""

    UNREQUESTED = "unrequested"
    REQUESTED = "requested"
    CONNECTION_ACQUIRED = "connection_acquired"
    NAME_ACQUIRED = "name_acquired"
    NAME_LOST = "name_lost"


class NameLostReason(Enum):
    """Why the bus name went away. Every reason is fatal."""

    NO_CONNECTION = "no_connection"
    CONNECTION_CLOSED = "connection_closed"
    NAME_LOST = "name_lost"

    def describe(self, bus_name: str) -> str:
        if self is NameLostReason.NO_CONNECTION:
            return "unable to make connection to the bus"
        if self is NameLostReason.CONNECTION_CLOSED:
            return "connection to the bus closed, dying..."
        return f"name '{bus_name}' lost on the bus, dying..."


class DeviceAction(str, Enum):
    """Hotplug action reported by the kernel, folded into four buckets."""

    ADD = "add"
    REMOVE = "remove"
    CHANGE = "change"
    OTHER = "other"

    @classmethod
    def from_raw(cls, raw: str) -> DeviceAction:
        try:
            action = cls(raw)
        except ValueError:
            return cls.OTHER
        return action


class DeviceEvent(msgspec.Struct, frozen=True):
    """A single hotplug notification for a device in the watched subsystem."""

    action: DeviceAction
    device_name: str
    raw_action: str = ""
    device_node: str | None = None

    @classmethod
    def from_raw(cls, raw_action: str, device_name: str, device_node: str | None = None) -> DeviceEvent:
        return cls(
            action=DeviceAction.from_raw(raw_action),
            device_name=device_name,
            raw_action=raw_action,
            device_node=device_node,
        )


class MethodCallRequest(msgspec.Struct, frozen=True):
    """Bus method call as seen by the dispatcher."""

    sender: str | None
    object_path: str
    interface_name: str | None
    method_name: str
    signature: str = ""
    parameters: tuple[Any, ...] = ()


class MethodCallReply(msgspec.Struct, frozen=True):
    """Successful outcome of a method call."""

    signature: str = ""
    body: tuple[Any, ...] = ()


class MethodCallError(msgspec.Struct, frozen=True):
    """Structured error returned to the calling bus client."""

    error_name: str
    message: str


MethodCallResult = MethodCallReply | MethodCallError


__all__ = [
    "BusNameState",
    "DeviceAction",
    "DeviceEvent",
    "MethodCallError",
    "MethodCallReply",
    "MethodCallRequest",
    "MethodCallResult",
    "NameLostReason",
]
