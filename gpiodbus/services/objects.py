"""Bus objects exported under the object root.

Every object carries a ``kind`` tag and a static method/property table. The
dispatcher only ever looks things up in these tables; no object parses
member names on its own.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from typing import Any

import msgspec
from dbus_fast import PropertyAccess
from dbus_fast import introspection as intr

from ..const import CHIP_INTERFACE, LINE_INTERFACE, MANAGER_INTERFACE
from .gpio import GpioChip


class ObjectKind(Enum):
    MANAGER = "manager"
    CHIP = "chip"
    LINE = "line"


class MethodSpec(msgspec.Struct, frozen=True):
    """Bus method bound to a handler returning the reply body."""

    handler: Callable[..., tuple[Any, ...]]
    in_args: tuple[tuple[str, str], ...] = ()
    out_args: tuple[tuple[str, str], ...] = ()

    @property
    def in_signature(self) -> str:
        return "".join(signature for _, signature in self.in_args)

    @property
    def out_signature(self) -> str:
        return "".join(signature for _, signature in self.out_args)


class PropertySpec(msgspec.Struct, frozen=True):
    """Read-only bus property."""

    signature: str
    getter: Callable[[], Any]


class BusObject:
    """Base class for everything the dispatcher can route to."""

    kind: ObjectKind
    interface: str

    def __init__(self, path: str) -> None:
        self.path = path

    def methods(self) -> Mapping[str, MethodSpec]:
        return {}

    def properties(self) -> Mapping[str, PropertySpec]:
        return {}

    def introspect(self, children: Sequence[str] = ()) -> str:
        node = intr.Node.default()
        methods = [
            intr.Method(
                name,
                in_args=[intr.Arg(sig, intr.ArgDirection.IN, arg) for arg, sig in spec.in_args],
                out_args=[intr.Arg(sig, intr.ArgDirection.OUT, arg) for arg, sig in spec.out_args],
            )
            for name, spec in self.methods().items()
        ]
        properties = [
            intr.Property(name, spec.signature, PropertyAccess.READ)
            for name, spec in self.properties().items()
        ]
        node.interfaces.append(intr.Interface(self.interface, methods=methods, properties=properties))
        for child in children:
            node.nodes.append(intr.Node(child, is_root=False))
        return node.tostring()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.path}>"


class ManagerObject(BusObject):
    """Root object listing every chip currently exported."""

    kind = ObjectKind.MANAGER
    interface = MANAGER_INTERFACE

    def __init__(self, path: str, *, list_chips: Callable[[], list[str]], version: str) -> None:
        super().__init__(path)
        self._list_chips = list_chips
        self._version = version

    def methods(self) -> Mapping[str, MethodSpec]:
        return {
            "ListChips": MethodSpec(
                handler=lambda: (self._list_chips(),),
                out_args=(("chips", "ao"),),
            ),
        }

    def properties(self) -> Mapping[str, PropertySpec]:
        return {"Version": PropertySpec("s", lambda: self._version)}


class ChipObject(BusObject):
    kind = ObjectKind.CHIP
    interface = CHIP_INTERFACE

    def __init__(self, path: str, chip: GpioChip, *, list_lines: Callable[[], list[str]]) -> None:
        super().__init__(path)
        self.chip = chip
        self._list_lines = list_lines

    def methods(self) -> Mapping[str, MethodSpec]:
        return {
            "ListLines": MethodSpec(
                handler=lambda: (self._list_lines(),),
                out_args=(("lines", "ao"),),
            ),
        }

    def properties(self) -> Mapping[str, PropertySpec]:
        return {
            "Name": PropertySpec("s", lambda: self.chip.info.name),
            "Label": PropertySpec("s", lambda: self.chip.info.label),
            "NumLines": PropertySpec("u", lambda: self.chip.info.num_lines),
            "Path": PropertySpec("s", lambda: self.chip.info.path),
        }


class LineObject(BusObject):
    kind = ObjectKind.LINE
    interface = LINE_INTERFACE

    def __init__(self, path: str, chip: GpioChip, offset: int) -> None:
        super().__init__(path)
        self.chip = chip
        self.offset = offset

    def _get_value(self) -> tuple[Any, ...]:
        return (self.chip.get_value(self.offset),)

    def _set_value(self, value: int) -> tuple[Any, ...]:
        self.chip.set_value(self.offset, value)
        return ()

    def _release(self) -> tuple[Any, ...]:
        self.chip.release(self.offset)
        return ()

    def methods(self) -> Mapping[str, MethodSpec]:
        return {
            "GetValue": MethodSpec(handler=self._get_value, out_args=(("value", "i"),)),
            "SetValue": MethodSpec(handler=self._set_value, in_args=(("value", "i"),)),
            "Release": MethodSpec(handler=self._release),
        }

    def properties(self) -> Mapping[str, PropertySpec]:
        return {
            "Offset": PropertySpec("u", lambda: self.offset),
            "Name": PropertySpec("s", lambda: self.chip.line_info(self.offset).name),
            "Consumer": PropertySpec("s", lambda: self.chip.line_info(self.offset).consumer),
            "Used": PropertySpec("b", lambda: self.chip.line_info(self.offset).used),
            "Direction": PropertySpec("s", lambda: self.chip.line_info(self.offset).direction),
            "ActiveLow": PropertySpec("b", lambda: self.chip.line_info(self.offset).active_low),
        }


__all__ = [
    "BusObject",
    "ChipObject",
    "LineObject",
    "ManagerObject",
    "MethodSpec",
    "ObjectKind",
    "PropertySpec",
]
