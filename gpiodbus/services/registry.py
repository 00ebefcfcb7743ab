"""Routing table mapping object paths to bus objects.

The table is seeded from the device enumeration done at name acquisition
and then kept in step with hotplug events.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable

from ..const import CHIP_NAME_PREFIX, DEV_ROOT, LINE_NODE_PREFIX
from ..errors import GpioError
from ..protocol.structures import DeviceAction, DeviceEvent
from .gpio import ChipFactory, GpioChip
from .objects import BusObject, ChipObject, LineObject, ManagerObject, ObjectKind

logger = logging.getLogger("gpiodbus.registry")


def is_chip_name(name: str) -> bool:
    suffix = name[len(CHIP_NAME_PREFIX) :]
    return name.startswith(CHIP_NAME_PREFIX) and suffix.isdigit()


class ObjectRegistry:
    """Object-path routing table plus the chip handles behind it."""

    def __init__(
        self,
        root: str,
        *,
        consumer: str,
        version: str = "",
        chip_factory: ChipFactory | None = None,
    ) -> None:
        self.root = root.rstrip("/")
        self._consumer = consumer
        self._chip_factory = chip_factory
        self._objects: dict[str, BusObject] = {}
        self._chips: dict[str, GpioChip] = {}
        self.register(ManagerObject(self.root, list_chips=self.chip_paths, version=version))

    # -- routing table -------------------------------------------------

    def register(self, obj: BusObject) -> None:
        if obj.path in self._objects:
            raise ValueError(f"object path {obj.path} already registered")
        self._objects[obj.path] = obj

    def unregister(self, path: str) -> BusObject | None:
        return self._objects.pop(path, None)

    def get(self, path: str) -> BusObject | None:
        return self._objects.get(path)

    def owns(self, path: str | None) -> bool:
        if not path:
            return False
        return path == self.root or path.startswith(self.root + "/")

    def paths(self) -> list[str]:
        return sorted(self._objects)

    def children(self, path: str) -> list[str]:
        """Names of the direct child nodes of *path* (for introspection)."""
        prefix = path.rstrip("/") + "/"
        names: set[str] = set()
        for candidate in self._objects:
            if candidate.startswith(prefix):
                names.add(candidate[len(prefix) :].split("/", 1)[0])
        return sorted(names)

    def chip_paths(self) -> list[str]:
        return sorted(path for path, obj in self._objects.items() if obj.kind is ObjectKind.CHIP)

    def line_paths(self, chip_name: str) -> list[str]:
        chip_path = self.chip_path(chip_name)
        lines = [
            obj
            for path, obj in self._objects.items()
            if obj.kind is ObjectKind.LINE and path.startswith(chip_path + "/")
        ]
        return [obj.path for obj in sorted(lines, key=lambda obj: getattr(obj, "offset", 0))]

    def chip_path(self, chip_name: str) -> str:
        return f"{self.root}/{chip_name}"

    def line_path(self, chip_name: str, offset: int) -> str:
        return f"{self.chip_path(chip_name)}/{LINE_NODE_PREFIX}{offset}"

    @property
    def chip_names(self) -> list[str]:
        return sorted(self._chips)

    # -- hotplug synchronisation -----------------------------------------

    def handle_device_event(self, event: DeviceEvent) -> None:
        """Apply one hotplug event to the routing table."""
        logger.debug("uevent: %s action on %s device", event.raw_action or event.action.value, event.device_name)
        if event.action is DeviceAction.ADD:
            self.add_chip(event.device_name, event.device_node)
        elif event.action is DeviceAction.REMOVE:
            self.remove_chip(event.device_name)
        elif event.action is DeviceAction.CHANGE:
            self.refresh_chip(event.device_name)
        else:
            logger.debug("Ignoring '%s' action on %s", event.raw_action, event.device_name)

    def seed(self, events: Iterable[DeviceEvent]) -> int:
        """Register every device from an enumeration; returns how many were added."""
        added = 0
        for event in events:
            if self.add_chip(event.device_name, event.device_node):
                added += 1
        return added

    def add_chip(self, name: str, device_node: str | None = None) -> bool:
        if not is_chip_name(name):
            logger.debug("Skipping non-chip gpio device %s", name)
            return False
        if name in self._chips:
            logger.info("Duplicate add for %s ignored", name)
            return False

        node = device_node or os.path.join(DEV_ROOT, name)
        chip = GpioChip(node, consumer=self._consumer, chip_factory=self._chip_factory)
        try:
            info = chip.open()
        except GpioError as exc:
            logger.warning("Unable to export %s: %s", name, exc)
            chip.close()
            return False

        chip_path = self.chip_path(name)
        self._chips[name] = chip
        self.register(ChipObject(chip_path, chip, list_lines=lambda: self.line_paths(name)))
        for offset in range(info.num_lines):
            self.register(LineObject(self.line_path(name, offset), chip, offset))
        logger.info("Exported %s (%s) with %d line(s) at %s", name, info.label, info.num_lines, chip_path)
        return True

    def remove_chip(self, name: str) -> bool:
        chip = self._chips.pop(name, None)
        if chip is None:
            logger.info("Remove for unknown device %s ignored", name)
            return False
        chip_path = self.chip_path(name)
        for path in [p for p in self._objects if p == chip_path or p.startswith(chip_path + "/")]:
            del self._objects[path]
        chip.close()
        logger.info("Removed %s from %s", name, chip_path)
        return True

    def refresh_chip(self, name: str) -> bool:
        chip = self._chips.get(name)
        if chip is None:
            logger.debug("Change for unknown device %s ignored", name)
            return False
        try:
            chip.refresh()
        except GpioError as exc:
            logger.warning("Unable to refresh %s: %s", name, exc)
            return False
        return True

    def clear(self) -> None:
        """Drop every chip object and close the handles behind them."""
        for name in list(self._chips):
            self.remove_chip(name)


__all__ = ["ObjectRegistry", "is_chip_name"]
