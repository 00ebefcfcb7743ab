"""Thin wrapper around the libgpiod v2 bindings for one GPIO chip."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import gpiod
import msgspec
from gpiod.line import Direction, Value

from ..errors import GpioError

logger = logging.getLogger("gpiodbus.gpio")

ChipFactory = Callable[[str], Any]


class ChipSnapshot(msgspec.Struct, frozen=True):
    """Cached chip identity as reported by the kernel."""

    name: str
    label: str
    num_lines: int
    path: str


class LineSnapshot(msgspec.Struct, frozen=True):
    """Point-in-time view of a single line."""

    offset: int
    name: str
    consumer: str
    used: bool
    direction: str
    active_low: bool


def _direction_name(direction: Any) -> str:
    name = getattr(direction, "name", None)
    return str(name).lower() if name else str(direction).lower()


class GpioChip:
    """Own one open chip handle plus the line requests held on it.

    Output lines stay requested after ``set_value`` so the level is kept;
    ``release`` hands them back to the kernel.
    """

    def __init__(
        self,
        path: str,
        *,
        consumer: str,
        chip_factory: ChipFactory | None = None,
    ) -> None:
        self._path = path
        self._consumer = consumer
        self._chip_factory: ChipFactory = chip_factory or gpiod.Chip
        self._chip: Any | None = None
        self._info: ChipSnapshot | None = None
        self._requests: dict[int, Any] = {}

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._chip is not None

    @property
    def held_offsets(self) -> tuple[int, ...]:
        return tuple(sorted(self._requests))

    def open(self) -> ChipSnapshot:
        if self._chip is None:
            try:
                self._chip = self._chip_factory(self._path)
            except OSError as exc:
                raise GpioError(f"unable to open {self._path}: {exc}") from exc
        return self.refresh()

    def refresh(self) -> ChipSnapshot:
        chip = self._require_chip()
        try:
            info = chip.get_info()
        except OSError as exc:
            raise GpioError(f"unable to read chip info for {self._path}: {exc}") from exc
        self._info = ChipSnapshot(
            name=info.name,
            label=info.label,
            num_lines=int(info.num_lines),
            path=self._path,
        )
        return self._info

    @property
    def info(self) -> ChipSnapshot:
        if self._info is None:
            return self.open()
        return self._info

    def line_info(self, offset: int) -> LineSnapshot:
        chip = self._require_chip()
        self._check_offset(offset)
        try:
            info = chip.get_line_info(offset)
        except OSError as exc:
            raise GpioError(f"unable to read line {offset} info: {exc}") from exc
        return LineSnapshot(
            offset=int(info.offset),
            name=info.name or "",
            consumer=info.consumer or "",
            used=bool(info.used),
            direction=_direction_name(info.direction),
            active_low=bool(info.active_low),
        )

    def get_value(self, offset: int) -> int:
        chip = self._require_chip()
        self._check_offset(offset)
        held = self._requests.get(offset)
        try:
            if held is not None:
                return int(held.get_value(offset) == Value.ACTIVE)
            request = chip.request_lines(
                config={offset: gpiod.LineSettings(direction=Direction.INPUT)},
                consumer=self._consumer,
            )
            try:
                return int(request.get_value(offset) == Value.ACTIVE)
            finally:
                request.release()
        except OSError as exc:
            raise GpioError(f"unable to read line {offset}: {exc}") from exc

    def set_value(self, offset: int, value: int) -> None:
        chip = self._require_chip()
        self._check_offset(offset)
        level = Value.ACTIVE if value else Value.INACTIVE
        try:
            held = self._requests.get(offset)
            if held is not None:
                held.set_value(offset, level)
                return
            self._requests[offset] = chip.request_lines(
                config={offset: gpiod.LineSettings(direction=Direction.OUTPUT, output_value=level)},
                consumer=self._consumer,
            )
        except OSError as exc:
            raise GpioError(f"unable to drive line {offset}: {exc}") from exc
        logger.debug("Holding %s line %d as output", self._path, offset)

    def release(self, offset: int) -> bool:
        request = self._requests.pop(offset, None)
        if request is None:
            return False
        try:
            request.release()
        except OSError as exc:
            raise GpioError(f"unable to release line {offset}: {exc}") from exc
        return True

    def close(self) -> None:
        for offset in list(self._requests):
            try:
                self.release(offset)
            except GpioError as exc:
                logger.warning("%s", exc)
        chip, self._chip = self._chip, None
        if chip is not None:
            try:
                chip.close()
            except OSError as exc:
                logger.warning("Closing %s failed: %s", self._path, exc)

    def _require_chip(self) -> Any:
        if self._chip is None:
            raise GpioError(f"chip {self._path} is not open")
        return self._chip

    def _check_offset(self, offset: int) -> None:
        num_lines = self._info.num_lines if self._info is not None else None
        if offset < 0 or (num_lines is not None and offset >= num_lines):
            raise GpioError(f"line offset {offset} out of range for {self._path}")


__all__ = ["ChipFactory", "ChipSnapshot", "GpioChip", "LineSnapshot"]
