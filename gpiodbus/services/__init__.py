"""Bus-facing services: routing table, dispatcher and GPIO access."""

from .dispatcher import BusDispatcher
from .gpio import ChipSnapshot, GpioChip, LineSnapshot
from .objects import BusObject, ChipObject, LineObject, ManagerObject, ObjectKind
from .registry import ObjectRegistry

__all__ = [
    "BusDispatcher",
    "BusObject",
    "ChipObject",
    "ChipSnapshot",
    "GpioChip",
    "LineObject",
    "LineSnapshot",
    "ManagerObject",
    "ObjectKind",
    "ObjectRegistry",
]
