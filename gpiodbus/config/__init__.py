"""Configuration helpers for the GPIO D-Bus daemon."""

from . import logging, settings  # noqa: F401  # pyright: ignore[reportUnusedImport]
