"""Bridge process signals into the event loop."""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Callable, Iterable

import msgspec

logger = logging.getLogger("gpiodbus.signals")


class SignalSpec(msgspec.Struct, frozen=True):
    """Loop-level reaction to one signal."""

    signum: int
    oneshot: bool
    action: Callable[[], None]


def _ignore_hangup() -> None:
    logger.debug("SIGHUP received; configuration reload is not supported")


def default_signal_specs(stop: Callable[[], None]) -> list[SignalSpec]:
    """TERM and INT request a stop once; HUP stays armed and does nothing."""
    return [
        SignalSpec(signal.SIGTERM, oneshot=True, action=stop),
        SignalSpec(signal.SIGINT, oneshot=True, action=stop),
        SignalSpec(signal.SIGHUP, oneshot=False, action=_ignore_hangup),
    ]


class SignalBridge:
    """Install loop signal handlers described by ``SignalSpec`` entries.

    A one-shot source is disarmed after its first delivery instead of being
    removed, so the process keeps the loop's disposition and later
    deliveries are dropped rather than killing it.
    """

    def __init__(self, specs: Iterable[SignalSpec]) -> None:
        self._specs = {spec.signum: spec for spec in specs}
        self._armed: set[int] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        for signum in self._specs:
            loop.add_signal_handler(signum, self._handle, signum)
            self._armed.add(signum)
        self._loop = loop
        logger.debug("Signal handlers installed for %s", ", ".join(self._names(self._specs)))

    def uninstall(self) -> None:
        loop, self._loop = self._loop, None
        if loop is None:
            return
        for signum in self._specs:
            loop.remove_signal_handler(signum)
        self._armed.clear()

    def is_armed(self, signum: int) -> bool:
        return signum in self._armed

    def _handle(self, signum: int) -> None:
        spec = self._specs.get(signum)
        name = signal.Signals(signum).name
        if spec is None or signum not in self._armed:
            logger.debug("Ignoring repeated %s", name)
            return
        if spec.oneshot:
            self._armed.discard(signum)
        logger.debug("Received %s", name)
        spec.action()

    @staticmethod
    def _names(signums: Iterable[int]) -> list[str]:
        return [signal.Signals(signum).name for signum in signums]


__all__ = ["SignalBridge", "SignalSpec", "default_signal_specs"]
