"""Bridge SIGINT/SIGTERM into a single quit request on the event loop."""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Callable, Iterable

import structlog

logger = structlog.get_logger()

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SignalBridge:
    """Calls *quit* on the first delivered signal, then ignores the rest.

    Handlers run on the loop thread, so *quit* must not touch plugins; it
    only asks the loop to stop.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        quit: Callable[[], None],
        signals: Iterable[signal.Signals] = DEFAULT_SIGNALS,
    ) -> None:
        self._loop = loop
        self._quit = quit
        self._signals = tuple(signals)
        self._installed: list[signal.Signals] = []
        self._armed = False

    @property
    def armed(self) -> bool:
        return self._armed

    def install(self) -> None:
        for sig in self._signals:
            self._loop.add_signal_handler(sig, self.handle, sig)
            self._installed.append(sig)
        self._armed = True

    def handle(self, sig: signal.Signals) -> None:
        if not self._armed:
            logger.info("signal_ignored", signal=signal.Signals(sig).name)
            return
        self._armed = False
        logger.info("signal_received", signal=signal.Signals(sig).name)
        self._quit()

    def uninstall(self) -> None:
        for sig in self._installed:
            self._loop.remove_signal_handler(sig)
        self._installed.clear()
        self._armed = False
