"""Heartbeat plugin logging a periodic liveness line from the event loop."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from plughost.exceptions import PluginError
from plughost.plugins.base import Plugin, PluginMeta

if TYPE_CHECKING:
    from plughost.core.options import OptionSchema
    from plughost.plugins.base import PluginContext

logger = structlog.get_logger()


class HeartbeatPlugin(Plugin):
    meta = PluginMeta(
        name="heartbeat",
        version="0.1.0",
        description="Logs a heartbeat event at a fixed interval",
    )

    def __init__(self) -> None:
        self.beats = 0
        self._interval = 60.0
        self._quiet = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._handle: asyncio.TimerHandle | None = None

    @property
    def interval(self) -> float:
        return self._interval

    def declare_options(self, cli: OptionSchema, config: OptionSchema) -> None:
        config.add(
            "heartbeat.interval",
            "Seconds between heartbeat log lines",
            default=60.0,
            value_type=float,
        )
        cli.add("heartbeat.quiet", "Count heartbeats without logging them", switch=True)

    def on_initialize(self, context: PluginContext) -> None:
        interval = context.options["heartbeat.interval"]
        if interval <= 0:
            raise PluginError(f"heartbeat.interval must be positive, got {interval}")
        self._interval = interval
        self._quiet = context.options["heartbeat.quiet"]
        self._loop = context.app.loop

    def on_startup(self) -> None:
        if self._loop is None:
            raise PluginError("heartbeat started before it was initialized")
        self._schedule(self._loop)

    def on_shutdown(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        logger.info("heartbeat_stopped", beats=self.beats)

    def _schedule(self, loop: asyncio.AbstractEventLoop) -> None:
        self._handle = loop.call_later(self._interval, self._beat, loop)

    def _beat(self, loop: asyncio.AbstractEventLoop) -> None:
        self.beats += 1
        if not self._quiet:
            logger.info("heartbeat", count=self.beats)
        self._schedule(loop)
