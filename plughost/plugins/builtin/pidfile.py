"""Pid file plugin that records the host's pid for the lifetime of the loop."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from plughost.exceptions import PluginError
from plughost.plugins.base import Plugin, PluginMeta

if TYPE_CHECKING:
    from plughost.core.options import OptionSchema
    from plughost.plugins.base import PluginContext

logger = structlog.get_logger()


class PidFilePlugin(Plugin):
    meta = PluginMeta(
        name="pidfile",
        version="0.1.0",
        description="Writes the process id to a file while the host runs",
    )

    def __init__(self) -> None:
        self._path: Path | None = None

    @property
    def path(self) -> Path | None:
        return self._path

    def declare_options(self, cli: OptionSchema, config: OptionSchema) -> None:
        config.add(
            "pidfile.path",
            "Pid file location, relative to data-dir",
            default=Path("plughost.pid"),
            value_type=Path,
        )
        cli.add("pidfile.force", "Replace an existing pid file", switch=True)

    def on_initialize(self, context: PluginContext) -> None:
        path: Path = context.options["pidfile.path"]
        if not path.is_absolute() and context.app.data_dir is not None:
            path = context.app.data_dir / path
        if path.exists() and not context.options["pidfile.force"]:
            raise PluginError(f"pid file already exists: {path}")
        self._path = path

    def on_startup(self) -> None:
        if self._path is None:
            raise PluginError("pid file started before it was initialized")
        pid = os.getpid()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(f"{pid}\n")
        logger.info("pidfile_written", path=str(self._path), pid=pid)

    def on_shutdown(self) -> None:
        if self._path is not None:
            self._path.unlink(missing_ok=True)
            logger.info("pidfile_removed", path=str(self._path))
