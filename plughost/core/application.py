"""Bootstrap sequencing: option parsing, ordered plugin lifecycle, event loop."""

from __future__ import annotations

import asyncio
import re
import sys
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

import structlog

from plughost import __version__
from plughost.core.config_file import parse_config_file, write_default_config
from plughost.core.options import (
    OptionSchema,
    OptionValues,
    aggregate_options,
    format_help,
    merge_option_values,
    parse_command_line,
)
from plughost.core.signals import SignalBridge
from plughost.plugins.base import PluginContext, PluginState
from plughost.plugins.registry import PluginRegistry

if TYPE_CHECKING:
    from plughost.plugins.base import Plugin

    P = TypeVar("P", bound=Plugin)

logger = structlog.get_logger()

_PLUGIN_DELIMITERS = re.compile(r"[ \t,]+")


def split_plugin_names(occurrences: Iterable[str]) -> list[str]:
    """Flatten ``--plugin`` occurrences such as ``"net, chain"`` into names."""
    names: list[str] = []
    for occurrence in occurrences:
        names.extend(name for name in _PLUGIN_DELIMITERS.split(occurrence) if name)
    return names


class Application:
    """Owns the plugin registry and the event loop for one process run.

    Created once by the entry point and handed to plugins through
    :class:`PluginContext`; there is no global instance.

    Typical use::

        app = Application()
        app.register_plugin(NetPlugin())
        if app.initialize(sys.argv[1:]):
            app.startup()
            app.exec()
    """

    def __init__(
        self,
        *,
        name: str = "plughost",
        version: str = __version__,
        registry: PluginRegistry | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.name = name
        self.version = version
        self.registry = registry if registry is not None else PluginRegistry()
        self._loop = loop if loop is not None else asyncio.new_event_loop()
        self._app_options = OptionSchema("Application Options")
        self._cfg_options = OptionSchema("Config Options")
        self._options = OptionValues()
        self._data_dir: Path | None = None
        self._config_file: Path | None = None
        self._quit_requested = False

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def options(self) -> OptionValues:
        return self._options

    @property
    def app_options(self) -> OptionSchema:
        return self._app_options

    @property
    def config_options(self) -> OptionSchema:
        return self._cfg_options

    @property
    def data_dir(self) -> Path | None:
        return self._data_dir

    @property
    def config_file(self) -> Path | None:
        return self._config_file

    @property
    def quit_requested(self) -> bool:
        return self._quit_requested

    def register_plugin(self, plugin: P) -> P:
        return self.registry.register(plugin)

    def find_plugin(self, name: str) -> Plugin | None:
        return self.registry.find(name)

    def get_plugin(self, name: str) -> Plugin:
        return self.registry.get(name)

    def set_program_options(self) -> None:
        self._app_options, self._cfg_options = aggregate_options(self.registry.plugins)

    def initialize(
        self,
        argv: Sequence[str] | None = None,
        autostart: Iterable[Plugin | None] = (),
    ) -> bool:
        """Parse options and initialize the selected plugins.

        Returns ``False`` when the process should not go on to run the loop
        (help or version output). Parse errors and unknown plugin names
        propagate as :class:`~plughost.exceptions.PlughostError` subclasses
        before any plugin has been started.
        """
        self.set_program_options()
        args = sys.argv[1:] if argv is None else list(argv)
        cli_values = parse_command_line(self._app_options, args, prog=self.name)
        cli_options = merge_option_values(self._app_options, cli_values, {})

        if cli_options["help"]:
            print(format_help(self._app_options, prog=self.name))
            return False
        if cli_options["version"]:
            print(f"{self.name} {self.version}")
            return False

        data_dir: Path = cli_options["data-dir"]
        if not data_dir.is_absolute():
            data_dir = Path.cwd() / data_dir
        self._data_dir = data_dir

        config_file: Path = cli_options["config"]
        if not config_file.is_absolute():
            config_file = data_dir / config_file
        self._config_file = config_file

        if not config_file.exists():
            write_default_config(config_file, self._cfg_options)

        file_values = parse_config_file(config_file, self._cfg_options)
        self._options = merge_option_values(self._app_options, cli_values, file_values)
        context = PluginContext(app=self, options=self._options)

        for name in split_plugin_names(self._options.get("plugin", [])):
            self.get_plugin(name).initialize(context)
        for plugin in autostart:
            if plugin is not None and plugin.state is PluginState.REGISTERED:
                plugin.initialize(context)

        logger.info(
            "application_initialized",
            data_dir=str(data_dir),
            config_file=str(config_file),
            plugins=[p.name for p in self.registry.initialized],
        )
        return True

    def startup(self) -> None:
        self.registry.startup_all()
        logger.info("application_started", plugins=[p.name for p in self.registry.started])

    def quit(self) -> None:
        """Ask the loop to stop. Safe to repeat and safe before :meth:`exec`."""
        if not self._quit_requested:
            logger.info("quit_requested")
        self._quit_requested = True
        self._loop.stop()

    def exec(self) -> None:
        """Run the loop until quit, then shut every started plugin down."""
        bridge = SignalBridge(self._loop, self.quit)
        bridge.install()
        try:
            self._loop.run_forever()
        finally:
            # Handlers stay installed while plugins stop, so repeated
            # signals keep landing on the disarmed bridge.
            try:
                self.shutdown()
            finally:
                try:
                    bridge.uninstall()
                finally:
                    self.close()

    def shutdown(self) -> None:
        stopping = [p.name for p in reversed(self.registry.started)]
        self.registry.shutdown_all()
        logger.info("application_stopped", plugins=stopping)

    def close(self) -> None:
        """Cancel leftover loop tasks and close the loop."""
        if self._loop.is_closed():
            return
        pending = asyncio.all_tasks(self._loop)
        for task in pending:
            task.cancel()
        if pending:
            self._loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        self._loop.run_until_complete(self._loop.shutdown_asyncgens())
        self._loop.close()


PluginContext.model_rebuild()
