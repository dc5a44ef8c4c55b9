"""Plugin registry with explicit registration and initialization/startup order."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

import structlog

from plughost.exceptions import DuplicateNameError, PluginNotFoundError

if TYPE_CHECKING:
    from plughost.plugins.base import Plugin

    P = TypeVar("P", bound=Plugin)

logger = structlog.get_logger()


class PluginRegistry:
    def __init__(self) -> None:
        self._plugins: dict[str, Plugin] = {}
        self._initialized: list[Plugin] = []
        self._started: list[Plugin] = []

    def register(self, plugin: P) -> P:
        name = plugin.name
        if name in self._plugins:
            raise DuplicateNameError(name)
        plugin.bind(self)
        self._plugins[name] = plugin
        logger.info("plugin_registered", name=name, version=plugin.meta.version)
        return plugin

    def find(self, name: str) -> Plugin | None:
        return self._plugins.get(name)

    def get(self, name: str) -> Plugin:
        plugin = self._plugins.get(name)
        if plugin is None:
            raise PluginNotFoundError(name)
        return plugin

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    @property
    def plugins(self) -> list[Plugin]:
        return list(self._plugins.values())

    @property
    def initialized(self) -> list[Plugin]:
        return list(self._initialized)

    @property
    def started(self) -> list[Plugin]:
        return list(self._started)

    def mark_initialized(self, plugin: Plugin) -> None:
        if plugin not in self._initialized:
            self._initialized.append(plugin)

    def mark_started(self, plugin: Plugin) -> None:
        if plugin not in self._started:
            self._started.append(plugin)

    def startup_all(self) -> None:
        for plugin in list(self._initialized):
            plugin.startup()

    def shutdown_all(self) -> None:
        running = list(reversed(self._started))
        for plugin in running:
            try:
                plugin.shutdown()
            except Exception:
                logger.exception("plugin_stop_failed", name=plugin.name)
        # Instances stay resolvable until every plugin has stopped.
        for plugin in running:
            self._plugins.pop(plugin.name, None)
        self.clear()

    def clear(self) -> None:
        self._started.clear()
        self._initialized.clear()
        self._plugins.clear()
