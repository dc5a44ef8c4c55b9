"""Plugin base class and lifecycle state machine."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ConfigDict

from plughost.core.options import OptionValues
from plughost.exceptions import PlughostError, PluginError

if TYPE_CHECKING:
    from plughost.core.application import Application
    from plughost.core.options import OptionSchema
    from plughost.plugins.registry import PluginRegistry

logger = structlog.get_logger()


class PluginState(str, Enum):
    REGISTERED = "registered"
    INITIALIZED = "initialized"
    STARTED = "started"
    STOPPED = "stopped"


class PluginMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    description: str = ""
    requires: tuple[str, ...] = ()


class PluginContext(BaseModel):
    """Handed to ``initialize``; the only route from a plugin to its host."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    app: Application
    options: OptionValues


class Plugin:
    """Base class for host plugins.

    Subclasses set ``meta`` and override the ``on_*`` hooks. The public
    lifecycle methods guard the state machine
    (registered -> initialized -> started -> stopped) and record ordering in
    the registry the plugin was registered with, so each hook runs at most
    once no matter how often the lifecycle method is called.

    A plugin that needs another one initialized first either lists it in
    ``meta.requires`` or calls
    ``context.app.get_plugin(name).initialize(context)`` from
    ``on_initialize``.
    """

    meta: PluginMeta

    _state: PluginState = PluginState.REGISTERED
    _registry: PluginRegistry | None = None

    @property
    def name(self) -> str:
        return self.meta.name

    @property
    def state(self) -> PluginState:
        return self._state

    def bind(self, registry: PluginRegistry) -> None:
        self._registry = registry

    def declare_options(self, cli: OptionSchema, config: OptionSchema) -> None:
        """Add command-line-only options to *cli* and config-file options to *config*."""

    def on_initialize(self, context: PluginContext) -> None:
        pass

    def on_startup(self) -> None:
        pass

    def on_shutdown(self) -> None:
        pass

    def initialize(self, context: PluginContext) -> None:
        if self._state is not PluginState.REGISTERED:
            return
        registry = self._bound_registry()
        # Flip state before running anything so re-entrant requests are no-ops.
        self._state = PluginState.INITIALIZED
        for name in self.meta.requires:
            registry.get(name).initialize(context)
        self._run_hook("initialize", self.on_initialize, context)
        registry.mark_initialized(self)
        logger.info("plugin_initialized", name=self.name)

    def startup(self) -> None:
        if self._state is not PluginState.INITIALIZED:
            return
        registry = self._bound_registry()
        self._state = PluginState.STARTED
        for name in self.meta.requires:
            registry.get(name).startup()
        self._run_hook("start", self.on_startup)
        registry.mark_started(self)
        logger.info("plugin_started", name=self.name)

    def shutdown(self) -> None:
        if self._state is not PluginState.STARTED:
            return
        self._state = PluginState.STOPPED
        self._run_hook("stop", self.on_shutdown)
        logger.info("plugin_stopped", name=self.name)

    def _bound_registry(self) -> PluginRegistry:
        if self._registry is None:
            raise PluginError(f"Plugin {self.name} is not registered")
        return self._registry

    def _run_hook(self, phase: str, hook: Callable[..., None], *args: Any) -> None:
        try:
            hook(*args)
        except PlughostError:
            raise
        except Exception as e:
            logger.error("plugin_hook_failed", name=self.name, phase=phase, error=str(e))
            raise PluginError(f"Plugin {self.name} failed to {phase}: {e}") from e

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} {self._state.value}>"
