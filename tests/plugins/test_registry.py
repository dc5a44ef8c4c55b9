"""Tests for plugin registry."""

from __future__ import annotations

import pytest

from plughost.core.options import OptionValues
from plughost.exceptions import DuplicateNameError, PluginNotFoundError
from plughost.plugins.base import Plugin, PluginContext, PluginMeta, PluginState
from plughost.plugins.registry import PluginRegistry


class StubPlugin(Plugin):
    meta = PluginMeta(name="stub", version="1.0.0", description="Test plugin")

    def __init__(self):
        self.initialized = False
        self.started = False
        self.stopped = False

    def on_initialize(self, context):
        self.initialized = True

    def on_startup(self):
        self.started = True

    def on_shutdown(self):
        self.stopped = True


@pytest.fixture
def registry(app):
    return app.registry


@pytest.fixture
def plugin_context(app):
    return PluginContext(app=app, options=OptionValues())


class TestPluginRegistry:
    def test_register_and_get(self, registry):
        plugin = StubPlugin()
        assert registry.register(plugin) is plugin
        assert registry.get("stub") is plugin
        assert registry.find("stub") is plugin
        assert "stub" in registry

    def test_find_nonexistent_returns_none(self, registry):
        assert registry.find("nope") is None

    def test_get_nonexistent_raises(self, registry):
        with pytest.raises(PluginNotFoundError, match="unable to find plugin: nope") as exc:
            registry.get("nope")
        assert exc.value.name == "nope"

    def test_duplicate_registration_raises(self, registry):
        registry.register(StubPlugin())
        with pytest.raises(DuplicateNameError, match="already registered") as exc:
            registry.register(StubPlugin())
        assert exc.value.name == "stub"

    def test_plugins_list_in_registration_order(self, registry, make_plugin):
        a, b, c = make_plugin("a"), make_plugin("b"), make_plugin("c")
        for p in (b, a, c):
            registry.register(p)
        assert registry.plugins == [b, a, c]

    def test_registry_plugins_returns_fresh_list(self, registry):
        registry.register(StubPlugin())
        plugins = registry.plugins
        plugins.clear()
        assert len(registry.plugins) == 1

    def test_mark_initialized_does_not_duplicate(self, registry):
        plugin = registry.register(StubPlugin())
        registry.mark_initialized(plugin)
        registry.mark_initialized(plugin)
        assert registry.initialized == [plugin]

    def test_mark_started_does_not_duplicate(self, registry):
        plugin = registry.register(StubPlugin())
        registry.mark_started(plugin)
        registry.mark_started(plugin)
        assert registry.started == [plugin]

    def test_startup_all_follows_initialization_order(
        self, registry, plugin_context, make_plugin, phase_order
    ):
        a, b, c = make_plugin("a"), make_plugin("b"), make_plugin("c")
        for p in (a, b, c):
            registry.register(p)
        c.initialize(plugin_context)
        a.initialize(plugin_context)
        registry.startup_all()
        assert phase_order("startup") == ["c", "a"]
        assert registry.started == [c, a]
        assert b.state is PluginState.REGISTERED

    def test_shutdown_all_reverse_order(
        self, registry, plugin_context, make_plugin, phase_order
    ):
        for name in ("a", "b", "c"):
            registry.register(make_plugin(name)).initialize(plugin_context)
        registry.startup_all()
        registry.shutdown_all()
        assert phase_order("shutdown") == ["c", "b", "a"]

    def test_shutdown_all_keeps_peers_resolvable(self, registry, plugin_context):
        seen = []

        class Peer(Plugin):
            def __init__(self, name, peer):
                self.meta = PluginMeta(name=name, version="1.0")
                self.peer = peer

            def on_shutdown(self):
                seen.append((self.name, registry.find(self.peer) is not None))

        registry.register(Peer("a", "b")).initialize(plugin_context)
        registry.register(Peer("b", "a")).initialize(plugin_context)
        registry.startup_all()
        registry.shutdown_all()
        assert seen == [("b", True), ("a", True)]

    def test_shutdown_all_clears_everything(self, registry, plugin_context, make_plugin):
        registry.register(make_plugin("a")).initialize(plugin_context)
        registry.register(make_plugin("idle"))
        registry.startup_all()
        registry.shutdown_all()
        assert registry.plugins == []
        assert registry.initialized == []
        assert registry.started == []

    def test_shutdown_all_continues_on_error(self, registry, plugin_context):
        class FailStop(Plugin):
            meta = PluginMeta(name="fail_stop", version="1.0.0")

            def on_shutdown(self):
                raise RuntimeError("stop failed")

        stub = StubPlugin()
        # stub starts first, so it stops last (after FailStop raised)
        registry.register(stub).initialize(plugin_context)
        registry.register(FailStop()).initialize(plugin_context)
        registry.startup_all()
        registry.shutdown_all()
        assert stub.stopped is True
        assert registry.plugins == []

    def test_shutdown_all_skips_never_started(self, registry, plugin_context):
        stub = registry.register(StubPlugin())
        stub.initialize(plugin_context)
        registry.shutdown_all()
        assert stub.stopped is False
        assert stub.state is PluginState.INITIALIZED

    def test_clear(self, registry, plugin_context):
        registry.register(StubPlugin()).initialize(plugin_context)
        registry.clear()
        assert registry.plugins == []
        assert registry.initialized == []

    def test_standalone_registry(self):
        registry = PluginRegistry()
        plugin = registry.register(StubPlugin())
        assert registry.get("stub") is plugin
