"""Tests for the built-in heartbeat plugin."""

from __future__ import annotations

import pytest

from plughost.exceptions import PluginError
from plughost.plugins.base import PluginState
from plughost.plugins.builtin.heartbeat import HeartbeatPlugin


@pytest.fixture
def heartbeat(app):
    return app.register_plugin(HeartbeatPlugin())


class TestHeartbeatPlugin:
    def test_declares_interval_and_quiet(self, app, heartbeat):
        app.set_program_options()
        interval = app.config_options.find("heartbeat.interval")
        assert interval.default == 60.0
        assert app.config_options.find("heartbeat.quiet") is None
        assert app.app_options.find("heartbeat.quiet").switch

    def test_interval_from_cli(self, app, heartbeat, base_argv):
        app.initialize([*base_argv, "--plugin", "heartbeat", "--heartbeat.interval", "0.5"])
        assert heartbeat.interval == 0.5
        assert heartbeat.state is PluginState.INITIALIZED

    def test_interval_from_generated_config(self, app, heartbeat, base_argv, data_dir):
        app.initialize([*base_argv, "--plugin", "heartbeat"])
        assert "heartbeat.interval = 60.0" in (data_dir / "config.ini").read_text()
        assert heartbeat.interval == 60.0

    def test_non_positive_interval_rejected(self, app, heartbeat, base_argv):
        with pytest.raises(PluginError, match="must be positive"):
            app.initialize([*base_argv, "--plugin", "heartbeat", "--heartbeat.interval", "0"])

    def test_beats_while_loop_runs(self, app, heartbeat, base_argv):
        app.initialize(
            [*base_argv, "--plugin", "heartbeat", "--heartbeat.interval", "0.01", "--heartbeat.quiet"]
        )
        app.startup()
        app.loop.call_later(0.2, app.quit)
        app.exec()
        assert heartbeat.beats >= 2
        assert heartbeat.state is PluginState.STOPPED

    def test_not_selected_never_beats(self, app, heartbeat, base_argv):
        app.initialize(base_argv)
        app.startup()
        app.quit()
        app.exec()
        assert heartbeat.beats == 0
        assert heartbeat.state is PluginState.REGISTERED

    def test_startup_hook_without_initialize_rejected(self):
        with pytest.raises(PluginError, match="before it was initialized"):
            HeartbeatPlugin().on_startup()
