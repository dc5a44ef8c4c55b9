"""Shared fixtures and recording plugins for testing."""

from __future__ import annotations

import os

import pytest

from plughost.core.application import Application
from plughost.core.config import HostSettings
from plughost.plugins.base import Plugin, PluginContext, PluginMeta


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep the project .env file and PLUGHOST_* shell vars out of tests."""
    monkeypatch.setitem(HostSettings.model_config, "env_file", None)
    for key in list(os.environ):
        if key.startswith("PLUGHOST_"):
            monkeypatch.delenv(key, raising=False)


class RecordingPlugin(Plugin):
    """Appends (phase, name) to a shared event list for every hook run."""

    def __init__(
        self,
        name: str,
        events: list[tuple[str, str]],
        *,
        requires: tuple[str, ...] = (),
        pulls: tuple[str, ...] = (),
        cli_options: tuple[str, ...] = (),
        config_options: tuple[str, ...] = (),
    ) -> None:
        self.meta = PluginMeta(name=name, version="1.0.0", requires=requires)
        self.events = events
        self.pulls = pulls
        self.cli_options = cli_options
        self.config_options = config_options
        self.context: PluginContext | None = None

    def declare_options(self, cli, config):
        for option in self.cli_options:
            cli.add(option, f"{option} flag", switch=True)
        for option in self.config_options:
            config.add(option, f"{option} setting", default="x")

    def on_initialize(self, context):
        for dep in self.pulls:
            context.app.get_plugin(dep).initialize(context)
        self.context = context
        self.events.append(("initialize", self.name))

    def on_startup(self):
        self.events.append(("startup", self.name))

    def on_shutdown(self):
        self.events.append(("shutdown", self.name))


@pytest.fixture
def events():
    return []


@pytest.fixture
def make_plugin(events):
    def _make(name: str, **kwargs) -> RecordingPlugin:
        return RecordingPlugin(name, events, **kwargs)

    return _make


@pytest.fixture
def app():
    application = Application()
    yield application
    application.close()


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def base_argv(data_dir):
    return ["--data-dir", str(data_dir)]


@pytest.fixture
def phase_order(events):
    def _order(phase: str) -> list[str]:
        return [name for p, name in events if p == phase]

    return _order
