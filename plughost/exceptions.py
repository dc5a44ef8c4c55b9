"""Shared exception types for plughost."""


class PlughostError(Exception):
    """Base exception for all plughost errors."""


class ConfigError(PlughostError):
    """Host settings are invalid or missing."""


class OptionParseError(PlughostError):
    """Command-line arguments or config file could not be parsed."""


class PluginError(PlughostError):
    """Plugin lifecycle error."""


class PluginNotFoundError(PluginError):
    """No plugin is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"unable to find plugin: {name}")
        self.name = name


class DuplicateNameError(PluginError):
    """A plugin with the same name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Plugin already registered: {name}")
        self.name = name
