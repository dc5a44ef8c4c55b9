"""Option schemas, aggregation across plugins, and command-line parsing."""

from __future__ import annotations

import argparse
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, NoReturn

import structlog
from pydantic import BaseModel, ConfigDict

from plughost.exceptions import OptionParseError

if TYPE_CHECKING:
    from plughost.plugins.base import Plugin

logger = structlog.get_logger()

ValueSource = Literal["cli", "file", "default"]

_MISSING: Any = object()
_TRUE_WORDS = frozenset({"true", "yes", "on", "1"})
_FALSE_WORDS = frozenset({"false", "no", "off", "0"})


def parse_switch(raw: str) -> bool:
    word = raw.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"not a boolean value: {raw!r}")


class OptionSpec(BaseModel):
    """One declared option. ``default`` counts only when passed explicitly."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    description: str = ""
    default: Any = None
    switch: bool = False
    short: str | None = None
    composing: bool = False
    value_type: Callable[[str], Any] = str

    @property
    def has_default(self) -> bool:
        return "default" in self.model_fields_set

    def convert(self, raw: str) -> Any:
        if self.switch:
            return parse_switch(raw)
        return self.value_type(raw)


class OptionSchema:
    """Ordered, captioned collection of option entries.

    Merging another schema appends its sections after the existing ones.
    Names are not deduplicated: a repeated name is kept alongside the
    earlier entry so both stay visible in help and generated config files.
    """

    def __init__(self, caption: str = "") -> None:
        self.caption = caption
        self._own: list[OptionSpec] = []
        self._merged: list[tuple[str, list[OptionSpec]]] = []

    def add(
        self,
        name: str,
        description: str = "",
        *,
        default: Any = _MISSING,
        switch: bool = False,
        short: str | None = None,
        composing: bool = False,
        value_type: Callable[[str], Any] = str,
    ) -> OptionSchema:
        fields: dict[str, Any] = {
            "name": name,
            "description": description,
            "switch": switch,
            "short": short,
            "composing": composing,
            "value_type": value_type,
        }
        if default is not _MISSING:
            fields["default"] = default
        self._own.append(OptionSpec(**fields))
        return self

    def merge(self, other: OptionSchema) -> OptionSchema:
        for caption, specs in other.sections:
            for spec in specs:
                if spec.name in self:
                    logger.warning("option_duplicate", name=spec.name, section=caption)
            self._merged.append((caption, list(specs)))
        return self

    @property
    def sections(self) -> list[tuple[str, list[OptionSpec]]]:
        own = [(self.caption, list(self._own))] if self._own else []
        return own + [(caption, list(specs)) for caption, specs in self._merged]

    @property
    def options(self) -> list[OptionSpec]:
        return [spec for _, specs in self.sections for spec in specs]

    def find(self, name: str) -> OptionSpec | None:
        for spec in self:
            if spec.name == name:
                return spec
        return None

    def __iter__(self) -> Iterator[OptionSpec]:
        return iter(self.options)

    def __len__(self) -> int:
        return len(self.options)

    def __contains__(self, name: object) -> bool:
        return any(spec.name == name for spec in self)


class OptionValues(Mapping[str, Any]):
    """Parsed option values, remembering where each one came from."""

    def __init__(
        self,
        values: Mapping[str, Any] | None = None,
        sources: Mapping[str, ValueSource] | None = None,
    ) -> None:
        self._values = dict(values or {})
        self._sources = dict(sources or {})

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def source(self, name: str) -> ValueSource | None:
        return self._sources.get(name)

    def is_set(self, name: str) -> bool:
        """True when the value was given explicitly rather than defaulted."""
        return self._sources.get(name) in ("cli", "file")

    def __repr__(self) -> str:
        return f"OptionValues({self._values!r})"


def aggregate_options(plugins: Iterable[Plugin]) -> tuple[OptionSchema, OptionSchema]:
    """Collect every plugin's declarations into (combined, config-only) schemas.

    Plugins are visited in the given order and the application's own options
    are appended last, so the result is reproducible run to run.
    """
    app_options = OptionSchema("Application Options")
    cfg_options = OptionSchema("Config Options")

    for plugin in plugins:
        plugin_cli = OptionSchema(f"Command Line Options for {plugin.name}")
        plugin_cfg = OptionSchema(f"Config Options for {plugin.name}")
        plugin.declare_options(plugin_cli, plugin_cfg)
        if len(plugin_cfg):
            app_options.merge(plugin_cfg)
            cfg_options.merge(plugin_cfg)
        if len(plugin_cli):
            app_options.merge(plugin_cli)

    app_cfg = OptionSchema("Application Config Options")
    app_cfg.add(
        "plugin",
        "Plugin(s) to enable, may be specified multiple times",
        composing=True,
    )

    app_cli = OptionSchema("Application Command Line Options")
    app_cli.add("help", "Print this help message and exit.", switch=True, short="h")
    app_cli.add("version", "Print version information.", switch=True, short="v")
    app_cli.add(
        "data-dir",
        "Directory containing configuration file config.ini",
        default=Path("data-dir"),
        short="d",
        value_type=Path,
    )
    app_cli.add(
        "config",
        "Configuration file name relative to data-dir",
        default=Path("config.ini"),
        short="c",
        value_type=Path,
    )

    cfg_options.merge(app_cfg)
    app_options.merge(app_cfg)
    app_options.merge(app_cli)
    return app_options, cfg_options


class _OptionParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise OptionParseError(message)


def _help_text(spec: OptionSpec) -> str:
    text = spec.description
    if spec.has_default:
        text = f"{text} (default: {spec.default})" if text else f"default: {spec.default}"
    return text.replace("%", "%%")


def build_parser(schema: OptionSchema, prog: str | None = None) -> argparse.ArgumentParser:
    # Only explicitly given arguments land in the namespace; defaults are
    # applied later by merge_option_values.
    parser = _OptionParser(
        prog=prog,
        add_help=False,
        allow_abbrev=False,
        argument_default=argparse.SUPPRESS,
    )
    seen: set[str] = set()
    for caption, specs in schema.sections:
        group = parser.add_argument_group(caption or None)
        for spec in specs:
            # First declaration of a name governs parsing.
            if spec.name in seen:
                continue
            seen.add(spec.name)
            flags = [f"--{spec.name}"]
            if spec.short:
                flags.insert(0, f"-{spec.short}")
            kwargs: dict[str, Any] = {"dest": spec.name, "help": _help_text(spec)}
            if spec.switch:
                kwargs["action"] = "store_true"
            else:
                kwargs["type"] = spec.value_type
                kwargs["metavar"] = "ARG"
                if spec.composing:
                    kwargs["action"] = "append"
            group.add_argument(*flags, **kwargs)
    return parser


def format_help(schema: OptionSchema, prog: str | None = None) -> str:
    return build_parser(schema, prog).format_help()


def parse_command_line(
    schema: OptionSchema, argv: Sequence[str], prog: str | None = None
) -> dict[str, Any]:
    """Parse *argv* against *schema*, returning only the options actually given."""
    namespace = build_parser(schema, prog).parse_args(list(argv))
    return vars(namespace)


def merge_option_values(
    schema: OptionSchema,
    cli_values: Mapping[str, Any],
    file_values: Mapping[str, Any],
) -> OptionValues:
    """Combine command-line and config-file values over the schema defaults.

    Scalar options: command line beats config file beats default. Composing
    options accumulate, command-line occurrences first.
    """
    values: dict[str, Any] = {}
    sources: dict[str, ValueSource] = {}
    for spec in schema:
        name = spec.name
        if name in values:
            continue
        in_cli = name in cli_values
        in_file = name in file_values
        if spec.composing and (in_cli or in_file):
            values[name] = [*cli_values.get(name, []), *file_values.get(name, [])]
            sources[name] = "cli" if in_cli else "file"
        elif in_cli:
            values[name] = cli_values[name]
            sources[name] = "cli"
        elif in_file:
            values[name] = file_values[name]
            sources[name] = "file"
        elif spec.has_default:
            values[name] = spec.default
            sources[name] = "default"
        elif spec.switch:
            values[name] = False
            sources[name] = "default"
    return OptionValues(values, sources)
