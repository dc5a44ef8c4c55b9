"""Config file generation and parsing.

The format is line oriented: ``#`` comments, ``key = value`` assignments and
blank separator lines. A generated file carries one comment plus assignment
block per option and parses back to the declared defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from plughost.exceptions import OptionParseError

if TYPE_CHECKING:
    from plughost.core.options import OptionSchema, OptionSpec

logger = structlog.get_logger()


def _render(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def render_default(spec: OptionSpec) -> list[str]:
    """Return the right-hand sides to write for *spec*, one per assignment line."""
    if not spec.has_default:
        return ["false" if spec.switch else ""]
    if spec.composing and isinstance(spec.default, (list, tuple)):
        return [_render(item) for item in spec.default] or [""]
    return [_render(spec.default)]


def format_default_config(schema: OptionSchema) -> str:
    lines: list[str] = []
    for spec in schema:
        if spec.description:
            lines.append(f"# {spec.description}")
        for value in render_default(spec):
            lines.append(f"{spec.name} = {value}")
        lines.append("")
    return "\n".join(lines) + "\n" if lines else ""


def write_default_config(path: Path, schema: OptionSchema) -> None:
    """Create *path* holding every option of *schema* at its default.

    Refuses to touch a file that already exists.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "x", encoding="utf-8", newline="\n") as out:
        out.write(format_default_config(schema))
    logger.info("config_written", path=str(path), option_count=len(schema))


def parse_config_text(
    text: str, schema: OptionSchema, *, source: str = "<config>"
) -> dict[str, Any]:
    """Parse config *text*, returning only the options that carry a value.

    Unknown keys are skipped. Empty values leave the option unset.
    """
    values: dict[str, Any] = {}
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, raw_value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            raise OptionParseError(
                f"{source}:{lineno}: expected 'key = value', got {raw_line!r}"
            )
        spec = schema.find(key)
        if spec is None:
            logger.debug("config_key_unrecognized", key=key, path=source)
            continue
        raw_value = raw_value.strip()
        if not raw_value:
            continue
        try:
            value = spec.convert(raw_value)
        except (TypeError, ValueError) as e:
            raise OptionParseError(
                f"{source}:{lineno}: invalid value for {key}: {e}"
            ) from e
        if spec.composing:
            values.setdefault(key, []).append(value)
        elif key in values:
            raise OptionParseError(
                f"{source}:{lineno}: option {key} specified more than once"
            )
        else:
            values[key] = value
    return values


def parse_config_file(path: Path, schema: OptionSchema) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise OptionParseError(f"cannot read config file {path}: {e}") from e
    values = parse_config_text(text, schema, source=str(path))
    logger.debug("config_parsed", path=str(path), keys=sorted(values))
    return values
