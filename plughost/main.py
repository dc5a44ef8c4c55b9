"""CLI entry point for plughost."""

from __future__ import annotations

import sys
from collections.abc import Sequence

import structlog

from plughost.app import build_application, resolve_autostart
from plughost.core.config import load_settings
from plughost.exceptions import ConfigError, PlughostError

logger = structlog.get_logger()


def main(argv: Sequence[str] | None = None) -> int:
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    app = build_application(settings)
    try:
        autostart = resolve_autostart(app, settings)
        proceed = app.initialize(argv, autostart=autostart)
        if proceed:
            app.startup()
    except PlughostError as e:
        logger.error("bootstrap_failed", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        app.shutdown()
        app.close()
        return 1

    if not proceed:
        app.close()
        return 0

    app.exec()
    return 0


def run() -> None:
    sys.exit(main())
