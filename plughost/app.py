"""Bootstrap: builds the application with its built-in plugins and logging."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from plughost.core.application import Application
from plughost.core.config import HostSettings, load_settings
from plughost.plugins.builtin.heartbeat import HeartbeatPlugin
from plughost.plugins.builtin.pidfile import PidFilePlugin

if TYPE_CHECKING:
    from plughost.plugins.base import Plugin

logger = structlog.get_logger()


def _json_file_handler(log_file: Path, settings: HostSettings) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=settings.log_max_bytes,
        backupCount=settings.log_backup_count,
    )
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=structlog.processors.JSONRenderer())
    )
    return handler


def _configure_logging(settings: HostSettings, *, log_file: Path | None = None) -> None:
    """Route structlog through stdlib: console always, rotating JSON when *log_file* is set."""
    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=structlog.dev.ConsoleRenderer())
    )
    root_logger.addHandler(console_handler)
    if log_file is not None:
        root_logger.addHandler(_json_file_handler(log_file, settings))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_application(
    settings: HostSettings | None = None,
    plugins: list[Plugin] | None = None,
    *,
    name: str = "plughost",
) -> Application:
    if settings is None:
        settings = load_settings()

    log_file = None
    if settings.log_dir is not None:
        log_dir = settings.log_dir
        if not log_dir.is_absolute():
            log_dir = Path.cwd() / log_dir
        # Named after the host.
        log_file = log_dir / f"{name}.log"
    _configure_logging(settings, log_file=log_file)

    app = Application(name=name)
    app.register_plugin(HeartbeatPlugin())
    app.register_plugin(PidFilePlugin())
    for plugin in plugins or []:
        app.register_plugin(plugin)

    logger.info(
        "application_built",
        plugin_count=len(app.registry.plugins),
        autostart=settings.autostart,
        log_level=settings.log_level,
    )
    return app


def resolve_autostart(app: Application, settings: HostSettings) -> list[Plugin]:
    """Look up the plugins named in ``settings.autostart``."""
    return [app.get_plugin(name) for name in settings.autostart]
