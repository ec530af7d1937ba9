"""Logging configuration helpers."""

from __future__ import annotations

import logging

from .config import LoggingConfig

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Chatty transport loggers, held at WARNING unless network logging is enabled.
NETWORK_LOGGERS = ("aiohttp.access", "aiohttp.client", "paho")


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(settings: LoggingConfig) -> None:
    """Install console (and optional file) handlers on the root logger.

    Existing root handlers are replaced, so calling this twice does not
    duplicate output.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.path is not None:
        settings.path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.path, encoding="utf-8"))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    root.setLevel(_resolve_level(settings.level))
    logging.captureWarnings(True)

    network_level = logging.NOTSET if settings.log_network else logging.WARNING
    for name in NETWORK_LOGGERS:
        logging.getLogger(name).setLevel(network_level)
