"""
Logger setup: attach console and rotating JSON file handlers to the ``uem`` root.
"""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from uem.core.logger.config import LoggerConfig
from uem.core.logger.formatters import JsonFormatter, PlainConsoleFormatter

# Set by configure(); get_logger() configures lazily when still None
_default_config: Optional[LoggerConfig] = None


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def configure(config: Optional[LoggerConfig] = None) -> logging.Logger:
    """
    Configure the root ``uem`` logger. Falls back to LoggerConfig.from_env().
    Safe to call again (e.g. from tests); handlers are replaced, not stacked.
    """
    global _default_config
    if config is None:
        config = LoggerConfig.from_env()
    _default_config = config

    root = logging.getLogger(config.root_name or "uem")
    root.setLevel(_level(config.level))
    root.handlers.clear()

    if config.console:
        root.addHandler(build_console_handler(config.level, style=config.console_style))

    if config.file_rotating and config.log_dir and config.log_dir.strip():
        try:
            root.addHandler(
                build_rotating_file_handler(
                    config.log_dir,
                    basename=config.log_file_basename,
                    max_bytes=config.max_bytes,
                    backup_count=config.backup_count,
                    level=config.level,
                )
            )
        except OSError:
            root.warning("Could not create log dir %s, skipping file handler", config.log_dir)

    root.propagate = False
    return root


def get_logger(name: str, config: Optional[LoggerConfig] = None) -> logging.Logger:
    """
    Return a logger for *name*, configuring the root first if nobody has.
    Use get_logger(__name__) inside ``uem`` so names stay under the root.
    """
    if _default_config is None:
        configure(config)
    return logging.getLogger(name)


def build_rotating_file_handler(
    log_dir: str,
    basename: str = "uem",
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 5,
    level: str = "INFO",
) -> RotatingFileHandler:
    """Rotating file handler with the JSON formatter."""
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        os.path.join(log_dir, f"{basename}.log"),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(_level(level))
    handler.setFormatter(JsonFormatter())
    return handler


def build_console_handler(
    level: str = "INFO",
    *,
    style: str = "plain",
    fmt: Optional[str] = None,
) -> logging.StreamHandler:
    """Console handler; ``style="json"`` emits JSON lines instead of plain text."""
    handler = logging.StreamHandler()
    handler.setLevel(_level(level))
    if style == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(PlainConsoleFormatter(fmt=fmt))
    return handler
