"""
Logger configuration for the error manager. Build in code or from env.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

_CONSOLE_STYLES = frozenset({"plain", "json"})


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class LoggerConfig:
    """
    Configuration for the ``uem`` logger tree.

    Use LoggerConfig.from_env() for env-based config, or build explicitly.
    """

    # Level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    level: str = "INFO"
    # Log directory for rotating file (if None, file handler is skipped)
    log_dir: Optional[str] = None
    # Basename for log file (e.g. "uem" -> uem.log)
    log_file_basename: str = "uem"
    # Max bytes per file before rotation
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 5
    # Root logger name; every module logger lives below it
    root_name: str = "uem"
    console: bool = True
    file_rotating: bool = True
    # "plain" for humans, "json" when the console is shipped to an aggregator
    console_style: str = "plain"

    def __post_init__(self) -> None:
        if self.console_style not in _CONSOLE_STYLES:
            raise ValueError(
                f"console_style must be one of {sorted(_CONSOLE_STYLES)}, got {self.console_style!r}"
            )

    @classmethod
    def from_env(cls) -> "LoggerConfig":
        """
        Build config from environment variables.

        Env:
            LOG_LEVEL, LOG_DIR, LOG_FILE_BASENAME, LOG_MAX_BYTES, LOG_BACKUP_COUNT,
            LOG_ROOT_NAME, LOG_CONSOLE, LOG_FILE_ROTATING, LOG_CONSOLE_STYLE
        """
        return cls(
            level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            log_dir=os.environ.get("LOG_DIR") or None,
            log_file_basename=os.environ.get("LOG_FILE_BASENAME", "uem"),
            max_bytes=int(os.environ.get("LOG_MAX_BYTES", "5242880")),
            backup_count=int(os.environ.get("LOG_BACKUP_COUNT", "5")),
            root_name=os.environ.get("LOG_ROOT_NAME", "uem"),
            console=_env_flag("LOG_CONSOLE", "true"),
            file_rotating=_env_flag("LOG_FILE_ROTATING", "true"),
            console_style=os.environ.get("LOG_CONSOLE_STYLE", "plain").strip().lower(),
        )

    def with_overrides(self, **overrides: object) -> "LoggerConfig":
        """Return a new config with the given non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)
