"""
Project logger: rotating JSON file + console.

Usage:
    from uem.core.logger import configure, get_logger, LoggerConfig

    configure(LoggerConfig(level="DEBUG", log_dir="/var/log/uem"))
    configure()  # or from env: LOG_LEVEL, LOG_DIR, LOG_CONSOLE_STYLE, ...

    logger = get_logger(__name__)
    logger.error("[%s] %s", code, message, extra={"error_code": code, "error_context": ctx})
"""
from uem.core.logger.config import LoggerConfig
from uem.core.logger.formatters import (
    ERROR_CODE_ATTR,
    ERROR_CONTEXT_ATTR,
    JsonFormatter,
    PlainConsoleFormatter,
)
from uem.core.logger.setup import (
    build_console_handler,
    build_rotating_file_handler,
    configure,
    get_logger,
)

__all__ = [
    "LoggerConfig",
    "JsonFormatter",
    "PlainConsoleFormatter",
    "ERROR_CODE_ATTR",
    "ERROR_CONTEXT_ATTR",
    "configure",
    "get_logger",
    "build_rotating_file_handler",
    "build_console_handler",
]
