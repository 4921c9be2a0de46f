"""LogHandler: writes every handled error to the application log."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from uem.core.logger import ERROR_CODE_ATTR, ERROR_CONTEXT_ATTR
from uem.errors.dispatcher import ErrorHandler
from uem.errors.formatter import MessageFormatter
from uem.errors.request import RequestContext
from uem.errors.store import ErrorConfigStore
from uem.errors.types import ErrorConfig

# No NOTICE level in stdlib logging
LOG_LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "notice": logging.INFO,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def log_level_for(store: ErrorConfigStore, config: ErrorConfig) -> int:
    """The type's configured log level, else one derived from the type name."""
    defaults = store.type_defaults(config.type)
    name = defaults.log_level if defaults is not None else config.type
    return LOG_LEVELS.get(name.lower(), logging.ERROR)


class LogHandler(ErrorHandler):
    def __init__(
        self,
        store: ErrorConfigStore,
        formatter: MessageFormatter,
        *,
        logger_name: str = "uem.errors",
    ) -> None:
        self._store = store
        self._formatter = formatter
        self._logger = logging.getLogger(logger_name)

    def name(self) -> str:
        return "log"

    def should_handle(self, config: ErrorConfig) -> bool:
        return True

    async def handle(
        self,
        code: str,
        config: ErrorConfig,
        context: Mapping[str, Any],
        exception: Optional[BaseException] = None,
        *,
        request: Optional[RequestContext] = None,
    ) -> None:
        message = self._formatter.dev_message(code, config, context)
        exc_info = (type(exception), exception, exception.__traceback__) if exception is not None else None
        self._logger.log(
            log_level_for(self._store, config),
            "[%s] %s",
            code, message,
            exc_info=exc_info,
            extra={ERROR_CODE_ATTR: code, ERROR_CONTEXT_ATTR: dict(context)},
        )
