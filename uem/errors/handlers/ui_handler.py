"""UserInterfaceHandler: flashes the user-facing message onto the request for the view layer."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from uem.config.settings import UiSettings
from uem.errors.dispatcher import ErrorHandler
from uem.errors.formatter import MessageFormatter
from uem.errors.request import RequestContext
from uem.errors.types import DisplayMode, ErrorConfig

logger = logging.getLogger(__name__)


class UserInterfaceHandler(ErrorHandler):
    def __init__(self, formatter: MessageFormatter, ui: Optional[UiSettings] = None) -> None:
        self._formatter = formatter
        self._ui = ui or UiSettings()

    def name(self) -> str:
        return "ui"

    def display_target(self, config: ErrorConfig) -> str:
        return config.display_mode or self._ui.default_display_mode

    def should_handle(self, config: ErrorConfig) -> bool:
        if self.display_target(config) == DisplayMode.LOG_ONLY.value:
            return False
        return bool(config.user_message or config.user_message_key)

    async def handle(
        self,
        code: str,
        config: ErrorConfig,
        context: Mapping[str, Any],
        exception: Optional[BaseException] = None,
        *,
        request: Optional[RequestContext] = None,
    ) -> None:
        if request is None:
            logger.debug("UserInterfaceHandler: no request for %s, nothing to flash", code)
            return
        target = self.display_target(config)
        message = self._formatter.user_message(code, config, context)

        request.flash(f"error_{target}", message)
        if self._ui.show_error_codes:
            request.flash(f"error_code_{target}", code)
        request.flash(
            "error_info",
            {
                "error_code": code,
                "message": message,
                "type": config.type,
                "blocking": config.blocking,
                "display_target": target,
            },
        )
