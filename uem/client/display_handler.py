"""Client-side handler interface and the display handler that routes messages to sinks."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from uem.client.sinks import LoggingSink, Notification, NotificationSink
from uem.errors.types import BlockingLevel, DisplayMode, ErrorConfig

logger = logging.getLogger(__name__)

_KNOWN_MODES = frozenset(m.value for m in DisplayMode)


class ClientErrorHandler(ABC):
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def should_handle(self, code: str, config: Optional[ErrorConfig]) -> bool:
        ...

    @abstractmethod
    def handle(
        self,
        code: str,
        message: str,
        display_mode: str,
        blocking: str,
        context: Mapping[str, Any],
        original_error: Optional[BaseException] = None,
    ) -> None:
        ...


class ErrorDisplayHandler(ClientErrorHandler):
    """Sends the user message to the sink registered for its display mode.

    Unknown modes, missing sinks and failing sinks fall back to the inline
    (``div``) sink.
    """

    def __init__(self, sinks: Optional[Mapping[str, NotificationSink]] = None) -> None:
        self._sinks = dict(sinks or {})
        self._inline: NotificationSink = self._sinks.get(DisplayMode.DIV.value) or LoggingSink()

    def name(self) -> str:
        return "display"

    def should_handle(self, code: str, config: Optional[ErrorConfig]) -> bool:
        mode = (config.display_mode if config is not None else None) or DisplayMode.DIV.value
        return mode != DisplayMode.LOG_ONLY.value

    def sink_for(self, display_mode: str) -> NotificationSink:
        if display_mode not in _KNOWN_MODES:
            logger.warning("ErrorDisplayHandler: unknown display mode %r, using inline display", display_mode)
            return self._inline
        return self._sinks.get(display_mode, self._inline)

    def handle(
        self,
        code: str,
        message: str,
        display_mode: str,
        blocking: str,
        context: Mapping[str, Any],
        original_error: Optional[BaseException] = None,
    ) -> None:
        if display_mode == DisplayMode.LOG_ONLY.value:
            return
        level = {
            BlockingLevel.BLOCKING.value: logging.ERROR,
            BlockingLevel.SEMI_BLOCKING.value: logging.WARNING,
        }.get(blocking, logging.INFO)
        logger.log(
            level,
            "ErrorDisplayHandler: code=%s mode=%s blocking=%s | %s",
            code, display_mode, blocking, message,
            extra={"error_code": code},
        )

        notification = Notification(code=code, message=message, blocking=blocking)
        sink = self.sink_for(display_mode)
        try:
            sink.show(notification)
        except Exception as exc:
            if sink is self._inline:
                raise
            logger.error(
                "ErrorDisplayHandler: %s sink failed for %s (%s), using inline display",
                display_mode, code, exc,
            )
            self._inline.show(notification)
