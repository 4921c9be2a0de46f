"""Notification sinks: where the client display handler sends a user message.

``ModalSink`` and ``ToastSink`` wrap whatever widget the embedding UI
provides; ``InlineSink`` keeps an in-memory status line plus entry list;
``LoggingSink`` only logs and is used when nothing else is configured.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol

from uem.errors.types import BlockingLevel

logger = logging.getLogger(__name__)


def severity_for(blocking: str) -> str:
    """Icon/toast type for a blocking level: error, warning or info."""
    if blocking == BlockingLevel.BLOCKING.value:
        return "error"
    if blocking == BlockingLevel.SEMI_BLOCKING.value:
        return "warning"
    return "info"


@dataclass(frozen=True)
class Notification:
    code: str
    message: str
    blocking: str
    title: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def severity(self) -> str:
        return severity_for(self.blocking)

    @property
    def dismissible(self) -> bool:
        return self.blocking != BlockingLevel.BLOCKING.value


class NotificationSink(Protocol):
    def show(self, notification: Notification) -> None:
        ...


class LoggingSink:
    _LEVELS = {"error": logging.ERROR, "warning": logging.WARNING, "info": logging.INFO}

    def show(self, notification: Notification) -> None:
        logger.log(
            self._LEVELS[notification.severity],
            "LoggingSink: [%s] %s (blocking=%s)",
            notification.code, notification.message, notification.blocking,
        )


class ModalSink:
    """Blocking errors cannot be dismissed by clicking outside the modal."""

    def __init__(
        self,
        present: Callable[..., None],
        *,
        default_titles: Optional[dict] = None,
        button_text: str = "OK",
    ) -> None:
        self._present = present
        self._titles = default_titles or {"error": "Error", "warning": "Warning", "info": "Notification"}
        self._button_text = button_text

    def show(self, notification: Notification) -> None:
        self._present(
            title=notification.title or self._titles.get(notification.severity, "Notification"),
            text=notification.message,
            icon=notification.severity,
            confirm_button_text=self._button_text,
            allow_outside_click=notification.dismissible,
        )


class ToastSink:
    BLOCKING_TIMEOUT_MS = 6000
    DEFAULT_TIMEOUT_MS = 4000

    def __init__(self, show_toast: Callable[..., None]) -> None:
        self._show_toast = show_toast

    def show(self, notification: Notification) -> None:
        timeout = self.DEFAULT_TIMEOUT_MS if notification.dismissible else self.BLOCKING_TIMEOUT_MS
        self._show_toast(notification.message, notification.severity, timeout_ms=timeout)


class InlineSink:
    def __init__(self, max_entries: int = 50) -> None:
        self.status: Optional[Notification] = None
        self.entries: List[Notification] = []
        self._max_entries = max_entries

    def show(self, notification: Notification) -> None:
        self.status = notification
        self.entries.append(notification)
        if len(self.entries) > self._max_entries:
            del self.entries[0]

    def clear(self) -> None:
        self.status = None
        self.entries.clear()
