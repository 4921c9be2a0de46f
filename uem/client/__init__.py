"""
Client mirror of the error pipeline.

Loads the error definitions from ``GET /api/error-definitions`` and resolves,
formats and displays errors without a round trip::

    loader = ErrorConfigLoader("https://app.example.com", csrf_token=token)
    manager = ErrorManager(loader, ClientContext(translations=catalogue))
    await manager.initialize()
    await manager.handle_server_error(response.json())
"""
from uem.client.config_loader import FALLBACK_DEFINITIONS, ErrorConfigLoader
from uem.client.context import ClientContext
from uem.client.display_handler import ClientErrorHandler, ErrorDisplayHandler
from uem.client.events import CONFIG_LOADED_EVENT, ULTRA_ERROR_EVENT, EventBus
from uem.client.manager import ErrorManager
from uem.client.sinks import (
    InlineSink,
    LoggingSink,
    ModalSink,
    Notification,
    NotificationSink,
    ToastSink,
)

__all__ = [
    "ErrorConfigLoader",
    "FALLBACK_DEFINITIONS",
    "ClientContext",
    "ClientErrorHandler",
    "ErrorDisplayHandler",
    "EventBus",
    "CONFIG_LOADED_EVENT",
    "ULTRA_ERROR_EVENT",
    "ErrorManager",
    "Notification",
    "NotificationSink",
    "LoggingSink",
    "ModalSink",
    "ToastSink",
    "InlineSink",
]
