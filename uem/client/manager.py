"""Client-side ErrorManager: resolves codes against the loaded definitions and dispatches to UI handlers.

Handles two sources of errors:

* ``handle_server_error``: a JSON envelope returned by the server
  (``{error, message, blocking, display_mode}``)
* ``handle_client_error``: a code raised by client code itself

Both initialize the manager on first use, so errors reported before the
definitions are loaded are not dropped.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from uem.client.config_loader import ErrorConfigLoader
from uem.client.context import ClientContext
from uem.client.display_handler import ClientErrorHandler, ErrorDisplayHandler
from uem.client.events import ULTRA_ERROR_EVENT, EventBus
from uem.errors.formatter import hardcoded_fallback, substitute
from uem.errors.types import UNEXPECTED_ERROR, BlockingLevel, DisplayMode, ErrorConfig, ErrorType

logger = logging.getLogger(__name__)

_DISPLAY_MODES = frozenset(m.value for m in DisplayMode)


class ErrorManager:
    def __init__(
        self,
        loader: ErrorConfigLoader,
        context: Optional[ClientContext] = None,
        *,
        events: Optional[EventBus] = None,
    ) -> None:
        self._loader = loader
        self._context = context or ClientContext()
        self._events = events or loader.events
        self._handlers: List[ClientErrorHandler] = []
        self._default_display_mode = DisplayMode.DIV.value
        self._initialized = False
        self._init_task: Optional[asyncio.Task] = None
        self.register_handler(ErrorDisplayHandler(self._context.sinks))

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def handlers(self) -> List[ClientErrorHandler]:
        return list(self._handlers)

    @property
    def default_display_mode(self) -> str:
        return self._default_display_mode

    async def initialize(self, load_config: bool = True, default_display_mode: Optional[str] = None) -> None:
        if self._initialized:
            logger.debug("ClientErrorManager: already initialized")
            return
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize(load_config, default_display_mode))
        task = self._init_task
        try:
            await asyncio.shield(task)
        except Exception:
            # not cached: the next call starts over
            if self._init_task is task:
                self._init_task = None
            raise

    async def _initialize(self, load_config: bool, default_display_mode: Optional[str]) -> None:
        if default_display_mode in _DISPLAY_MODES:
            self._default_display_mode = default_display_mode  # type: ignore[assignment]
        elif default_display_mode is not None:
            logger.warning("ClientErrorManager: ignoring unknown display mode %r", default_display_mode)
        if load_config:
            if self._context.csrf_token and not self._loader.csrf_token:
                self._loader.csrf_token = self._context.csrf_token
            await self._loader.load()
        self._initialized = True
        logger.info("ClientErrorManager: initialized (default_display_mode=%s)", self._default_display_mode)

    def register_handler(self, handler: ClientErrorHandler) -> "ErrorManager":
        if any(h is handler for h in self._handlers):
            return self
        self._handlers.append(handler)
        logger.debug("ClientErrorManager: registered handler %s", handler.name())
        return self

    def user_message(self, code: str, config: ErrorConfig, context: Mapping[str, Any]) -> str:
        ctx = self._context
        message = ctx.direct_translation(code)
        if message is None and config.user_message_key:
            message = ctx.lookup(config.user_message_key)
            if message is None:
                logger.warning(
                    "ClientErrorManager: translation key %s for %s not found", config.user_message_key, code
                )
        if message is None and config.user_message:
            message = config.user_message
        if message is None and config.dev_message:
            if ctx.expose_dev_message:
                logger.warning("ClientErrorManager: showing developer message to user for %s", code)
                message = config.dev_message
            else:
                logger.warning("ClientErrorManager: %s has only a developer message; using generic text", code)
        if message is None:
            message = ctx.generic_message() or hardcoded_fallback(code)
        return substitute(message, context)

    async def handle_server_error(
        self, response: Mapping[str, Any], context: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """Dispatch a server JSON envelope; returns the emitted ``ultraError`` detail."""
        if not self._initialized:
            logger.warning("ClientErrorManager: not initialized in handle_server_error, initializing now")
            await self.initialize()
        ctx = dict(context or {})
        code = str(response.get("error") or UNEXPECTED_ERROR)
        config = self._loader.get_error_config(code)

        display_mode = (
            response.get("display_mode")
            or (config.display_mode if config is not None else None)
            or self._default_display_mode
        )
        blocking = response.get("blocking") or (config.blocking if config is not None else BlockingLevel.NOT.value)
        error_type = config.type if config is not None else ErrorType.ERROR.value
        message = substitute(response.get("message") or f"Server error occurred ({code})", ctx)

        return self._process(code, config, message, display_mode, blocking, error_type, ctx, None)

    async def handle_client_error(
        self,
        code: str,
        context: Optional[Mapping[str, Any]] = None,
        original_error: Optional[BaseException] = None,
    ) -> Dict[str, Any]:
        """Dispatch a client-side code; unknown codes become UNEXPECTED_ERROR."""
        if not self._initialized:
            logger.warning("ClientErrorManager: not initialized in handle_client_error, initializing now")
            await self.initialize()
        ctx = dict(context or {})
        config = self._loader.get_error_config(code)

        if config is None and code != UNEXPECTED_ERROR:
            logger.error("ClientErrorManager: no configuration for %s, falling back to %s", code, UNEXPECTED_ERROR)
            ctx["_originalCode"] = code
            ctx["_originalErrorMsg"] = str(original_error) if original_error is not None else None
            return await self.handle_client_error(UNEXPECTED_ERROR, ctx, original_error)

        if config is None:
            logger.error("ClientErrorManager: %s is not configured either, dispatching generic message", code)
            message = substitute(self._context.generic_message() or hardcoded_fallback(code), ctx)
            return self._process(
                code, None, message, self._default_display_mode, BlockingLevel.NOT.value,
                ErrorType.ERROR.value, ctx, original_error,
            )

        return self._process(
            code,
            config,
            self.user_message(code, config, ctx),
            config.display_mode or self._default_display_mode,
            config.blocking,
            config.type,
            ctx,
            original_error,
        )

    def _process(
        self,
        code: str,
        config: Optional[ErrorConfig],
        message: str,
        display_mode: str,
        blocking: str,
        error_type: str,
        context: Dict[str, Any],
        original_error: Optional[BaseException],
    ) -> Dict[str, Any]:
        handled = 0
        for handler in self._handlers:
            try:
                if handler.should_handle(code, config):
                    handler.handle(code, message, display_mode, blocking, context, original_error)
                    handled += 1
            except Exception as exc:
                logger.error(
                    "ClientErrorManager: handler %s failed for %s: %s",
                    handler.name(), code, exc,
                    exc_info=True,
                )
        if not handled:
            logger.warning("ClientErrorManager: %s was not processed by any handler", code)

        detail = self._dispatch_event(code, message, blocking, context, original_error)
        if blocking == BlockingLevel.BLOCKING.value and error_type == ErrorType.CRITICAL.value:
            self._escalate(detail)
        return detail

    def _dispatch_event(
        self,
        code: str,
        message: str,
        blocking: str,
        context: Dict[str, Any],
        original_error: Optional[BaseException],
    ) -> Dict[str, Any]:
        detail: Dict[str, Any] = {
            "errorCode": code,
            "message": message,
            "blocking": blocking,
            "context": context,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if original_error is not None:
            detail["originalError"] = {"name": type(original_error).__name__, "message": str(original_error)}
        self._events.emit(ULTRA_ERROR_EVENT, detail)
        return detail

    def _escalate(self, detail: Dict[str, Any]) -> None:
        logger.critical(
            "ClientErrorManager: critical blocking error %s: %s",
            detail["errorCode"], detail["message"],
            extra={"error_code": detail["errorCode"]},
        )
        for hook in self._context.escalation_hooks:
            try:
                hook(dict(detail))
            except Exception as exc:
                logger.error("ClientErrorManager: escalation hook failed: %s", exc, exc_info=True)
