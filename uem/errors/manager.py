"""ErrorManager: the server-side entry point of the error pipeline.

    resolve (policy) -> prepare ErrorInfo (messages) -> dispatch (side effects) -> build (shape)

One instance is built at startup (see uem.api.main) and shared through
``app.state``; handlers are registered on it once.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from fastapi.responses import JSONResponse

from uem.config.settings import ErrorManagerSettings
from uem.errors.builder import ResponseBuilder
from uem.errors.dispatcher import ErrorHandler, HandlerDispatcher
from uem.errors.formatter import MessageFormatter
from uem.errors.request import RequestContext
from uem.errors.resolver import ConfigResolver
from uem.errors.sanitize import exception_summary
from uem.errors.store import ErrorConfigStore
from uem.errors.translations import DictTranslator, Translator
from uem.errors.types import ErrorConfig, ErrorInfo, ResolvedError

logger = logging.getLogger(__name__)


class ErrorManager:
    def __init__(
        self,
        store: ErrorConfigStore,
        *,
        translator: Optional[Translator] = None,
        settings: Optional[ErrorManagerSettings] = None,
        builder: Optional[ResponseBuilder] = None,
    ) -> None:
        self.settings = settings or ErrorManagerSettings()
        self.translator = translator or DictTranslator()
        self.resolver = ConfigResolver(store)
        self.formatter = MessageFormatter(self.translator, self.settings.ui)
        self.builder = builder or ResponseBuilder(store)
        self.dispatcher = HandlerDispatcher()
        logger.info("ErrorManager: initialised (env=%s, codes=%d)", self.settings.environment, len(store.errors))

    @property
    def store(self) -> ErrorConfigStore:
        return self.resolver.store

    @property
    def handlers(self) -> list[ErrorHandler]:
        return self.dispatcher.handlers

    def register_handler(self, handler: ErrorHandler) -> "ErrorManager":
        self.dispatcher.register(handler)
        return self

    def define_error(self, code: str, config: Union[ErrorConfig, Mapping[str, Any]]) -> "ErrorManager":
        self.resolver.define_error(code, config)
        return self

    def get_error_config(self, code: str) -> Optional[ErrorConfig]:
        return self.resolver.get_error_config(code)

    def has_error(self, code: str) -> bool:
        return self.resolver.has(code)

    def error_codes(self, type: Optional[str] = None) -> list[str]:
        """Static and runtime-defined codes, optionally of one severity type."""
        candidates = self.store.codes()
        candidates += [code for code in self.resolver.runtime_codes() if code not in self.store]
        if type is None:
            return candidates
        codes = []
        for code in candidates:
            cfg = self.resolver.get_error_config(code)
            if cfg is not None and cfg.type == type:
                codes.append(code)
        return codes

    def definitions_payload(self) -> dict[str, Any]:
        """``{errors, types, blocking_levels}`` for the client config loader, runtime codes included."""
        payload = self.store.to_payload()
        for code in self.resolver.runtime_codes():
            cfg = self.resolver.get_error_config(code)
            if cfg is not None:
                payload["errors"][code] = cfg.to_dict()
        return payload

    def prepare_error_info(
        self, resolved: ResolvedError, exception: Optional[BaseException] = None
    ) -> ErrorInfo:
        cfg = resolved.config
        info = ErrorInfo(
            error_code=resolved.code,
            type=cfg.type,
            blocking=cfg.blocking,
            message=self.formatter.dev_message(resolved.code, cfg, resolved.context),
            user_message=self.formatter.user_message(resolved.code, cfg, resolved.context),
            http_status_code=self.store.http_status_for(cfg),
            context=resolved.context,
            display_mode=cfg.display_mode or self.settings.ui.default_display_mode,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        if exception is not None:
            info.exception = exception_summary(exception)
        return info

    async def handle(
        self,
        code: str,
        context: Optional[Mapping[str, Any]] = None,
        exception: Optional[BaseException] = None,
        *,
        throw: bool = False,
        request: Optional[RequestContext] = None,
    ) -> Optional[JSONResponse]:
        """Run the full pipeline for *code*.

        Returns a JSONResponse for JSON/API requests, None for non-blocking
        HTML errors (message flashed), and raises UltraErrorException for
        blocking HTML errors or when *throw* is set. A missing fallback
        configuration raises FATAL_FALLBACK_FAILURE and is never swallowed.
        """
        logger.info(
            "ErrorManager: handling %s (context_keys=%s, has_exception=%s, throw=%s)",
            code, sorted((context or {}).keys()), exception is not None, throw,
            extra={"error_code": code},
        )
        resolved = self.resolver.resolve(code, context, exception)
        info = self.prepare_error_info(resolved, exception)
        await self.dispatcher.dispatch(
            resolved.code, resolved.config, resolved.context, exception, request=request
        )
        return self.builder.build(info, request, force_throw=throw, exception=exception)
