"""Handler interface and the ordered dispatcher."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, List, Mapping, Optional

from uem.errors.types import ErrorConfig

if TYPE_CHECKING:
    from uem.errors.request import RequestContext

logger = logging.getLogger(__name__)


class ErrorHandler(ABC):
    """A pluggable reaction to a resolved error (log, persist, notify, display)."""

    @abstractmethod
    def name(self) -> str:
        """Stable identifier used in dispatch logs."""

    @abstractmethod
    def should_handle(self, config: ErrorConfig) -> bool:
        ...

    @abstractmethod
    async def handle(
        self,
        code: str,
        config: ErrorConfig,
        context: Mapping[str, Any],
        exception: Optional[BaseException] = None,
        *,
        request: Optional["RequestContext"] = None,
    ) -> None:
        ...


class HandlerDispatcher:
    """Append-only, ordered handler list. A failing handler never stops the others."""

    def __init__(self) -> None:
        self._handlers: List[ErrorHandler] = []

    def register(self, handler: ErrorHandler) -> bool:
        """Append *handler* unless this exact instance is already registered."""
        if any(h is handler for h in self._handlers):
            logger.debug("HandlerDispatcher: %s already registered", handler.name())
            return False
        self._handlers.append(handler)
        logger.debug(
            "HandlerDispatcher: registered %s (total=%d)", handler.name(), len(self._handlers)
        )
        return True

    @property
    def handlers(self) -> List[ErrorHandler]:
        return list(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    async def dispatch(
        self,
        code: str,
        config: ErrorConfig,
        context: Mapping[str, Any],
        exception: Optional[BaseException] = None,
        *,
        request: Optional["RequestContext"] = None,
    ) -> int:
        """Run every applicable handler in registration order; return how many ran."""
        dispatched = 0
        for handler in self._handlers:
            name = handler.name()
            try:
                if not handler.should_handle(config):
                    continue
            except Exception as exc:
                logger.error(
                    "HandlerDispatcher: %s.should_handle failed for %s: %s",
                    name, code, exc,
                    exc_info=True,
                    extra={"error_code": code},
                )
                continue
            dispatched += 1
            logger.debug("HandlerDispatcher: dispatching %s for %s", name, code)
            try:
                await handler.handle(code, config, context, exception, request=request)
            except Exception as exc:
                logger.error(
                    "HandlerDispatcher: exception in handler %s for %s: %s",
                    name, code, exc,
                    exc_info=True,
                    extra={"error_code": code},
                )
        logger.info(
            "HandlerDispatcher: dispatched %d handlers for %s (total_registered=%d)",
            dispatched, code, len(self._handlers),
            extra={"error_code": code},
        )
        return dispatched
