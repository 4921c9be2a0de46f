"""DatabaseLogHandler: persists each handled error as an ``error_logs`` row."""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from uem.config.settings import DatabaseLogSettings
from uem.errors.dispatcher import ErrorHandler
from uem.errors.formatter import MessageFormatter
from uem.errors.request import RequestContext
from uem.errors.sanitize import exception_summary, format_trace, sanitize_context, truncate
from uem.errors.store import ErrorConfigStore
from uem.errors.types import ErrorConfig
from uem.infra.database.repositories.error_log import ErrorLogRepository

logger = logging.getLogger(__name__)

_REQUEST_FIELDS = ("request_method", "request_url", "user_agent", "ip_address", "user_id")


class DatabaseLogHandler(ErrorHandler):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store: ErrorConfigStore,
        formatter: MessageFormatter,
        settings: Optional[DatabaseLogSettings] = None,
    ) -> None:
        self._session_factory = session_factory
        self._store = store
        self._formatter = formatter
        self._settings = settings or DatabaseLogSettings()

    def name(self) -> str:
        return "database"

    def should_handle(self, config: ErrorConfig) -> bool:
        return self._settings.enabled

    def build_record(
        self,
        code: str,
        config: ErrorConfig,
        context: Mapping[str, Any],
        exception: Optional[BaseException] = None,
        request: Optional[RequestContext] = None,
    ) -> Dict[str, Any]:
        """Column values for one ErrorLog row."""
        meta: Dict[str, Any] = dict(request.metadata()) if request is not None else {}
        for field in _REQUEST_FIELDS:
            if context.get(field) is not None:
                meta[field] = context[field]

        record: Dict[str, Any] = {
            "error_code": code,
            "error_type": config.type,
            "error_level": config.blocking,
            "error_message": self._formatter.dev_message(code, config, context),
            "user_message": self._formatter.user_message(code, config, context),
            "http_status_code": self._store.http_status_for(config),
            "display_method": config.display_mode,
            "context": sanitize_context(context),
            "request_method": _short(meta.get("request_method"), 10),
            "request_url": meta.get("request_url"),
            "user_agent": meta.get("user_agent"),
            "ip_address": _short(meta.get("ip_address"), 45),
            "user_id": _short(meta.get("user_id"), 64),
        }
        if exception is not None:
            summary = exception_summary(exception)
            record.update(
                exception_class=_short(summary["class"], 255),
                exception_message=summary["message"],
                exception_file=_short(summary["file"], 500),
                exception_line=summary["line"],
            )
            if self._settings.include_trace:
                record["exception_trace"] = format_trace(
                    exception, max_length=self._settings.max_trace_length
                )
        return record

    async def handle(
        self,
        code: str,
        config: ErrorConfig,
        context: Mapping[str, Any],
        exception: Optional[BaseException] = None,
        *,
        request: Optional[RequestContext] = None,
    ) -> None:
        try:
            record = self.build_record(code, config, context, exception, request)
            async with self._session_factory() as session:
                row = await ErrorLogRepository(session).create(record)
                await session.commit()
            logger.debug("DatabaseLogHandler: stored %s as %s", code, row.id)
        except Exception as exc:
            logger.error(
                "DatabaseLogHandler: failed to store %s: %s",
                code, exc,
                exc_info=True,
                extra={"error_code": code},
            )


def _short(value: Any, max_length: int) -> Optional[str]:
    if value is None:
        return None
    return truncate(str(value), max_length, marker="")
