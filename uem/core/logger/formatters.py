"""
Formatters: JSON lines for files and aggregators, plain text for the console.

Records written on behalf of a handled error carry ``error_code`` and
``error_context`` attributes (passed through ``extra=``); both formatters
surface them.
"""
from __future__ import annotations

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

ERROR_CODE_ATTR = "error_code"
ERROR_CONTEXT_ATTR = "error_context"


def _utc_iso(created: float) -> str:
    return datetime.fromtimestamp(created, tz=timezone.utc).isoformat()


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with the error code and context when present."""

    def __init__(self, *, include_context: bool = True) -> None:
        super().__init__()
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "timestamp": _utc_iso(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        code = getattr(record, ERROR_CODE_ATTR, None)
        if code:
            log_dict[ERROR_CODE_ATTR] = code
        context = getattr(record, ERROR_CONTEXT_ATTR, None)
        if self.include_context and context:
            log_dict["context"] = context
        if record.exc_info:
            log_dict["exception"] = "".join(
                traceback.format_exception(*record.exc_info)
            ).strip()
        if record.pathname:
            log_dict["pathname"] = record.pathname
        if record.lineno:
            log_dict["lineno"] = record.lineno
        return json.dumps(log_dict, default=str, ensure_ascii=False)


class PlainConsoleFormatter(logging.Formatter):
    """Human-readable format for the console; prefixes the error code when set."""

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
    ) -> None:
        if fmt is None:
            fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        if datefmt is None:
            datefmt = "%Y-%m-%d %H:%M:%S"
        super().__init__(fmt=fmt, datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        code = getattr(record, ERROR_CODE_ATTR, None)
        if code and f"[{code}]" not in line:
            line = f"{line} [{code}]"
        return line
