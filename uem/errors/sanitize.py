"""Output-boundary helpers: context redaction, truncation, exception summaries.

The pipeline passes raw context around; anything leaving the process (DB,
email, Slack) goes through ``sanitize_context`` first.
"""
from __future__ import annotations

import traceback
from collections.abc import Mapping, Sequence
from typing import Any, Dict, Iterable, Optional

DEFAULT_SENSITIVE_KEYS = (
    "password",
    "secret",
    "token",
    "auth",
    "key",
    "credentials",
    "authorization",
    "php_auth_user",
    "php_auth_pw",
    "credit_card",
    "cvv",
    "api_key",
)

REDACTED = "[REDACTED]"
TRUNCATED = "...[TRUNCATED]"


def truncate(value: str, max_length: int, marker: str = TRUNCATED) -> str:
    """Cut *value* to at most *max_length* chars (marker included) and drop NUL bytes."""
    value = value.replace("\0", "")
    if len(value) > max_length:
        value = value[: max(0, max_length - len(marker))] + marker
    return value


def sanitize_context(
    context: Optional[Mapping[str, Any]],
    *,
    sensitive_keys: Iterable[str] = DEFAULT_SENSITIVE_KEYS,
    max_string_length: int = 500,
    summarize_collections: bool = False,
) -> Dict[str, Any]:
    """Return a JSON-safe copy of *context* with sensitive keys redacted.

    Keys match case-insensitively and exactly. With ``summarize_collections``
    nested lists/dicts collapse to ``[Array:N items]`` (compact chat payloads).
    """
    keys = frozenset(k.lower() for k in sensitive_keys)
    return {
        str(k): _sanitize_value(str(k), v, keys, max_string_length, summarize_collections)
        for k, v in (context or {}).items()
    }


def _sanitize_value(
    key: str, value: Any, keys: frozenset, max_len: int, summarize: bool
) -> Any:
    if key.lower() in keys:
        return REDACTED
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return truncate(value, max_len)
    if isinstance(value, Mapping):
        if summarize:
            return f"[Array:{len(value)} items]"
        return {
            str(k): _sanitize_value(str(k), v, keys, max_len, summarize) for k, v in value.items()
        }
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        if summarize:
            return f"[Array:{len(value)} items]"
        return [_sanitize_value("", v, keys, max_len, summarize) for v in value]
    return f"[Object:{type(value).__name__}]"


def exception_location(exc: BaseException) -> tuple[Optional[str], Optional[int]]:
    """File and line of the innermost frame of *exc*'s traceback."""
    tb = exc.__traceback__
    if tb is None:
        return None, None
    frames = traceback.extract_tb(tb)
    if not frames:
        return None, None
    last = frames[-1]
    return last.filename, last.lineno


def exception_summary(exc: BaseException) -> Dict[str, Any]:
    filename, lineno = exception_location(exc)
    code = getattr(exc, "code", None)
    return {
        "class": f"{type(exc).__module__}.{type(exc).__qualname__}",
        "message": str(exc),
        "code": code if isinstance(code, (int, str)) else None,
        "file": filename,
        "line": lineno,
    }


def format_trace(exc: BaseException, *, max_lines: Optional[int] = None, max_length: Optional[int] = None) -> str:
    """Formatted traceback, optionally cut to *max_lines* lines and/or *max_length* chars."""
    text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)).rstrip()
    if max_lines is not None:
        lines = text.splitlines()
        if len(lines) > max_lines:
            text = "\n".join(lines[:max_lines]) + f"\n[... Trace Truncated to {max_lines} lines ...]"
    if max_length is not None:
        text = truncate(text, max_length)
    return text
