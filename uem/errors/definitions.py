"""Static error definitions shipped with uem.

Applications extend these by passing their own mappings to
``build_store(errors=...)`` or by calling ``ErrorManager.define_error`` at
runtime. Messages reference keys of ``uem.errors.translations``.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from uem.errors.store import ErrorConfigStore

DEFAULT_ERROR_TYPES: Dict[str, Dict[str, Any]] = {
    "critical": {"log_level": "critical", "notify_team": True, "http_status": 500},
    "error": {"log_level": "error", "notify_team": False, "http_status": 400},
    "warning": {"log_level": "warning", "notify_team": False, "http_status": 400},
    "notice": {"log_level": "notice", "notify_team": False, "http_status": 200},
}

DEFAULT_BLOCKING_LEVELS: Dict[str, Dict[str, Any]] = {
    "blocking": {"terminate_request": True, "clear_session": False},
    "semi-blocking": {"terminate_request": False, "flash_session": True},
    "not": {"terminate_request": False, "flash_session": True},
}


def _entry(
    kind: str,
    blocking: str,
    status: int,
    key: str,
    *,
    display: str = "div",
    email: bool = False,
    slack: bool = False,
    **extra: Any,
) -> Dict[str, Any]:
    return {
        "type": kind,
        "blocking": blocking,
        "http_status_code": status,
        "msg_to": display,
        "devTeam_email_need": email,
        "notify_slack": slack,
        "dev_message_key": f"errors.dev.{key}",
        "user_message_key": f"errors.user.{key}",
        **extra,
    }


DEFAULT_ERRORS: Dict[str, Dict[str, Any]] = {
    # Pipeline fallbacks
    "UNDEFINED_ERROR_CODE": _entry(
        "critical", "blocking", 500, "undefined_error_code", display="sweet-alert", email=True, slack=True
    ),
    "FATAL_FALLBACK_FAILURE": _entry(
        "critical", "blocking", 500, "fatal_fallback_failure", display="sweet-alert", email=True, slack=True
    ),
    "UNEXPECTED_ERROR": _entry(
        "critical", "semi-blocking", 500, "unexpected_error", display="sweet-alert", email=True, slack=True
    ),
    "GENERIC_SERVER_ERROR": _entry("critical", "blocking", 500, "generic_server_error", email=True),
    "JSON_ERROR": _entry("error", "semi-blocking", 400, "json_error"),
    "NETWORK_ERROR": _entry("error", "semi-blocking", 503, "network_error", display="sweet-alert"),
    # HTTP layer (used by the error-handling middleware)
    "VALIDATION_ERROR": _entry("warning", "semi-blocking", 422, "validation_error"),
    "INVALID_INPUT": _entry("warning", "semi-blocking", 400, "invalid_input"),
    "AUTHENTICATION_ERROR": _entry("error", "blocking", 401, "authentication_error"),
    "AUTHORIZATION_ERROR": _entry("error", "blocking", 403, "authorization_error"),
    "CSRF_TOKEN_MISMATCH": _entry("error", "blocking", 419, "csrf_token_mismatch", display="sweet-alert"),
    "ROUTE_NOT_FOUND": _entry("error", "blocking", 404, "route_not_found"),
    "METHOD_NOT_ALLOWED": _entry("error", "blocking", 405, "method_not_allowed"),
    "TOO_MANY_REQUESTS": _entry("warning", "semi-blocking", 429, "too_many_requests", display="toast"),
    "DATABASE_ERROR": _entry("critical", "blocking", 500, "database_error", email=True, slack=True),
    "RECORD_NOT_FOUND": _entry("error", "blocking", 404, "record_not_found"),
    # Examples for file workflows; applications usually supply their own
    "FILE_NOT_FOUND": _entry("error", "semi-blocking", 404, "file_not_found"),
    "VIRUS_FOUND": _entry("error", "blocking", 422, "virus_found", display="sweet-alert"),
    "SCAN_ERROR": _entry(
        "warning", "semi-blocking", 500, "scan_error", display="sweet-alert", recovery_action="schedule_cleanup"
    ),
}

DEFAULT_FALLBACK_ERROR: Dict[str, Any] = {
    "type": "critical",
    "blocking": "blocking",
    "http_status_code": 500,
    "msg_to": "sweet-alert",
    "devTeam_email_need": True,
    "notify_slack": True,
    "dev_message_key": "errors.dev.fallback_error",
    "user_message_key": "errors.user.fallback_error",
}


def build_store(
    errors: Optional[Mapping[str, Mapping[str, Any]]] = None,
    *,
    include_defaults: bool = True,
    fallback_error: Optional[Mapping[str, Any]] = DEFAULT_FALLBACK_ERROR,
) -> ErrorConfigStore:
    """Build a store from the bundled definitions plus application *errors*."""
    merged: Dict[str, Mapping[str, Any]] = dict(DEFAULT_ERRORS) if include_defaults else {}
    merged.update(errors or {})
    return ErrorConfigStore.from_dict(
        {
            "errors": merged,
            "types": DEFAULT_ERROR_TYPES,
            "blocking_levels": DEFAULT_BLOCKING_LEVELS,
            "fallback_error": fallback_error,
        }
    )
