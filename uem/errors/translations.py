"""Translator capability and the bundled English message catalogue.

Keys are dotted paths into a nested mapping: ``errors.user.fallback_error``.
A translator returns the key itself when nothing is found, so callers can
detect a miss by comparing the result with the key.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)


class Translator(Protocol):
    def get(self, key: str, context: Optional[Mapping[str, Any]] = None) -> str:
        ...


class DictTranslator:
    """Resolves dotted keys against a nested dict; placeholders are left to the formatter."""

    def __init__(self, catalogue: Optional[Mapping[str, Any]] = None) -> None:
        self._catalogue: Mapping[str, Any] = catalogue if catalogue is not None else EN_TRANSLATIONS

    def lookup(self, key: str) -> Optional[str]:
        node: Any = self._catalogue
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return None
            node = node[part]
        if isinstance(node, str) and node:
            return node
        return None

    def has(self, key: str) -> bool:
        return self.lookup(key) is not None

    def get(self, key: str, context: Optional[Mapping[str, Any]] = None) -> str:
        value = self.lookup(key)
        if value is None:
            logger.debug("DictTranslator: missing key %s", key)
            return key
        return value


EN_TRANSLATIONS: dict[str, Any] = {
    "errors": {
        # Direct per-code overrides: errors.codes.<CODE>
        "codes": {},
        "dev": {
            "authentication_error": "Unauthenticated access attempt.",
            "authorization_error": "Authorization denied for the requested action: :action.",
            "undefined_error_code": "Undefined error code encountered: :errorCode. Original code was [:_original_code].",
            "invalid_input": "Invalid input provided for parameter :param.",
            "unexpected_error": "An unexpected error occurred in the system. Check logs for details.",
            "generic_server_error": "A generic server error occurred. Details: :details",
            "json_error": "JSON processing error. Type: :type, Message: :message",
            "network_error": "Network request failed or the API is unreachable: :url.",
            "fallback_error": "An error occurred but no specific error configuration was found for code [:_original_code].",
            "fatal_fallback_failure": "FATAL: Fallback configuration missing or invalid. System cannot respond.",
            "csrf_token_mismatch": "CSRF token mismatch detected.",
            "route_not_found": "The requested route or resource was not found: :request_url.",
            "method_not_allowed": "HTTP method :request_method not allowed for this route: :request_url.",
            "too_many_requests": "Too many requests hitting the rate limiter.",
            "database_error": "A database query or connection error occurred. Details: :details",
            "record_not_found": "The requested database record was not found (Model: :model, ID: :id).",
            "validation_error": "Input validation failed. Check context for specific errors.",
            "file_not_found": "The requested file was not found: :path.",
            "virus_found": "A virus was detected in the file: :fileName.",
            "scan_error": "An error occurred during the virus scan for file: :fileName.",
            "uem_email_send_failed": "EmailNotificationHandler failed to send notification for :errorCode. Reason: :reason",
            "uem_slack_send_failed": "SlackNotificationHandler failed to send notification for :errorCode. Reason: :reason",
            "uem_recovery_action_failed": "Recovery action :action failed for error :errorCode. Reason: :reason",
        },
        "user": {
            "authentication_error": "You are not authorized to perform this operation.",
            "authorization_error": "You do not have permission to perform this action.",
            "undefined_error_code": "An unexpected error occurred. Please contact support if the issue persists. [Ref: UNDEFINED]",
            "invalid_input": "The provided value for :param is invalid. Please check your input and try again.",
            "unexpected_error": "An unexpected error has occurred. Our technical team has been notified. Please try again later. [Ref: UNEXPECTED]",
            "generic_server_error": "A server error has occurred. Please try again later or contact support if the problem continues. [Ref: SERVER]",
            "json_error": "A data processing error occurred. Please check your input or try again later. [Ref: JSON]",
            "network_error": "We could not reach the server. Please check your connection and try again.",
            "fallback_error": "An unexpected system issue occurred. Please try again later or contact support. [Ref: FALLBACK]",
            "fatal_fallback_failure": "A critical system error occurred. Please contact support immediately. [Ref: FATAL]",
            "csrf_token_mismatch": "Your session has expired or is invalid. Please refresh the page and try again.",
            "route_not_found": "The page or resource you requested could not be found.",
            "method_not_allowed": "The action you tried to perform is not allowed on this resource.",
            "too_many_requests": "You are performing actions too quickly. Please wait a moment and try again.",
            "database_error": "A database error occurred. Please try again later or contact support. [Ref: DB]",
            "record_not_found": "The item you requested could not be found.",
            "validation_error": "Please correct the errors highlighted in the form and try again.",
            "file_not_found": "The requested file could not be found.",
            "virus_found": 'The file ":fileName" contains potential threats and has been blocked for your security.',
            "scan_error": "We could not verify the security of the file at this time. Please try again later.",
        },
        "generic_error": "An error has occurred. Please try again later or contact support.",
    },
}
