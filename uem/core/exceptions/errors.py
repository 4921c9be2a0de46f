"""
Built-in exception types. The error-handling middleware maps each of them to
an error code (see uem.api.middleware).
"""
from __future__ import annotations

from typing import Any, Optional

from uem.core.exceptions.base import ProjectError, exception_factory


class ConfigurationError(ProjectError):
    """Invalid or missing configuration."""

    default_code = "CONFIGURATION_ERROR"
    default_http_status = 500


class ValidationError(ProjectError):
    """Request or input validation failed."""

    default_code = "VALIDATION_ERROR"
    default_http_status = 422


class NotFoundError(ProjectError):
    """Requested record not found."""

    default_code = "RECORD_NOT_FOUND"
    default_http_status = 404


class UnauthorizedError(ProjectError):
    """Authentication required or failed."""

    default_code = "AUTHENTICATION_ERROR"
    default_http_status = 401


class ForbiddenError(ProjectError):
    """Access to the resource is forbidden."""

    default_code = "AUTHORIZATION_ERROR"
    default_http_status = 403


class ExternalServiceError(ProjectError):
    """Mail server, Slack or another outbound dependency failed."""

    default_code = "EXTERNAL_SERVICE_ERROR"
    default_http_status = 502


class RateLimitError(ProjectError):
    """Rate limit exceeded."""

    default_code = "TOO_MANY_REQUESTS"
    default_http_status = 429


CsrfTokenMismatchError = exception_factory(
    "CsrfTokenMismatchError", code="CSRF_TOKEN_MISMATCH", http_status=419
)


class SimulationNotAllowedError(ForbiddenError):
    """Error simulation was requested outside the simulation environments."""

    default_code = "SIMULATION_NOT_ALLOWED"


class UltraErrorException(ProjectError):
    """
    Carrier for a handled, blocking failure.

    Raised by the response builder (and by the resolver when no fallback
    configuration exists). ``code`` is the resolved error code, ``details``
    the error context and ``cause`` the exception that triggered handling.
    """

    default_code = "UNEXPECTED_ERROR"
    default_http_status = 500

    def __init__(
        self,
        message: str,
        http_status: int = 500,
        previous: Optional[BaseException] = None,
        string_code: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            code=string_code,
            http_status=http_status,
            details=context,
            cause=previous,
        )

    @property
    def string_code(self) -> str:
        return self.code

    @property
    def context(self) -> dict[str, Any]:
        return self.details

    @property
    def previous(self) -> Optional[BaseException]:
        return self.cause
