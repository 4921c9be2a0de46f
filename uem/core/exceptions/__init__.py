"""
Project exception system.

Usage:
    from uem.core.exceptions import UltraErrorException, ValidationError

    raise ValidationError("Invalid input", details={"field": "email"})

    # Raised by the error pipeline for blocking failures
    except UltraErrorException as exc:
        exc.string_code, exc.http_status, exc.context
"""
from uem.core.exceptions.base import ProjectError, exception_factory
from uem.core.exceptions.errors import (
    ConfigurationError,
    CsrfTokenMismatchError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    SimulationNotAllowedError,
    UltraErrorException,
    UnauthorizedError,
    ValidationError,
)

__all__ = [
    "ProjectError",
    "exception_factory",
    "ConfigurationError",
    "CsrfTokenMismatchError",
    "ExternalServiceError",
    "ForbiddenError",
    "NotFoundError",
    "RateLimitError",
    "SimulationNotAllowedError",
    "UltraErrorException",
    "UnauthorizedError",
    "ValidationError",
]
