"""
Error-handling middleware: routes every exception that escapes a route through
the ErrorManager.

The manager's answer decides the response:

* JSON/API request          -> JSON envelope with the configured status
* HTML, blocking error      -> minimal error page with the user message
* HTML, non-blocking error  -> 303 back to the Referer (or ``/``), flashes in a cookie

A missing fallback configuration (FATAL_FALLBACK_FAILURE) is re-raised.
"""
from __future__ import annotations

import html
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from pydantic import ValidationError as PydanticValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from uem.api.request import StarletteRequestContext, write_flash_cookie
from uem.core.exceptions import (
    ProjectError,
    RateLimitError,
    SimulationNotAllowedError,
    UltraErrorException,
)
from uem.errors.manager import ErrorManager
from uem.errors.types import FATAL_FALLBACK_FAILURE, UNEXPECTED_ERROR

logger = logging.getLogger(__name__)

VALIDATION_ERROR = "VALIDATION_ERROR"
TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"
DATABASE_ERROR = "DATABASE_ERROR"

HTTP_STATUS_CODES: Dict[int, str] = {
    401: "AUTHENTICATION_ERROR",
    403: "AUTHORIZATION_ERROR",
    404: "ROUTE_NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    419: "CSRF_TOKEN_MISMATCH",
    422: VALIDATION_ERROR,
    429: TOO_MANY_REQUESTS,
}

_ERROR_PAGE = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"><title>Error {status}</title></head>
<body>
<main>
<h1>{status}</h1>
<p>{message}</p>
{reference}
</main>
</body>
</html>
"""


def render_error_page(message: str, status: int, code: Optional[str] = None) -> HTMLResponse:
    reference = f"<p><small>Reference: {html.escape(code)}</small></p>" if code else ""
    body = _ERROR_PAGE.format(status=status, message=html.escape(message), reference=reference)
    return HTMLResponse(body, status_code=status)


class ErrorHandlingMiddleware:
    """One exception handler for every exception type; see ``install``."""

    def __init__(self, *, show_error_codes: bool = False) -> None:
        self.show_error_codes = show_error_codes

    def install(self, app: FastAPI) -> None:
        app.add_exception_handler(SimulationNotAllowedError, simulation_not_allowed_handler)
        for exc_type in (
            UltraErrorException,
            RequestValidationError,
            RateLimitExceeded,
            StarletteHTTPException,
            ProjectError,
            SQLAlchemyError,
            Exception,
        ):
            app.add_exception_handler(exc_type, self)

    def code_for(self, exc: BaseException, manager: ErrorManager) -> Optional[str]:
        """Error code for *exc*; None means the plain HTTP response is kept."""
        if isinstance(exc, (RateLimitExceeded, RateLimitError)):
            return TOO_MANY_REQUESTS
        if isinstance(exc, (RequestValidationError, PydanticValidationError)):
            return VALIDATION_ERROR
        if isinstance(exc, ProjectError):
            return exc.code if manager.has_error(exc.code) else UNEXPECTED_ERROR
        if isinstance(exc, StarletteHTTPException):
            return HTTP_STATUS_CODES.get(exc.status_code)
        if isinstance(exc, SQLAlchemyError):
            return DATABASE_ERROR
        return UNEXPECTED_ERROR

    @staticmethod
    def context_for(exc: BaseException) -> Dict[str, Any]:
        if isinstance(exc, (RequestValidationError, PydanticValidationError)):
            return {
                "validation_errors": [
                    {"loc": ".".join(str(part) for part in err.get("loc", ())), "msg": err.get("msg")}
                    for err in exc.errors()
                ]
            }
        if isinstance(exc, ProjectError):
            return {**exc.details, "exception_code": exc.code, "exception_message": exc.message}
        if isinstance(exc, StarletteHTTPException):
            return {"status_code": exc.status_code, "detail": str(exc.detail)}
        return {"exception_message": str(exc)}

    async def __call__(self, request: Request, exc: Exception) -> Response:
        manager: ErrorManager = request.app.state.error_manager
        rc = StarletteRequestContext(request)

        if isinstance(exc, UltraErrorException):
            code = exc.string_code
            context = {**rc.metadata(), **exc.context, "middleware_caught": True}
            cause = exc.previous
        else:
            code = self.code_for(exc, manager)
            if code is None:
                return await http_exception_handler(request, exc)  # type: ignore[arg-type]
            context = {**self.context_for(exc), **rc.metadata()}
            cause = exc

        logger.info(
            "ErrorMiddleware: %s on %s %s -> %s",
            type(exc).__name__, request.method, request.url.path, code,
            extra={"error_code": code},
        )
        try:
            response = await manager.handle(code, context, cause, request=rc)
        except UltraErrorException as carried:
            if carried.string_code == FATAL_FALLBACK_FAILURE:
                logger.critical("ErrorMiddleware: no fallback error configuration, re-raising")
                raise
            return render_error_page(
                carried.message,
                carried.http_status,
                carried.string_code if self.show_error_codes else None,
            )
        if response is not None:
            return response
        return self.redirect_back(request, rc)

    @staticmethod
    def redirect_back(request: Request, rc: StarletteRequestContext) -> RedirectResponse:
        target = request.headers.get("referer") or "/"
        response = RedirectResponse(target, status_code=303)
        write_flash_cookie(response, rc.flashed())
        return response


async def simulation_not_allowed_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.warning("ErrorMiddleware: simulation request rejected on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=403, content={"success": False, "message": str(exc)})
