"""Response/exception builder: the final, transport-aware shape of a handled error.

| force_throw | JSON/API request | blocking level     | outcome                          |
|-------------|------------------|--------------------|----------------------------------|
| yes         | any              | any                | raise UltraErrorException        |
| no          | yes              | any                | JSON envelope, status from config|
| no          | no               | terminates request | raise UltraErrorException        |
| no          | no               | otherwise          | flash user message, return None  |
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from fastapi.responses import JSONResponse

from uem.core.exceptions import UltraErrorException
from uem.errors.request import RequestContext
from uem.errors.store import ErrorConfigStore
from uem.errors.types import DisplayMode, ErrorInfo

logger = logging.getLogger(__name__)

DEFAULT_API_PATTERNS = ("api/*",)


class ResponseBuilder:
    def __init__(
        self,
        store: ErrorConfigStore,
        *,
        api_patterns: Sequence[str] = DEFAULT_API_PATTERNS,
    ) -> None:
        self._store = store
        self._api_patterns = tuple(api_patterns)

    def is_json_transport(self, request: Optional[RequestContext]) -> bool:
        if request is None:
            return False
        if request.expects_json():
            return True
        return any(request.is_(pattern) for pattern in self._api_patterns)

    @staticmethod
    def to_exception(info: ErrorInfo, exception: Optional[BaseException] = None) -> UltraErrorException:
        return UltraErrorException(
            info.user_message,
            info.http_status_code,
            exception,
            info.error_code,
            info.context,
        )

    def build(
        self,
        info: ErrorInfo,
        request: Optional[RequestContext] = None,
        *,
        force_throw: bool = False,
        exception: Optional[BaseException] = None,
    ) -> Optional[JSONResponse]:
        if force_throw:
            logger.warning(
                "ResponseBuilder: throwing %s as requested (status=%d)",
                info.error_code, info.http_status_code,
                extra={"error_code": info.error_code},
            )
            raise self.to_exception(info, exception)

        if self.is_json_transport(request):
            logger.info(
                "ResponseBuilder: JSON response for %s (status=%d)",
                info.error_code, info.http_status_code,
                extra={"error_code": info.error_code},
            )
            return JSONResponse(content=info.to_envelope(), status_code=info.http_status_code)

        if self._store.blocking_defaults(info.blocking).terminate_request:
            logger.warning(
                "ResponseBuilder: blocking error %s on HTML request, raising (status=%d)",
                info.error_code, info.http_status_code,
                extra={"error_code": info.error_code},
            )
            raise self.to_exception(info, exception)

        if request is not None and info.display_mode != DisplayMode.LOG_ONLY.value:
            key = f"error_{info.display_mode}"
            if key not in request.flashed():
                request.flash(key, info.user_message)
        logger.info(
            "ResponseBuilder: non-blocking error %s flashed, request continues",
            info.error_code,
            extra={"error_code": info.error_code},
        )
        return None
