"""Starlette adapter for the request capability used by the error pipeline.

Flashed messages live on ``request.state`` for the current request. When the
error middleware redirects back after a non-blocking error it copies them
into the ``uem_flash`` cookie so the next page can show them.
"""
from __future__ import annotations

import json
from typing import Any, Dict

from starlette.requests import Request
from starlette.responses import Response

from uem.errors.request import accepts_json, path_matches

FLASH_COOKIE = "uem_flash"
_FLASH_STATE_ATTR = "uem_flashes"


class StarletteRequestContext:
    def __init__(self, request: Request) -> None:
        self.request = request

    def expects_json(self) -> bool:
        headers = self.request.headers
        return accepts_json(headers.get("accept"), headers.get("x-requested-with"))

    def is_(self, pattern: str) -> bool:
        return path_matches(self.request.url.path, pattern)

    def metadata(self) -> Dict[str, Any]:
        request = self.request
        return {
            "request_url": str(request.url),
            "request_method": request.method,
            "ip_address": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent"),
            "request_ajax": (request.headers.get("x-requested-with") or "").lower() == "xmlhttprequest",
            "request_secure": request.url.scheme == "https",
            "user_id": getattr(request.state, "user_id", None),
        }

    def flash(self, key: str, value: Any) -> None:
        self.flashed()[key] = value

    def flashed(self) -> Dict[str, Any]:
        flashes = getattr(self.request.state, _FLASH_STATE_ATTR, None)
        if flashes is None:
            flashes = {}
            setattr(self.request.state, _FLASH_STATE_ATTR, flashes)
        return flashes


def write_flash_cookie(response: Response, flashes: Dict[str, Any]) -> None:
    if not flashes:
        return
    response.set_cookie(
        FLASH_COOKIE,
        json.dumps(flashes, default=str),
        httponly=True,
        samesite="lax",
    )


def read_flash_cookie(request: Request) -> Dict[str, Any]:
    """Messages flashed by the previous request; empty when absent or unreadable."""
    raw = request.cookies.get(FLASH_COOKIE)
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
