"""Request capability consumed by the builder and the UI handler.

``StarletteRequestContext`` (uem.api.request) adapts live HTTP requests;
``StaticRequest`` serves programmatic callers, background jobs and tests.
"""
from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class RequestContext(Protocol):
    def expects_json(self) -> bool:
        ...

    def is_(self, pattern: str) -> bool:
        ...

    def metadata(self) -> Dict[str, Any]:
        """Context enrichment: request_url, request_method, ip_address, user_agent, user_id, ..."""
        ...

    def flash(self, key: str, value: Any) -> None:
        ...

    def flashed(self) -> Dict[str, Any]:
        ...


def path_matches(path: str, pattern: str) -> bool:
    """Glob match ignoring the leading slash (``api/*`` matches ``/api/errors``)."""
    return fnmatch.fnmatchcase(path.lstrip("/"), pattern.lstrip("/"))


def accepts_json(accept: Optional[str], requested_with: Optional[str]) -> bool:
    if requested_with and requested_with.lower() == "xmlhttprequest":
        return True
    accept = (accept or "").lower()
    return "/json" in accept or "+json" in accept


@dataclass
class StaticRequest:
    """In-process request with a plain dict as flash storage."""

    path: str = "/"
    method: str = "GET"
    accept: Optional[str] = None
    requested_with: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    user_id: Optional[Any] = None
    secure: bool = False
    flashes: Dict[str, Any] = field(default_factory=dict)

    def expects_json(self) -> bool:
        return accepts_json(self.accept, self.requested_with)

    def is_(self, pattern: str) -> bool:
        return path_matches(self.path, pattern)

    def metadata(self) -> Dict[str, Any]:
        return {
            "request_url": self.path,
            "request_method": self.method,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "request_ajax": (self.requested_with or "").lower() == "xmlhttprequest",
            "request_secure": self.secure,
            "user_id": self.user_id,
        }

    def flash(self, key: str, value: Any) -> None:
        self.flashes[key] = value

    def flashed(self) -> Dict[str, Any]:
        return self.flashes
