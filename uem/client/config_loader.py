"""ErrorConfigLoader: fetches the error definitions from the server once, with retry and fallback.

Concurrent ``load()`` calls share one in-flight task, so N callers trigger a
single request. After ``max_attempts`` failures a small built-in policy set is
installed and the loader still reports itself as loaded.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import httpx

from uem.client.events import CONFIG_LOADED_EVENT, EventBus
from uem.core.exceptions import ConfigurationError
from uem.errors.store import ErrorConfigStore
from uem.errors.types import BlockingLevelDefaults, ErrorConfig, ErrorTypeDefaults

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "/api/error-definitions"


def _fallback(kind: str, blocking: str, status: int, key: str, display: str, *, email: bool = True,
              slack: bool = True) -> Dict[str, Any]:
    return {
        "type": kind,
        "blocking": blocking,
        "http_status_code": status,
        "msg_to": display,
        "devTeam_email_need": email,
        "notify_slack": slack,
        "dev_message_key": f"errors.dev.{key}",
        "user_message_key": f"errors.user.{key}",
    }


FALLBACK_DEFINITIONS: Dict[str, Any] = {
    "types": {
        "critical": {"log_level": "critical", "notify_team": True, "http_status": 500},
        "error": {"log_level": "error", "notify_team": False, "http_status": 400},
        "warning": {"log_level": "warning", "notify_team": False, "http_status": 400},
        "notice": {"log_level": "notice", "notify_team": False, "http_status": 200},
    },
    "blocking_levels": {
        "blocking": {"terminate_request": True, "clear_session": False},
        "semi-blocking": {"terminate_request": False, "flash_session": True},
        "not": {"terminate_request": False, "flash_session": True},
    },
    "errors": {
        "UNDEFINED_ERROR_CODE": _fallback("critical", "blocking", 500, "undefined_error_code", "sweet-alert"),
        "FALLBACK_ERROR": _fallback("critical", "blocking", 500, "fallback_error", "sweet-alert"),
        "FATAL_FALLBACK_FAILURE": _fallback("critical", "blocking", 500, "fatal_fallback_failure", "sweet-alert"),
        "UNEXPECTED_ERROR": _fallback("critical", "semi-blocking", 500, "unexpected_error", "sweet-alert"),
        "NETWORK_ERROR": _fallback("error", "semi-blocking", 503, "network_error", "sweet-alert"),
        "JSON_ERROR": _fallback("error", "semi-blocking", 500, "json_error", "div"),
        "VALIDATION_ERROR": _fallback(
            "warning", "semi-blocking", 422, "validation_error", "div", email=False, slack=False
        ),
    },
}


class ErrorConfigLoader:
    def __init__(
        self,
        base_url: str = "",
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        http_client: Optional[httpx.AsyncClient] = None,
        csrf_token: Optional[str] = None,
        events: Optional[EventBus] = None,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
        timeout: float = 10.0,
    ) -> None:
        if max_attempts < 1:
            raise ConfigurationError("max_attempts must be >= 1")
        self._url = base_url.rstrip("/") + endpoint
        self._client = http_client
        self.csrf_token = csrf_token
        self.events = events or EventBus()
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base
        self._timeout = timeout

        self._store = ErrorConfigStore()
        self._loaded = False
        self._failed_attempts = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def store(self) -> ErrorConfigStore:
        return self._store

    @property
    def failed_attempts(self) -> int:
        return self._failed_attempts

    @property
    def using_fallback(self) -> bool:
        return self._failed_attempts >= self._max_attempts

    def is_loaded(self) -> bool:
        return self._loaded

    async def load(self, force_reload: bool = False) -> None:
        if self._loaded and not force_reload:
            logger.debug("ErrorConfigLoader: already loaded")
            return
        if force_reload:
            pending = self._task
            if pending is not None and not pending.done():
                logger.info("ErrorConfigLoader: waiting for in-flight load before reloading")
                await asyncio.wait({pending})
            current = self._task
            if current is not None and current is not pending and not current.done():
                logger.debug("ErrorConfigLoader: reload already in progress")
            else:
                logger.info("ErrorConfigLoader: forcing reload")
                self._loaded = False
                self._failed_attempts = 0
                self._store = ErrorConfigStore()
                self._task = None
        if self._task is None or self._task.done():
            self._task = asyncio.ensure_future(self._load_with_retry())
        else:
            logger.debug("ErrorConfigLoader: load already in progress")
        task = self._task
        try:
            await asyncio.shield(task)
        finally:
            if self._task is task and task.done():
                self._task = None

    async def _load_with_retry(self) -> None:
        while True:
            try:
                payload = await self._fetch()
                store = ErrorConfigStore.from_dict(payload)
            except (httpx.HTTPError, ValueError, TypeError, ConfigurationError) as exc:
                self._failed_attempts += 1
                logger.error(
                    "ErrorConfigLoader: fetch attempt %d/%d failed: %s",
                    self._failed_attempts, self._max_attempts, exc,
                )
                if self._failed_attempts >= self._max_attempts:
                    break
                delay = self._backoff_base * 2 ** self._failed_attempts
                logger.warning("ErrorConfigLoader: retrying in %.1fs", delay)
                await asyncio.sleep(delay)
                continue
            self._store = store
            self._failed_attempts = 0
            self._loaded = True
            logger.info("ErrorConfigLoader: loaded %d error definitions", len(store.errors))
            self._emit_loaded()
            return

        logger.error(
            "ErrorConfigLoader: max attempts (%d) reached, using fallback definitions", self._max_attempts
        )
        self._store = ErrorConfigStore.from_dict(FALLBACK_DEFINITIONS)
        self._loaded = True
        self._emit_loaded()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json", "X-Requested-With": "XMLHttpRequest"}
        if self.csrf_token:
            headers["X-CSRF-TOKEN"] = self.csrf_token
        else:
            logger.warning("ErrorConfigLoader: no CSRF token set, request may be rejected")
        return headers

    async def _fetch(self) -> Mapping[str, Any]:
        if self._client is not None:
            resp = await self._client.get(self._url, headers=self._headers())
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(self._url, headers=self._headers())
        resp.raise_for_status()
        content_type = resp.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise ValueError(f"Expected JSON response, got Content-Type {content_type!r}")
        data = resp.json()
        if not isinstance(data, Mapping) or not all(
            isinstance(data.get(section), Mapping) for section in ("errors", "types", "blocking_levels")
        ):
            raise ValueError("Invalid configuration structure received from server")
        return data

    def _emit_loaded(self) -> None:
        self.events.emit(
            CONFIG_LOADED_EVENT,
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "errorCount": len(self._store.errors),
                "usingFallback": self.using_fallback,
            },
        )

    def _warn_if_not_started(self, what: str) -> None:
        if not self._loaded and self._task is None and self._failed_attempts == 0:
            logger.warning("ErrorConfigLoader: %s accessed before loading started", what)

    def get_error_config(self, code: str) -> Optional[ErrorConfig]:
        self._warn_if_not_started(f"config for {code}")
        return self._store.get(code)

    def get_error_type_config(self, type: str) -> Optional[ErrorTypeDefaults]:
        self._warn_if_not_started(f"type config for {type}")
        return self._store.type_defaults(type)

    def get_blocking_level_config(self, level: str) -> Optional[BlockingLevelDefaults]:
        self._warn_if_not_started(f"blocking level config for {level}")
        return self._store.blocking_levels.get(level)

    def get_all_error_codes(self) -> List[str]:
        self._warn_if_not_started("error code list")
        return self._store.codes()

    def get_errors_by_type(self) -> Dict[str, List[Dict[str, Any]]]:
        self._warn_if_not_started("errors by type")
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for code, cfg in self._store.errors.items():
            grouped.setdefault(cfg.type, []).append({**cfg.to_dict(), "code": code})
        return grouped
