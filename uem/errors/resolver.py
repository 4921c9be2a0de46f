"""Config resolver: turns an error code into the effective ErrorConfig.

Priority chain (first hit wins):

1. runtime entry registered with ``define_error``
2. static entry in the ErrorConfigStore
3. ``UNDEFINED_ERROR_CODE`` entry, context gains ``_original_code``
4. the store's ``fallback_error`` (reported as ``FALLBACK_ERROR``), same augmentation
5. nothing left: raise ``UltraErrorException`` with code ``FATAL_FALLBACK_FAILURE``

Each step down is logged one level louder (warning, error, critical).
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Mapping, Optional, Union

from uem.core.exceptions import UltraErrorException
from uem.errors.store import ErrorConfigStore
from uem.errors.types import (
    FALLBACK_ERROR,
    FATAL_FALLBACK_FAILURE,
    ORIGINAL_CODE_KEY,
    UNDEFINED_ERROR_CODE,
    ErrorConfig,
    ErrorContext,
    ResolvedError,
)

logger = logging.getLogger(__name__)


class ConfigResolver:
    def __init__(self, store: ErrorConfigStore) -> None:
        self._store = store
        self._runtime: Dict[str, ErrorConfig] = {}
        self._lock = threading.Lock()

    @property
    def store(self) -> ErrorConfigStore:
        return self._store

    def define_error(self, code: str, config: Union[ErrorConfig, Mapping[str, Any]]) -> ErrorConfig:
        """Register a runtime entry; it shadows any static entry for *code*."""
        cfg = config if isinstance(config, ErrorConfig) else ErrorConfig.from_dict(config)
        with self._lock:
            self._runtime[code] = cfg
        logger.debug("ConfigResolver: defined runtime error %s (type=%s)", code, cfg.type)
        return cfg

    def runtime_codes(self) -> list[str]:
        with self._lock:
            return list(self._runtime)

    def get_error_config(self, code: str) -> Optional[ErrorConfig]:
        """Runtime entry, else static entry, else None (no fallback applied)."""
        with self._lock:
            cfg = self._runtime.get(code)
        if cfg is not None:
            return cfg
        cfg = self._store.get(code)
        if cfg is None:
            logger.info("ConfigResolver: static configuration not found for %s", code)
        return cfg

    def has(self, code: str) -> bool:
        with self._lock:
            if code in self._runtime:
                return True
        return code in self._store

    def resolve(
        self,
        code: str,
        context: Optional[Mapping[str, Any]] = None,
        exception: Optional[BaseException] = None,
    ) -> ResolvedError:
        ctx: ErrorContext = dict(context or {})

        cfg = self.get_error_config(code)
        if cfg is not None:
            return ResolvedError(code=code, config=cfg, context=ctx)

        logger.warning(
            "ConfigResolver: undefined error code %s, trying %s",
            code, UNDEFINED_ERROR_CODE,
            extra={"error_code": code},
        )
        ctx[ORIGINAL_CODE_KEY] = code
        cfg = self.get_error_config(UNDEFINED_ERROR_CODE)
        if cfg is not None:
            return ResolvedError(code=UNDEFINED_ERROR_CODE, config=cfg, context=ctx, original_code=code)

        logger.error(
            "ConfigResolver: no config for %s either, using fallback_error (original=%s)",
            UNDEFINED_ERROR_CODE, code,
            extra={"error_code": code},
        )
        if self._store.fallback_error is not None:
            return ResolvedError(
                code=FALLBACK_ERROR, config=self._store.fallback_error, context=ctx, original_code=code
            )

        logger.critical(
            "ConfigResolver: no fallback_error configured, cannot handle %s",
            code,
            extra={"error_code": code},
        )
        raise UltraErrorException(
            f"FATAL: No error configuration found for [{code}] or any fallback.",
            500,
            exception,
            FATAL_FALLBACK_FAILURE,
            ctx,
        )
