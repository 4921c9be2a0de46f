"""RecoveryActionHandler: runs the named recovery action attached to an error config.

Actions are async callables ``(context, exception) -> bool`` registered by
name. Applications register their own (e.g. upload retries) next to the
built-ins::

    recovery.register_action("retry_upload", retry_upload)
"""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from uem.errors.dispatcher import ErrorHandler
from uem.errors.request import RequestContext
from uem.errors.types import ErrorConfig

logger = logging.getLogger(__name__)

RecoveryAction = Callable[[Mapping[str, Any], Optional[BaseException]], Awaitable[bool]]


async def create_temp_directory(context: Mapping[str, Any], exception: Optional[BaseException] = None) -> bool:
    directory = context.get("directory")
    if not directory:
        logger.warning("RecoveryHandler: create_temp_directory needs a 'directory' in the context")
        return False
    await asyncio.to_thread(os.makedirs, str(directory), 0o755, True)
    return os.path.isdir(str(directory))


async def schedule_cleanup(context: Mapping[str, Any], exception: Optional[BaseException] = None) -> bool:
    paths = context.get("paths") or [p for p in (context.get("path"), context.get("tempPath")) if p]
    logger.info("RecoveryHandler: cleanup scheduled for %d path(s): %s", len(paths), paths)
    return True


BUILTIN_ACTIONS: Dict[str, RecoveryAction] = {
    "create_temp_directory": create_temp_directory,
    "schedule_cleanup": schedule_cleanup,
}


class RecoveryActionHandler(ErrorHandler):
    def __init__(self, actions: Optional[Mapping[str, RecoveryAction]] = None) -> None:
        self._actions: Dict[str, RecoveryAction] = dict(BUILTIN_ACTIONS)
        if actions:
            self._actions.update(actions)

    def name(self) -> str:
        return "recovery"

    def register_action(self, name: str, action: RecoveryAction) -> None:
        self._actions[name] = action

    @property
    def actions(self) -> list[str]:
        return sorted(self._actions)

    def should_handle(self, config: ErrorConfig) -> bool:
        return bool(config.recovery_action)

    async def handle(
        self,
        code: str,
        config: ErrorConfig,
        context: Mapping[str, Any],
        exception: Optional[BaseException] = None,
        *,
        request: Optional[RequestContext] = None,
    ) -> None:
        name = config.recovery_action or ""
        action = self._actions.get(name)
        if action is None:
            logger.warning(
                "RecoveryHandler: unknown recovery action %s for %s", name, code,
                extra={"error_code": code},
            )
            return

        logger.info("RecoveryHandler: attempting %s for %s", name, code, extra={"error_code": code})
        try:
            success = await action(context, exception)
        except Exception as exc:
            logger.error(
                "RecoveryHandler: exception during %s for %s: %s",
                name, code, exc,
                exc_info=True,
                extra={"error_code": code},
            )
            return
        if success:
            logger.info("RecoveryHandler: %s succeeded for %s", name, code, extra={"error_code": code})
        else:
            logger.warning(
                "RecoveryHandler: %s did not report success for %s", name, code,
                extra={"error_code": code},
            )
