"""ErrorSimulationHandler: records, outside production, whether a handled error was simulated."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from uem.errors.dispatcher import ErrorHandler
from uem.errors.request import RequestContext
from uem.errors.testing import TestingConditionsManager
from uem.errors.types import ErrorConfig

logger = logging.getLogger(__name__)


class ErrorSimulationHandler(ErrorHandler):
    def __init__(self, conditions: TestingConditionsManager, environment: str) -> None:
        self._conditions = conditions
        self._environment = environment

    def name(self) -> str:
        return "simulation"

    def should_handle(self, config: ErrorConfig) -> bool:
        return self._environment != "production"

    async def handle(
        self,
        code: str,
        config: ErrorConfig,
        context: Mapping[str, Any],
        exception: Optional[BaseException] = None,
        *,
        request: Optional[RequestContext] = None,
    ) -> None:
        logger.info(
            "SimulationHandler: %s handled (simulated=%s, type=%s, exception=%s)",
            code,
            self._conditions.is_testing(code),
            config.type,
            type(exception).__name__ if exception is not None else None,
            extra={"error_code": code, "error_context": dict(context)},
        )
