"""Process-wide error simulation switches.

Business code asks ``conditions.is_testing("VIRUS_FOUND")`` before doing the
real work; tests and the simulation API flip the switch. The table itself
does not care about the environment, but ``is_testing`` only reports True
while testing is enabled (off in production by default).
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, Optional, Set

logger = logging.getLogger(__name__)


class TestingConditionsManager:
    __test__ = False  # not a pytest test class

    def __init__(self, environment: str = "production", *, enabled: Optional[bool] = None) -> None:
        self.environment = environment
        self._enabled = enabled if enabled is not None else environment != "production"
        self._conditions: Dict[str, bool] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_testing_enabled(self, enabled: bool) -> None:
        self._enabled = bool(enabled)
        logger.info("TestingConditions: testing %s (env=%s)", "enabled" if enabled else "disabled", self.environment)

    def set_condition(self, code: str, active: bool) -> None:
        with self._lock:
            if active:
                self._conditions[code] = True
            else:
                self._conditions.pop(code, None)
        logger.info("TestingConditions: %s %s", "activated" if active else "deactivated", code)

    def activate(self, code: str) -> None:
        self.set_condition(code, True)

    def deactivate(self, code: str) -> None:
        self.set_condition(code, False)

    def is_testing(self, code: str) -> bool:
        if not self._enabled:
            return False
        with self._lock:
            return self._conditions.get(code, False)

    def get_active_conditions(self) -> Set[str]:
        with self._lock:
            return {code for code, active in self._conditions.items() if active}

    def reset_all_conditions(self) -> int:
        with self._lock:
            count = len(self._conditions)
            self._conditions.clear()
        logger.info("TestingConditions: reset %d condition(s)", count)
        return count
