"""In-process event bus standing in for browser CustomEvents."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping

logger = logging.getLogger(__name__)

CONFIG_LOADED_EVENT = "errorConfigLoaded"
ULTRA_ERROR_EVENT = "ultraError"

Listener = Callable[[Dict[str, Any]], None]


class EventBus:
    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, name: str, listener: Listener) -> None:
        self._listeners.setdefault(name, []).append(listener)

    def off(self, name: str, listener: Listener) -> bool:
        listeners = self._listeners.get(name, [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def emit(self, name: str, detail: Mapping[str, Any]) -> int:
        """Call every listener of *name* with a copy of *detail*; return how many were called.

        A failing listener is logged and does not stop the others.
        """
        called = 0
        for listener in list(self._listeners.get(name, [])):
            called += 1
            try:
                listener(dict(detail))
            except Exception as exc:
                logger.warning("EventBus: listener for %s failed: %s", name, exc, exc_info=True)
        logger.debug("EventBus: emitted %s to %d listener(s)", name, called)
        return called
