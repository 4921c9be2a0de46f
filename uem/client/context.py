"""Explicit client state: translations, CSRF token, display sinks and escalation hooks."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from uem.client.sinks import NotificationSink

EscalationHook = Callable[[Dict[str, Any]], None]

JS_NAMESPACE = "js"


@dataclass
class ClientContext:
    translations: Dict[str, Any] = field(default_factory=dict)
    """Nested catalogue; ``translations["js"][CODE]`` holds direct per-code messages."""

    csrf_token: Optional[str] = None
    expose_dev_message: bool = False
    generic_error_key: str = "generic_error"
    """Looked up under ``translations["js"]``."""

    sinks: Dict[str, NotificationSink] = field(default_factory=dict)
    escalation_hooks: List[EscalationHook] = field(default_factory=list)

    def direct_translation(self, code: str) -> Optional[str]:
        js = self.translations.get(JS_NAMESPACE)
        if isinstance(js, Mapping):
            value = js.get(code)
            if isinstance(value, str) and value:
                return value
        return None

    def lookup(self, dotted_key: str) -> Optional[str]:
        node: Any = self.translations
        for part in dotted_key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return None
            node = node[part]
        return node if isinstance(node, str) and node else None

    def generic_message(self) -> Optional[str]:
        return self.direct_translation(self.generic_error_key)
