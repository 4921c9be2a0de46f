"""Config store: static per-code policy plus per-type and per-blocking-level defaults."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from uem.core.exceptions import ConfigurationError
from uem.errors.types import BlockingLevel, BlockingLevelDefaults, ErrorConfig, ErrorTypeDefaults

logger = logging.getLogger(__name__)


def _section(payload: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = payload.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"'{name}' must be an object", details={"got": type(value).__name__})
    return value


@dataclass
class ErrorConfigStore:
    """Read-mostly policy table. Built once at startup; runtime additions go to the resolver."""

    errors: Dict[str, ErrorConfig] = field(default_factory=dict)
    types: Dict[str, ErrorTypeDefaults] = field(default_factory=dict)
    blocking_levels: Dict[str, BlockingLevelDefaults] = field(default_factory=dict)
    fallback_error: Optional[ErrorConfig] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> ErrorConfigStore:
        """Build from the definitions payload ``{errors, types, blocking_levels, fallback_error?}``."""
        errors: Dict[str, ErrorConfig] = {}
        for code, raw in _section(payload, "errors").items():
            try:
                errors[code] = raw if isinstance(raw, ErrorConfig) else ErrorConfig.from_dict(raw)
            except (ConfigurationError, TypeError, ValueError) as exc:
                raise ConfigurationError(
                    f"Invalid configuration for error code {code}", details={"code": code}, cause=exc
                ) from exc
        types = {
            name: ErrorTypeDefaults.from_dict(raw) for name, raw in _section(payload, "types").items()
        }
        levels = {
            name: BlockingLevelDefaults.from_dict(raw)
            for name, raw in _section(payload, "blocking_levels").items()
        }
        raw_fallback = payload.get("fallback_error")
        fallback = ErrorConfig.from_dict(raw_fallback) if raw_fallback else None
        logger.debug(
            "ErrorConfigStore: loaded %d codes, %d types, %d blocking levels (fallback=%s)",
            len(errors), len(types), len(levels), fallback is not None,
        )
        return cls(errors=errors, types=types, blocking_levels=levels, fallback_error=fallback)

    def get(self, code: str) -> Optional[ErrorConfig]:
        return self.errors.get(code)

    def __contains__(self, code: object) -> bool:
        return code in self.errors

    def codes(self, type: Optional[str] = None) -> List[str]:
        """All known codes, optionally only those of one severity type."""
        if type is None:
            return list(self.errors)
        return [code for code, cfg in self.errors.items() if cfg.type == type]

    def errors_by_type(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for code, cfg in self.errors.items():
            grouped.setdefault(cfg.type, []).append(code)
        return grouped

    def type_defaults(self, type: str) -> Optional[ErrorTypeDefaults]:
        return self.types.get(type)

    def blocking_defaults(self, level: str) -> BlockingLevelDefaults:
        found = self.blocking_levels.get(level)
        if found is not None:
            return found
        terminate = level == BlockingLevel.BLOCKING.value
        return BlockingLevelDefaults(terminate_request=terminate, flash_session=not terminate)

    def http_status_for(self, config: ErrorConfig) -> int:
        if config.http_status_code is not None:
            return config.http_status_code
        defaults = self.type_defaults(config.type)
        return defaults.http_status if defaults is not None else 500

    def wants_email(self, config: ErrorConfig) -> bool:
        if config.notify_email is not None:
            return config.notify_email
        defaults = self.type_defaults(config.type)
        return bool(defaults and defaults.notify_team)

    def to_payload(self) -> Dict[str, Any]:
        """Shape served by the definitions endpoint."""
        return {
            "errors": {code: cfg.to_dict() for code, cfg in self.errors.items()},
            "types": {name: d.to_dict() for name, d in self.types.items()},
            "blocking_levels": {name: d.to_dict() for name, d in self.blocking_levels.items()},
        }
