"""Core data structures for the error pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from uem.core.exceptions import ConfigurationError

ErrorContext = Dict[str, Any]
"""Caller-supplied key/value map: placeholder values and diagnostic payload."""

UNDEFINED_ERROR_CODE = "UNDEFINED_ERROR_CODE"
FALLBACK_ERROR = "FALLBACK_ERROR"
FATAL_FALLBACK_FAILURE = "FATAL_FALLBACK_FAILURE"
UNEXPECTED_ERROR = "UNEXPECTED_ERROR"

ORIGINAL_CODE_KEY = "_original_code"


class ErrorType(str, Enum):
    """Severity axis."""
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    NOTICE = "notice"


class BlockingLevel(str, Enum):
    """Blocking axis; independent from severity."""
    BLOCKING = "blocking"
    SEMI_BLOCKING = "semi-blocking"
    NOT = "not"


class DisplayMode(str, Enum):
    SWEET_ALERT = "sweet-alert"
    TOAST = "toast"
    DIV = "div"
    LOG_ONLY = "log-only"


_TYPES = frozenset(t.value for t in ErrorType)
_BLOCKING = frozenset(b.value for b in BlockingLevel)
_DISPLAY = frozenset(d.value for d in DisplayMode)

# Wire name -> attribute name
_ALIASES = {
    "msg_to": "display_mode",
    "devTeam_email_need": "notify_email",
}
_FIELDS = (
    "type",
    "blocking",
    "http_status_code",
    "display_mode",
    "user_message",
    "user_message_key",
    "dev_message",
    "dev_message_key",
    "notify_email",
    "notify_slack",
    "recovery_action",
)


def _require_mapping(data: Any, what: str) -> None:
    if not isinstance(data, Mapping):
        raise ConfigurationError(
            f"Expected a mapping for {what}, got {type(data).__name__}", details={"value": repr(data)[:200]}
        )


@dataclass(frozen=True)
class ErrorConfig:
    """Policy for one error code.

    Optional fields left as None fall back to the ErrorTypeDefaults of the
    config's ``type`` (status, notification) or to UI defaults (display mode).
    """

    type: str = ErrorType.ERROR.value
    blocking: str = BlockingLevel.BLOCKING.value
    http_status_code: Optional[int] = None
    display_mode: Optional[str] = None
    """Serialized as ``msg_to``."""

    user_message: Optional[str] = None
    user_message_key: Optional[str] = None
    dev_message: Optional[str] = None
    dev_message_key: Optional[str] = None

    notify_email: Optional[bool] = None
    """Serialized as ``devTeam_email_need``; None defers to the type's notify_team."""

    notify_slack: bool = False
    recovery_action: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict, hash=False)
    """Unrecognised keys, preserved for custom handlers (read-only)."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))
        if self.type not in _TYPES:
            raise ConfigurationError(f"Unknown error type {self.type!r}", details={"allowed": sorted(_TYPES)})
        if self.blocking not in _BLOCKING:
            raise ConfigurationError(
                f"Unknown blocking level {self.blocking!r}", details={"allowed": sorted(_BLOCKING)}
            )
        if self.display_mode is not None and self.display_mode not in _DISPLAY:
            raise ConfigurationError(
                f"Unknown display mode {self.display_mode!r}", details={"allowed": sorted(_DISPLAY)}
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ErrorConfig:
        """Build from a wire/definition mapping (accepts ``msg_to`` and ``display_mode``)."""
        _require_mapping(data, "error config")
        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            name = _ALIASES.get(key, key)
            if name in _FIELDS:
                if value is not None:
                    kwargs[name] = value
            else:
                extra[key] = value
        if "http_status_code" in kwargs:
            kwargs["http_status_code"] = int(kwargs["http_status_code"])
        return cls(**kwargs, extra=extra)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with wire names, omitting unset optional fields."""
        out: Dict[str, Any] = {"type": self.type, "blocking": self.blocking}
        if self.http_status_code is not None:
            out["http_status_code"] = self.http_status_code
        if self.display_mode is not None:
            out["msg_to"] = self.display_mode
        for name in ("user_message", "user_message_key", "dev_message", "dev_message_key"):
            value = getattr(self, name)
            if value:
                out[name] = value
        if self.notify_email is not None:
            out["devTeam_email_need"] = self.notify_email
        out["notify_slack"] = self.notify_slack
        if self.recovery_action:
            out["recovery_action"] = self.recovery_action
        out.update(self.extra)
        return out

    @property
    def is_critical(self) -> bool:
        return self.type == ErrorType.CRITICAL.value


@dataclass(frozen=True)
class ErrorTypeDefaults:
    log_level: str
    notify_team: bool = False
    http_status: int = 500

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ErrorTypeDefaults:
        _require_mapping(data, "error type defaults")
        return cls(
            log_level=str(data.get("log_level", "error")),
            notify_team=bool(data.get("notify_team", False)),
            http_status=int(data.get("http_status", 500)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"log_level": self.log_level, "notify_team": self.notify_team, "http_status": self.http_status}


@dataclass(frozen=True)
class BlockingLevelDefaults:
    terminate_request: bool = False
    flash_session: bool = False
    clear_session: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BlockingLevelDefaults:
        _require_mapping(data, "blocking level defaults")
        return cls(
            terminate_request=bool(data.get("terminate_request", False)),
            flash_session=bool(data.get("flash_session", False)),
            clear_session=bool(data.get("clear_session", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"terminate_request": self.terminate_request}
        if self.flash_session:
            out["flash_session"] = True
        if self.clear_session:
            out["clear_session"] = True
        return out


@dataclass(frozen=True)
class ResolvedError:
    """Outcome of the resolver: the code actually used, its config and the (augmented) context."""

    code: str
    config: ErrorConfig
    context: ErrorContext
    original_code: Optional[str] = None
    """Set when a fallback entry was used; also present as context['_original_code']."""

    @property
    def used_fallback(self) -> bool:
        return self.original_code is not None


@dataclass
class ErrorInfo:
    """Everything the builder and the exception carrier need about one handled error."""

    error_code: str
    type: str
    blocking: str
    message: str
    """Developer-facing message."""

    user_message: str
    http_status_code: int
    context: ErrorContext
    display_mode: str
    timestamp: str
    exception: Optional[Dict[str, Any]] = None

    def to_envelope(self) -> Dict[str, Any]:
        """JSON body for API transports. Never includes context, exception or dev message."""
        return {
            "error": self.error_code,
            "message": self.user_message,
            "blocking": self.blocking,
            "display_mode": self.display_mode,
        }
