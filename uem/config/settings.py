"""
uem.config.settings – error manager settings (frozen dataclasses, env-driven).

One ErrorManagerSettings instance is built at startup and passed to the
manager, the handlers and the HTTP app. Sections mirror the handler set:
ui, email, slack, database logging.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from uem.config.env import env_bool, env_int, env_list, env_str
from uem.core.exceptions import ConfigurationError

_DISPLAY_MODES = frozenset({"sweet-alert", "toast", "div", "log-only"})

DEFAULT_SIMULATION_ENVIRONMENTS = ("local", "development", "testing", "staging")


@dataclass(frozen=True)
class UiSettings:
    default_display_mode: str = "div"
    show_error_codes: bool = False
    generic_error_message: str = "errors.generic_error"
    """Translation key of the last-resort user message."""

    expose_dev_message: bool = False
    """When False, developer text is never used as a user-facing message."""

    def __post_init__(self) -> None:
        if self.default_display_mode not in _DISPLAY_MODES:
            raise ConfigurationError(
                f"default_display_mode must be one of {sorted(_DISPLAY_MODES)}, "
                f"got {self.default_display_mode!r}"
            )

    @classmethod
    def from_env(cls) -> UiSettings:
        return cls(
            default_display_mode=env_str("UEM_DEFAULT_DISPLAY_MODE", "div"),
            show_error_codes=env_bool("UEM_SHOW_ERROR_CODES", False),
            generic_error_message=env_str("UEM_GENERIC_ERROR_KEY", "errors.generic_error"),
            expose_dev_message=env_bool("UEM_EXPOSE_DEV_MESSAGE", False),
        )


@dataclass(frozen=True)
class EmailSettings:
    enabled: bool = False
    to: Optional[str] = None
    from_address: Optional[str] = None
    from_name: Optional[str] = None
    subject_prefix: str = "[UEM Error] "
    include_ip_address: bool = False
    include_user_agent: bool = False
    include_user_details: bool = False
    include_context: bool = True
    include_trace: bool = False
    trace_max_lines: int = 30
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_starttls: bool = False

    def __post_init__(self) -> None:
        if self.trace_max_lines < 1:
            raise ConfigurationError("trace_max_lines must be >= 1")

    @classmethod
    def from_env(cls) -> EmailSettings:
        return cls(
            enabled=env_bool("UEM_EMAIL_ENABLED", False),
            to=env_str("UEM_EMAIL_TO"),
            from_address=env_str("UEM_EMAIL_FROM"),
            from_name=env_str("UEM_EMAIL_FROM_NAME"),
            subject_prefix=os.environ.get("UEM_EMAIL_SUBJECT_PREFIX", "[UEM Error] "),
            include_ip_address=env_bool("UEM_EMAIL_INCLUDE_IP", False),
            include_user_agent=env_bool("UEM_EMAIL_INCLUDE_USER_AGENT", False),
            include_user_details=env_bool("UEM_EMAIL_INCLUDE_USER_DETAILS", False),
            include_context=env_bool("UEM_EMAIL_INCLUDE_CONTEXT", True),
            include_trace=env_bool("UEM_EMAIL_INCLUDE_TRACE", False),
            trace_max_lines=env_int("UEM_EMAIL_TRACE_MAX_LINES", 30),
            smtp_host=env_str("SMTP_HOST", "localhost"),
            smtp_port=env_int("SMTP_PORT", 25),
            smtp_username=env_str("SMTP_USERNAME"),
            smtp_password=env_str("SMTP_PASSWORD"),
            smtp_starttls=env_bool("SMTP_STARTTLS", False),
        )


@dataclass(frozen=True)
class SlackSettings:
    enabled: bool = False
    webhook_url: Optional[str] = None
    channel: Optional[str] = None
    username: Optional[str] = None
    icon_emoji: str = ":boom:"
    notify_all_critical: bool = True
    include_ip_address: bool = False
    include_user_details: bool = False
    include_context: bool = True
    include_trace_snippet: bool = False
    context_max_length: int = 1500
    trace_max_lines: int = 10
    timeout: float = 15.0

    def __post_init__(self) -> None:
        if self.context_max_length < 100:
            raise ConfigurationError("context_max_length must be >= 100")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")

    @classmethod
    def from_env(cls) -> SlackSettings:
        return cls(
            enabled=env_bool("UEM_SLACK_ENABLED", False),
            webhook_url=env_str("UEM_SLACK_WEBHOOK_URL"),
            channel=env_str("UEM_SLACK_CHANNEL"),
            username=env_str("UEM_SLACK_USERNAME"),
            icon_emoji=env_str("UEM_SLACK_ICON_EMOJI", ":boom:"),
            notify_all_critical=env_bool("UEM_SLACK_NOTIFY_ALL_CRITICAL", True),
            include_ip_address=env_bool("UEM_SLACK_INCLUDE_IP", False),
            include_user_details=env_bool("UEM_SLACK_INCLUDE_USER_DETAILS", False),
            include_context=env_bool("UEM_SLACK_INCLUDE_CONTEXT", True),
            include_trace_snippet=env_bool("UEM_SLACK_INCLUDE_TRACE", False),
            context_max_length=env_int("UEM_SLACK_CONTEXT_MAX_LENGTH", 1500),
            trace_max_lines=env_int("UEM_SLACK_TRACE_MAX_LINES", 10),
            timeout=float(env_str("UEM_SLACK_TIMEOUT", "15")),
        )


@dataclass(frozen=True)
class DatabaseLogSettings:
    enabled: bool = True
    include_trace: bool = True
    max_trace_length: int = 10000

    @classmethod
    def from_env(cls) -> DatabaseLogSettings:
        return cls(
            enabled=env_bool("UEM_DB_LOG_ENABLED", True),
            include_trace=env_bool("UEM_DB_LOG_INCLUDE_TRACE", True),
            max_trace_length=env_int("UEM_DB_LOG_MAX_TRACE_LENGTH", 10000),
        )


@dataclass(frozen=True)
class ErrorManagerSettings:
    """Top-level settings. ``environment`` gates simulation and testing features."""

    app_name: str = "uem"
    environment: str = "production"
    ui: UiSettings = field(default_factory=UiSettings)
    email: EmailSettings = field(default_factory=EmailSettings)
    slack: SlackSettings = field(default_factory=SlackSettings)
    database_logging: DatabaseLogSettings = field(default_factory=DatabaseLogSettings)
    simulation_environments: tuple[str, ...] = DEFAULT_SIMULATION_ENVIRONMENTS

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def simulation_allowed(self) -> bool:
        return self.environment in self.simulation_environments

    @classmethod
    def from_env(cls, **overrides: object) -> ErrorManagerSettings:
        values: dict[str, object] = {
            "app_name": env_str("APP_NAME", "uem"),
            "environment": env_str("APP_ENV", "production"),
            "ui": UiSettings.from_env(),
            "email": EmailSettings.from_env(),
            "slack": SlackSettings.from_env(),
            "database_logging": DatabaseLogSettings.from_env(),
            "simulation_environments": env_list(
                "UEM_SIMULATION_ENVIRONMENTS", DEFAULT_SIMULATION_ENVIRONMENTS
            ),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)  # type: ignore[arg-type]


def load_settings(**overrides: object) -> ErrorManagerSettings:
    """Load settings from env (keyword overrides win). Raises ConfigurationError."""
    return ErrorManagerSettings.from_env(**overrides)
