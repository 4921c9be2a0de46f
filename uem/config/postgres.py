"""
uem.config.postgres – PostgreSQL connection config for the error log store.

Env vars: DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT, DB_POOL_RECYCLE,
DB_ECHO, DB_APPLICATION_NAME.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from uem.config.env import env_bool


def _validate_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise ValueError("DATABASE_URL is required and must be non-empty")
    if not (
        url.startswith("postgresql://")
        or url.startswith("postgres://")
        or url.startswith("postgresql+asyncpg://")
    ):
        raise ValueError(
            "DATABASE_URL must start with postgresql://, postgres:// or postgresql+asyncpg://"
        )
    return url


def _validate_min(value: int, name: str, min_val: int) -> int:
    if not isinstance(value, int) or value < min_val:
        raise ValueError(f"{name} must be an integer >= {min_val}, got {value!r}")
    return value


@dataclass(frozen=True)
class PostgresConfig:
    """
    PostgreSQL connection and pool configuration for the ``error_logs`` table.

    Validated on construction; use load_postgres_config() to read the environment.
    """

    url: str
    """DSN; converted to postgresql+asyncpg in the engine."""

    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    """Seconds after which a pooled connection is recycled."""

    echo: bool = False
    application_name: str = "uem"

    def __post_init__(self) -> None:
        _validate_url(self.url)
        _validate_min(self.pool_size, "pool_size", 1)
        _validate_min(self.max_overflow, "max_overflow", 0)
        _validate_min(self.pool_timeout, "pool_timeout", 1)
        _validate_min(self.pool_recycle, "pool_recycle", 1)
        if not isinstance(self.echo, bool):
            raise ValueError("echo must be a boolean")
        if not isinstance(self.application_name, str) or not self.application_name.strip():
            raise ValueError("application_name must be a non-empty string")

    @classmethod
    def from_env(cls, **overrides: object) -> PostgresConfig:
        """
        Build config from environment variables; keyword overrides win over env.

        Env:
            DATABASE_URL          – default postgresql://localhost/uem
            DB_POOL_SIZE          – default 5
            DB_MAX_OVERFLOW       – default 10
            DB_POOL_TIMEOUT       – default 30
            DB_POOL_RECYCLE       – default 1800
            DB_ECHO               – "1" / "true" / "yes" → True
            DB_APPLICATION_NAME   – default uem
        """
        raw_url = overrides.get("url")
        if raw_url is None:
            raw_url = os.environ.get("DATABASE_URL", "postgresql://localhost/uem")

        env_int = {
            "pool_size": ("DB_POOL_SIZE", 5),
            "max_overflow": ("DB_MAX_OVERFLOW", 10),
            "pool_timeout": ("DB_POOL_TIMEOUT", 30),
            "pool_recycle": ("DB_POOL_RECYCLE", 1800),
        }

        def _int(attr: str) -> int:
            value = overrides.get(attr)
            if value is not None:
                return int(value)
            var, default = env_int[attr]
            return int(os.environ.get(var, default))

        echo = overrides.get("echo")
        if echo is None:
            echo = env_bool("DB_ECHO", False)
        app_name = overrides.get("application_name") or os.environ.get("DB_APPLICATION_NAME", "uem")
        return cls(
            url=_validate_url(str(raw_url)),
            pool_size=_int("pool_size"),
            max_overflow=_int("max_overflow"),
            pool_timeout=_int("pool_timeout"),
            pool_recycle=_int("pool_recycle"),
            echo=bool(echo),
            application_name=str(app_name),
        )


def load_postgres_config(**overrides: object) -> PostgresConfig:
    """Load and validate PostgreSQL config (raises ValueError on invalid values)."""
    return PostgresConfig.from_env(**overrides)
