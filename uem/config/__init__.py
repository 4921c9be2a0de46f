"""
uem config: load from env.

load_postgres_config() for the error log store, load_settings() for the
error manager (ui, email, slack, database logging, simulation environments).
"""
from uem.config.postgres import PostgresConfig, load_postgres_config
from uem.config.settings import (
    DatabaseLogSettings,
    EmailSettings,
    ErrorManagerSettings,
    SlackSettings,
    UiSettings,
    load_settings,
)

__all__ = [
    "PostgresConfig",
    "load_postgres_config",
    "ErrorManagerSettings",
    "UiSettings",
    "EmailSettings",
    "SlackSettings",
    "DatabaseLogSettings",
    "load_settings",
]
