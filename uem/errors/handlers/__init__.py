"""
Built-in error handlers.

Default registration order: log, database, email, slack, ui, recovery, simulation.
"""
from __future__ import annotations

from typing import List, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from uem.config.settings import ErrorManagerSettings
from uem.errors.dispatcher import ErrorHandler
from uem.errors.formatter import MessageFormatter
from uem.errors.handlers.database_handler import DatabaseLogHandler
from uem.errors.handlers.email_handler import EmailNotificationHandler, Mailer, SmtpMailer
from uem.errors.handlers.log_handler import LOG_LEVELS, LogHandler, log_level_for
from uem.errors.handlers.recovery_handler import RecoveryAction, RecoveryActionHandler
from uem.errors.handlers.simulation_handler import ErrorSimulationHandler
from uem.errors.handlers.slack_handler import SlackNotificationHandler
from uem.errors.handlers.ui_handler import UserInterfaceHandler
from uem.errors.store import ErrorConfigStore
from uem.errors.testing import TestingConditionsManager


def build_default_handlers(
    settings: ErrorManagerSettings,
    store: ErrorConfigStore,
    formatter: MessageFormatter,
    conditions: TestingConditionsManager,
    *,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    mailer: Optional[Mailer] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> List[ErrorHandler]:
    """The standard handler chain. The database handler needs a session factory."""
    handlers: List[ErrorHandler] = [LogHandler(store, formatter)]
    if session_factory is not None:
        handlers.append(DatabaseLogHandler(session_factory, store, formatter, settings.database_logging))
    handlers += [
        EmailNotificationHandler(settings, store, formatter, mailer),
        SlackNotificationHandler(settings, formatter, http_client=http_client),
        UserInterfaceHandler(formatter, settings.ui),
        RecoveryActionHandler(),
        ErrorSimulationHandler(conditions, settings.environment),
    ]
    return handlers


__all__ = [
    "build_default_handlers",
    "LOG_LEVELS",
    "log_level_for",
    "LogHandler",
    "DatabaseLogHandler",
    "EmailNotificationHandler",
    "Mailer",
    "SmtpMailer",
    "SlackNotificationHandler",
    "UserInterfaceHandler",
    "RecoveryAction",
    "RecoveryActionHandler",
    "ErrorSimulationHandler",
]
