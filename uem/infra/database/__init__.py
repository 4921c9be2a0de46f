"""
uem.infra.database – PostgreSQL async engine, session, the error log model and repository.

Public API
──────────
  build_engine, build_session_factory, init_db, close_engine, ensure_database_exists
  Base, ErrorLog (models)
  ErrorLogRepository
"""
from uem.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
)
from uem.infra.database.models import Base, ErrorLog
from uem.infra.database.repositories import ErrorLogRepository

__all__ = [
    "build_engine",
    "build_session_factory",
    "init_db",
    "close_engine",
    "ensure_database_exists",
    "Base",
    "ErrorLog",
    "ErrorLogRepository",
]
