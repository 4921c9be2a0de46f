"""
uem.infra.database.repositories – async repositories (SQLAlchemy 2.0).
"""
from uem.infra.database.repositories.error_log import ErrorLogRepository

__all__ = [
    "ErrorLogRepository",
]
