"""
uem.infra.database.models – SQLAlchemy 2.0 ORM models.

Exports Base, mixins, and the ErrorLog model.
"""
from uem.infra.database.models.base import Base, TimestampMixin, _uuid_pk
from uem.infra.database.models.error_log import ErrorLog

__all__ = [
    "Base",
    "TimestampMixin",
    "_uuid_pk",
    "ErrorLog",
]
