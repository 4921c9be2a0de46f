"""ErrorLog ORM model: one row per handled error, written by DatabaseLogHandler."""
from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from uem.infra.database.models.base import Base, TimestampMixin, _uuid_pk


class ErrorLog(Base, TimestampMixin):
    __tablename__ = "error_logs"
    __table_args__ = (
        Index("ix_error_logs_code_created", "error_code", "created_at"),
    )

    id: Mapped[uuid.UUID] = _uuid_pk()

    error_code: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    error_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    # critical | error | warning | notice
    error_level: Mapped[str] = mapped_column(String(20), nullable=False, default="blocking")
    # blocking | semi-blocking | not

    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    http_status_code: Mapped[int] = mapped_column(Integer, nullable=False, default=500)
    display_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    context: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    exception_class: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    exception_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    exception_file: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    exception_line: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    exception_trace: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    request_method: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    request_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    resolution_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def mark_resolved(self, resolved_by: Optional[str] = None, notes: Optional[str] = None) -> None:
        self.resolved = True
        self.resolved_at = datetime.now(timezone.utc)
        self.resolved_by = resolved_by
        self.resolution_notes = notes

    def mark_unresolved(self) -> None:
        self.resolved = False
        self.resolved_at = None
        self.resolved_by = None
        self.resolution_notes = None

    def mark_notified(self) -> None:
        self.notified = True

    def context_summary(self, max_length: int = 100) -> str:
        """Compact JSON rendering of the context for list views."""
        if not self.context:
            return ""
        text = json.dumps(self.context, default=str, ensure_ascii=False)
        if len(text) > max_length:
            return text[:max_length] + "..."
        return text

    def __repr__(self) -> str:
        return f"<ErrorLog {self.error_code} resolved={self.resolved}>"
