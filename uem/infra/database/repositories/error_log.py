"""ErrorLog repository: dashboard queries, statistics and bulk maintenance."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from uem.infra.database.models.error_log import ErrorLog

FREQUENCY_PERIODS = ("daily", "weekly", "monthly")
_TRUNC_UNIT = {"daily": "day", "weekly": "week", "monthly": "month"}


class ErrorLogRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, log_id: UUID) -> Optional[ErrorLog]:
        return await self.session.get(ErrorLog, log_id)

    async def create(self, data: Dict[str, Any]) -> ErrorLog:
        log = ErrorLog(**data)
        self.session.add(log)
        await self.session.flush()
        await self.session.refresh(log)
        return log

    async def delete(self, log_id: UUID) -> bool:
        log = await self.get_by_id(log_id)
        if log is None:
            return False
        await self.session.delete(log)
        await self.session.flush()
        return True

    async def list_filtered(
        self,
        *,
        code: Optional[str] = None,
        type: Optional[str] = None,
        resolved: Optional[bool] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[ErrorLog], int]:
        """Newest first; returns (page, total matching rows)."""
        conditions = []
        if code:
            conditions.append(ErrorLog.error_code == code)
        if type:
            conditions.append(ErrorLog.error_type == type)
        if resolved is not None:
            conditions.append(ErrorLog.resolved.is_(resolved))
        if date_from is not None:
            conditions.append(ErrorLog.created_at >= date_from)
        if date_to is not None:
            conditions.append(ErrorLog.created_at <= date_to)

        stmt = select(ErrorLog).where(*conditions).order_by(ErrorLog.created_at.desc())
        stmt = stmt.offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        rows = list(result.scalars().all())

        count_stmt = select(func.count()).select_from(ErrorLog).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar_one()
        return rows, total

    async def similar(self, log: ErrorLog, *, limit: int = 5) -> List[ErrorLog]:
        """Other rows with the same error code, newest first."""
        stmt = (
            select(ErrorLog)
            .where(ErrorLog.error_code == log.error_code, ErrorLog.id != log.id)
            .order_by(ErrorLog.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def top_codes(self, *, limit: int = 10, since: Optional[datetime] = None) -> List[Dict[str, Any]]:
        total = func.count().label("total")
        stmt = select(ErrorLog.error_code, total).group_by(ErrorLog.error_code)
        if since is not None:
            stmt = stmt.where(ErrorLog.created_at >= since)
        stmt = stmt.order_by(total.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return [{"error_code": code, "total": count} for code, count in result.all()]

    async def counts_by_type(self, *, since: Optional[datetime] = None) -> Dict[str, int]:
        stmt = select(ErrorLog.error_type, func.count()).group_by(ErrorLog.error_type)
        if since is not None:
            stmt = stmt.where(ErrorLog.created_at >= since)
        result = await self.session.execute(stmt)
        return {error_type: count for error_type, count in result.all()}

    async def frequency(
        self, *, period: str = "daily", days: int = 30, code: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Row counts per (bucket, code) over the last *days* days."""
        if period not in FREQUENCY_PERIODS:
            raise ValueError(f"period must be one of {FREQUENCY_PERIODS}, got {period!r}")
        since = datetime.now(timezone.utc) - timedelta(days=days)
        bucket = func.date_trunc(_TRUNC_UNIT[period], ErrorLog.created_at).label("bucket")
        stmt = (
            select(bucket, ErrorLog.error_code, func.count().label("total"))
            .where(ErrorLog.created_at >= since)
            .group_by(bucket, ErrorLog.error_code)
            .order_by(bucket)
        )
        if code:
            stmt = stmt.where(ErrorLog.error_code == code)
        result = await self.session.execute(stmt)
        return [
            {"period": b.isoformat() if b is not None else None, "error_code": c, "total": n}
            for b, c, n in result.all()
        ]

    async def bulk_resolve(
        self, ids: List[UUID], *, resolved_by: Optional[str] = None, notes: Optional[str] = None
    ) -> int:
        """Resolve the unresolved rows among *ids*; already-resolved rows are left as they are."""
        if not ids:
            return 0
        stmt = (
            update(ErrorLog)
            .where(ErrorLog.id.in_(ids), ErrorLog.resolved.is_(False))
            .values(
                resolved=True,
                resolved_at=datetime.now(timezone.utc),
                resolved_by=resolved_by,
                resolution_notes=notes,
            )
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount or 0

    async def purge_resolved(self, *, older_than_days: int) -> int:
        """Delete resolved rows created more than *older_than_days* days ago."""
        if older_than_days < 1:
            raise ValueError("older_than_days must be >= 1")
        cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
        stmt = delete(ErrorLog).where(ErrorLog.resolved.is_(True), ErrorLog.created_at < cutoff)
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount or 0
