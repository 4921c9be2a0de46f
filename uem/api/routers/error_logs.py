"""Error-log router: dashboard listing, statistics and resolution workflow."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from uem.api.dependencies import get_session
from uem.api.schemas.error_logs import (
    BulkResolveRequest,
    BulkResolveResponse,
    ErrorLogDetailResponse,
    ErrorLogListResponse,
    ErrorLogResponse,
    ErrorStatsResponse,
    PurgeResolvedRequest,
    PurgeResolvedResponse,
    ResolveRequest,
)
from uem.core.exceptions import NotFoundError, ValidationError
from uem.infra.database.repositories import ErrorLogRepository
from uem.infra.database.repositories.error_log import FREQUENCY_PERIODS

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/errors/logs", tags=["error-logs"])

STATS_MIN_DAYS = 7
STATS_MAX_DAYS = 90

_STATUS_FILTERS = {"resolved": True, "unresolved": False, "all": None}


def _resolved_filter(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    if value not in _STATUS_FILTERS:
        raise ValidationError(
            "status must be one of resolved, unresolved, all",
            details={"status": value},
        )
    return _STATUS_FILTERS[value]


async def _get_or_404(repo: ErrorLogRepository, log_id: UUID):
    log = await repo.get_by_id(log_id)
    if log is None:
        raise NotFoundError("Error log not found", details={"id": str(log_id)})
    return log


@router.get("", response_model=ErrorLogListResponse)
async def list_error_logs(
    code: Optional[str] = None,
    error_type: Optional[str] = Query(default=None, alias="type"),
    resolution: Optional[str] = Query(default=None, alias="status"),
    date_from: Optional[datetime] = Query(default=None, alias="from"),
    date_to: Optional[datetime] = Query(default=None, alias="to"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=200),
    session: AsyncSession = Depends(get_session),
):
    repo = ErrorLogRepository(session)
    rows, total = await repo.list_filtered(
        code=code,
        type=error_type,
        resolved=_resolved_filter(resolution),
        date_from=date_from,
        date_to=date_to,
        skip=skip,
        limit=limit,
    )
    return ErrorLogListResponse(
        items=[ErrorLogResponse.model_validate(r) for r in rows],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/stats", response_model=ErrorStatsResponse)
async def error_stats(
    days: int = 30,
    period: str = "daily",
    code: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    """Top codes, counts per type and per-code frequency. ``days`` is clamped to 7..90."""
    if period not in FREQUENCY_PERIODS:
        raise ValidationError(
            f"period must be one of {', '.join(FREQUENCY_PERIODS)}",
            details={"period": period},
        )
    days = max(STATS_MIN_DAYS, min(STATS_MAX_DAYS, days))
    since = datetime.now(timezone.utc) - timedelta(days=days)

    repo = ErrorLogRepository(session)
    return ErrorStatsResponse(
        days=days,
        period=period,
        top_codes=await repo.top_codes(since=since),
        counts_by_type=await repo.counts_by_type(since=since),
        frequency=await repo.frequency(period=period, days=days, code=code),
    )


@router.post("/bulk-resolve", response_model=BulkResolveResponse)
async def bulk_resolve(
    body: BulkResolveRequest,
    session: AsyncSession = Depends(get_session),
):
    repo = ErrorLogRepository(session)
    updated = await repo.bulk_resolve(body.ids, resolved_by=body.resolved_by, notes=body.notes)
    logger.info("error_logs: bulk-resolved %d of %d rows", updated, len(body.ids))
    return BulkResolveResponse(updated=updated)


@router.post("/purge-resolved", response_model=PurgeResolvedResponse)
async def purge_resolved(
    body: PurgeResolvedRequest,
    session: AsyncSession = Depends(get_session),
):
    repo = ErrorLogRepository(session)
    deleted = await repo.purge_resolved(older_than_days=body.older_than)
    logger.info("error_logs: purged %d resolved rows older than %d days", deleted, body.older_than)
    return PurgeResolvedResponse(deleted=deleted, older_than=body.older_than)


@router.get("/{log_id}", response_model=ErrorLogDetailResponse)
async def get_error_log(
    log_id: UUID,
    session: AsyncSession = Depends(get_session),
):
    repo = ErrorLogRepository(session)
    log = await _get_or_404(repo, log_id)
    similar = await repo.similar(log)
    return ErrorLogDetailResponse(
        log=ErrorLogResponse.model_validate(log),
        context_summary=log.context_summary(),
        similar=[ErrorLogResponse.model_validate(s) for s in similar],
    )


@router.post("/{log_id}/resolve", response_model=ErrorLogResponse)
async def resolve_error_log(
    log_id: UUID,
    body: ResolveRequest,
    session: AsyncSession = Depends(get_session),
):
    repo = ErrorLogRepository(session)
    log = await _get_or_404(repo, log_id)
    log.mark_resolved(body.resolved_by, body.notes)
    return ErrorLogResponse.model_validate(log)


@router.post("/{log_id}/unresolve", response_model=ErrorLogResponse)
async def unresolve_error_log(
    log_id: UUID,
    session: AsyncSession = Depends(get_session),
):
    repo = ErrorLogRepository(session)
    log = await _get_or_404(repo, log_id)
    log.mark_unresolved()
    return ErrorLogResponse.model_validate(log)


@router.delete("/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_error_log(
    log_id: UUID,
    session: AsyncSession = Depends(get_session),
):
    repo = ErrorLogRepository(session)
    if not await repo.delete(log_id):
        raise NotFoundError("Error log not found", details={"id": str(log_id)})
