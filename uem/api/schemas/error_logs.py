"""Pydantic v2 schemas for the error-log dashboard API."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ErrorLogResponse(BaseModel):
    id: UUID
    error_code: str
    error_type: str
    error_level: str
    error_message: Optional[str] = None
    user_message: Optional[str] = None
    http_status_code: int
    display_method: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    exception_class: Optional[str] = None
    exception_message: Optional[str] = None
    exception_file: Optional[str] = None
    exception_line: Optional[int] = None
    exception_trace: Optional[str] = None
    request_method: Optional[str] = None
    request_url: Optional[str] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    user_id: Optional[str] = None
    resolved: bool
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolution_notes: Optional[str] = None
    notified: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ErrorLogListResponse(BaseModel):
    items: List[ErrorLogResponse]
    total: int
    skip: int
    limit: int


class ErrorLogDetailResponse(BaseModel):
    log: ErrorLogResponse
    context_summary: str
    similar: List[ErrorLogResponse]


class CodeCount(BaseModel):
    error_code: str
    total: int


class FrequencyBucket(BaseModel):
    period: Optional[str] = None
    error_code: str
    total: int


class ErrorStatsResponse(BaseModel):
    days: int
    period: str
    top_codes: List[CodeCount]
    counts_by_type: Dict[str, int]
    frequency: List[FrequencyBucket]


class ResolveRequest(BaseModel):
    resolved_by: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None


class BulkResolveRequest(BaseModel):
    ids: List[UUID] = Field(..., min_length=1)
    resolved_by: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None


class BulkResolveResponse(BaseModel):
    updated: int


class PurgeResolvedRequest(BaseModel):
    older_than: int = Field(default=30, ge=1, le=3650)
    """Age in days."""


class PurgeResolvedResponse(BaseModel):
    deleted: int
    older_than: int
