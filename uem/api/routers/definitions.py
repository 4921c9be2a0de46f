"""Definitions router: serves the error policy table to the client config loader."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from uem.api.dependencies import get_error_manager
from uem.api.rate_limit import RATE_LIMIT, limiter
from uem.api.schemas.definitions import ErrorDefinitionsResponse
from uem.errors.manager import ErrorManager

router = APIRouter(tags=["definitions"])


@router.get("/error-definitions", response_model=ErrorDefinitionsResponse)
@limiter.limit(RATE_LIMIT)
async def error_definitions(
    request: Request,
    manager: ErrorManager = Depends(get_error_manager),
):
    return manager.definitions_payload()
