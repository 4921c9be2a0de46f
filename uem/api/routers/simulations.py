"""Simulation router: switch error simulations on and off for test tooling.

Every route is rejected with 403 outside the simulation environments.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from uem.api.dependencies import (
    get_error_manager,
    get_testing_conditions,
    require_simulation_environment,
)
from uem.api.rate_limit import RATE_LIMIT, limiter
from uem.api.schemas.simulations import (
    ActiveSimulationsResponse,
    ErrorCodesResponse,
    ResetSimulationsResponse,
    SimulationResponse,
)
from uem.errors.manager import ErrorManager
from uem.errors.testing import TestingConditionsManager

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/errors",
    tags=["simulations"],
    dependencies=[Depends(require_simulation_environment)],
)


@router.post("/simulate/{code}", response_model=SimulationResponse)
@limiter.limit(RATE_LIMIT)
async def activate_simulation(
    request: Request,
    code: str,
    manager: ErrorManager = Depends(get_error_manager),
    conditions: TestingConditionsManager = Depends(get_testing_conditions),
):
    if manager.get_error_config(code) is None:
        logger.warning("simulations: refusing to simulate undefined code %s", code)
        return JSONResponse(
            status_code=404,
            content={
                "success": False,
                "message": f"Error code {code} has no configuration and cannot be simulated",
                "errorCode": code,
            },
        )
    conditions.activate(code)
    return SimulationResponse(success=True, message=f"Simulation activated for {code}", errorCode=code)


@router.delete("/simulate/{code}", response_model=SimulationResponse)
async def deactivate_simulation(
    code: str,
    conditions: TestingConditionsManager = Depends(get_testing_conditions),
):
    conditions.deactivate(code)
    return SimulationResponse(success=True, message=f"Simulation deactivated for {code}", errorCode=code)


@router.get("/simulations", response_model=ActiveSimulationsResponse)
async def list_simulations(
    conditions: TestingConditionsManager = Depends(get_testing_conditions),
):
    active = sorted(conditions.get_active_conditions())
    return ActiveSimulationsResponse(activeSimulations=active, count=len(active))


@router.post("/simulations/reset", response_model=ResetSimulationsResponse)
async def reset_simulations(
    conditions: TestingConditionsManager = Depends(get_testing_conditions),
):
    count = conditions.reset_all_conditions()
    return ResetSimulationsResponse(message="All simulations have been reset", count=count)


@router.get("/codes", response_model=ErrorCodesResponse)
async def list_error_codes(
    error_type: Optional[str] = Query(default=None, alias="type"),
    manager: ErrorManager = Depends(get_error_manager),
):
    """All known error codes, optionally of one severity type (critical, error, warning, notice)."""
    codes = sorted(manager.error_codes(error_type))
    return ErrorCodesResponse(errorCodes=codes, count=len(codes), filter=error_type)
