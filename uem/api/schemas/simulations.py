"""Pydantic v2 schemas for the error simulation API (camelCase keys, as the test tooling expects)."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class SimulationResponse(BaseModel):
    success: bool
    message: str
    errorCode: str


class ActiveSimulationsResponse(BaseModel):
    success: bool = True
    activeSimulations: List[str]
    count: int


class ResetSimulationsResponse(BaseModel):
    success: bool = True
    message: str
    count: int


class ErrorCodesResponse(BaseModel):
    success: bool = True
    errorCodes: List[str]
    count: int
    filter: Optional[str] = None
