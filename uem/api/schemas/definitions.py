"""Pydantic v2 schema for the error definitions consumed by the client config loader."""
from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel


class ErrorDefinitionsResponse(BaseModel):
    errors: Dict[str, Dict[str, Any]]
    types: Dict[str, Dict[str, Any]]
    blocking_levels: Dict[str, Dict[str, Any]]
