"""FastAPI dependency providers."""
from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from uem.config.settings import ErrorManagerSettings
from uem.core.exceptions import ConfigurationError, SimulationNotAllowedError
from uem.errors.manager import ErrorManager
from uem.errors.testing import TestingConditionsManager


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a transactional AsyncSession from the app-level session factory."""
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        raise ConfigurationError("Error log database is not configured (UEM_DB_LOG_ENABLED is off)")
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_settings(request: Request) -> ErrorManagerSettings:
    return request.app.state.settings


def get_error_manager(request: Request) -> ErrorManager:
    return request.app.state.error_manager


def get_testing_conditions(request: Request) -> TestingConditionsManager:
    return request.app.state.testing_conditions


def require_simulation_environment(request: Request) -> None:
    """Reject simulation endpoints outside the configured simulation environments."""
    settings = get_settings(request)
    if not settings.simulation_allowed:
        raise SimulationNotAllowedError(
            f"Error simulation is not allowed in the {settings.environment!r} environment",
            details={"environment": settings.environment},
        )
