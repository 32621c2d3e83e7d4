"""
Status API entry point.

Creates the FastAPI application and wires together:
- Routers (health, positions)
- The position scheduler, started and stopped with the app lifespan

No business logic belongs here.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from powerposition import __version__
from powerposition.core.config import Settings
from powerposition.interfaces.health import router as health_router
from powerposition.interfaces.positions.router import router as positions_router
from powerposition.realtime.scheduler import PositionScheduler

SHUTDOWN_TIMEOUT_SECONDS = 30.0


def create_app(scheduler: PositionScheduler, settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        scheduler: Scheduler whose loop runs for the lifetime of the app.
        settings: Validated process settings; only the title and version
            are read from them.

    Returns:
        A fully configured FastAPI application instance.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run the scheduler loop on a background thread while serving."""
        scheduler.start()
        yield
        scheduler.stop(timeout=SHUTDOWN_TIMEOUT_SECONDS)

    app = FastAPI(
        title=settings.project_name if settings else "PowerPosition",
        version=settings.version if settings else __version__,
        lifespan=lifespan,
    )
    app.state.scheduler = scheduler

    app.include_router(health_router, prefix="/api/v1")
    app.include_router(positions_router, prefix="/api/v1")

    return app
