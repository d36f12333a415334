"""FastAPI application exposing seasons and races."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from loguru import logger

from f1sync.container import AppContainer
from f1sync.exceptions import to_http_exception
from f1sync.services.catalog import F1Catalog
from f1sync.settings import Settings, global_settings


def _catalog(request: Request) -> F1Catalog:
    return request.app.state.catalog


async def get_seasons(request: Request) -> dict[str, Any]:
    """Season champions from the start year to the current year."""
    try:
        seasons = await _catalog(request).get_seasons()
    except Exception as e:
        logger.error(f"Error fetching seasons: {e}")
        raise to_http_exception(e, "fetch seasons") from e

    return {"success": True, "data": [s.model_dump(mode="json") for s in seasons]}


async def get_races(year: int, request: Request) -> dict[str, Any]:
    """Races of a season with their winners."""
    try:
        races = await _catalog(request).get_races(year)
    except Exception as e:
        logger.error(f"Error fetching races for {year}: {e}")
        raise to_http_exception(e, "fetch races") from e

    return {"success": True, "data": [r.model_dump(mode="json") for r in races]}


async def health_check(request: Request) -> dict[str, Any]:
    """Health check endpoint."""
    container: AppContainer | None = getattr(request.app.state, "container", None)
    status: dict[str, Any] = {"status": "ok", "service": "f1sync"}
    if container is not None:
        status["cache"] = container.cache.get_stats().to_dict()
        status["scheduler_running"] = (
            container.scheduler is not None and container.scheduler.is_running()
        )
    return status


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the FastAPI app.

    The lifespan builds an AppContainer from ``settings`` and closes it on
    shutdown. Tests may set ``app.state.catalog`` directly instead.

    Args:
        settings: Settings to wire with (defaults to global_settings)

    Returns:
        FastAPI app
    """
    settings = settings or global_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        container = AppContainer(settings)
        await container.start()
        app.state.container = container
        app.state.catalog = container.catalog
        try:
            yield
        finally:
            await container.close()

    app = FastAPI(title="F1 Sync API", lifespan=lifespan)

    app.get("/health")(health_check)
    app.get("/api/seasons")(get_seasons)
    app.get("/api/seasons/{year}/races")(get_races)

    return app
