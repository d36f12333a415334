"""
Current season refresh scheduler.
Uses APScheduler to force a refresh of the current season's champion.
"""

import time
from datetime import datetime, timedelta
from typing import Callable, Literal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger
from pydantic import BaseModel

from f1sync.datasource.ergast import ErgastSource
from f1sync.datastore.repositories import F1Repository
from f1sync.services.cache import SEASONS_CACHE_KEY, CacheManager
from f1sync.validation import current_year, validate_driver_data


class SeasonRefreshResult(BaseModel):
    """Outcome of one forced refresh of the current season."""

    status: Literal["success", "error"]
    operation: str = "refresh_current_season"
    year: int
    duration_ms: float
    champion_found: bool = False
    champion_updated: bool = False
    cache_invalidated: bool = False
    error: str | None = None


class SyncJobResult(BaseModel):
    """Outcome of one scheduled job run."""

    status: Literal["success", "error"]
    duration_ms: float
    result: SeasonRefreshResult | None = None
    error: str | None = None


class SeasonSyncScheduler:
    """Refreshes the current season on a cron schedule, independent of requests."""

    JOB_ID = "season_sync_job"
    STARTUP_JOB_ID = "season_sync_startup"

    def __init__(
        self,
        source: ErgastSource,
        repository: F1Repository,
        cache: CacheManager,
        cron: str = "0 3 * * *",
        startup_delay_seconds: float = 2.0,
        year_provider: Callable[[], int] = current_year,
    ):
        self.source = source
        self.repository = repository
        self.cache = cache
        self.cron = cron
        self.startup_delay_seconds = startup_delay_seconds
        self._year_provider = year_provider
        self.scheduler = AsyncIOScheduler()
        self._is_running = False

    async def refresh_current_season(self) -> SeasonRefreshResult:
        """
        Fetch the current champion straight from the API and store it.

        Bypasses the cache and the stored rows. A season without a champion
        yet is still stored, with champion None. The seasons cache entry is
        invalidated afterwards even when the refresh failed.
        """
        year = self._year_provider()
        start = time.perf_counter()
        champion_found = False
        champion_updated = False
        error: str | None = None

        logger.info(f"[SYNC] Refreshing current season ({year}) from API")
        try:
            champion = await self.source.fetch_champion_driver(year)
            if champion is not None:
                champion_found = True
                logger.info(f"[SYNC] Got champion data for {year}: {champion.name}")
                validate_driver_data(champion)
                driver = await self.repository.upsert_driver(champion)
                await self.repository.upsert_season(year, driver.id)
                champion_updated = True
            else:
                logger.info(f"[SYNC] No champion data available yet for {year}")
                await self.repository.upsert_season(year, None)
        except Exception as e:
            error = str(e)
            logger.error(f"[SYNC] Error refreshing current season: {e}")

        cache_invalidated = await self.cache.invalidate(SEASONS_CACHE_KEY)
        if cache_invalidated:
            logger.info("[SYNC] Invalidated seasons cache")
        else:
            logger.warning("[SYNC] Failed to invalidate seasons cache")

        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(f"[SYNC] Current season refresh finished in {duration_ms:.0f}ms")

        return SeasonRefreshResult(
            status="error" if error else "success",
            year=year,
            duration_ms=duration_ms,
            champion_found=champion_found,
            champion_updated=champion_updated,
            cache_invalidated=cache_invalidated,
            error=error,
        )

    async def run_season_sync_job(self) -> SyncJobResult:
        """Scheduled entry point; never raises."""
        logger.info("[SYNC] Starting current season refresh job")
        start = time.perf_counter()

        try:
            result = await self.refresh_current_season()
        except Exception as e:
            logger.error(f"[SYNC] Season sync job failed: {e}")
            return SyncJobResult(
                status="error",
                duration_ms=(time.perf_counter() - start) * 1000,
                error=str(e),
            )

        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(f"[SYNC] Current season refresh job completed in {duration_ms:.0f}ms")
        return SyncJobResult(
            status=result.status,
            duration_ms=duration_ms,
            result=result,
            error=result.error,
        )

    async def _run_on_startup(self) -> None:
        try:
            await self.run_season_sync_job()
        except Exception as e:
            logger.error(f"[SYNC] Error running season sync on startup: {e}")

    def start(self, run_immediately: bool = False) -> None:
        """Register the cron job and start the scheduler."""
        if self._is_running:
            logger.warning("Season sync scheduler is already running")
            return

        self.scheduler.add_job(
            self.run_season_sync_job,
            trigger=CronTrigger.from_crontab(self.cron),
            id=self.JOB_ID,
            name="Current Season Refresh",
            replace_existing=True,
        )

        if run_immediately:
            # delayed so the host process finishes booting first
            self.scheduler.add_job(
                self._run_on_startup,
                trigger="date",
                run_date=datetime.now() + timedelta(seconds=self.startup_delay_seconds),
                id=self.STARTUP_JOB_ID,
                name="Current Season Refresh (startup)",
                replace_existing=True,
            )

        self.scheduler.start()
        self._is_running = True

        logger.info(f"Season sync scheduler started: cron '{self.cron}'")

    def stop(self) -> None:
        """Stop the scheduler."""
        if not self._is_running:
            logger.warning("Season sync scheduler is not running")
            return

        self.scheduler.shutdown(wait=False)
        self._is_running = False
        logger.info("Season sync scheduler stopped")

    def is_running(self) -> bool:
        return self._is_running
