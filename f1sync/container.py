"""
Process-wide wiring: every shared handle is created here once and closed here.
"""

from loguru import logger

from f1sync.datasource.ergast import ErgastSource
from f1sync.datasource.scheduler import SeasonSyncScheduler
from f1sync.datastore.engine import Database
from f1sync.datastore.repositories import F1Repository
from f1sync.services.cache import CacheManager
from f1sync.services.catalog import F1Catalog
from f1sync.services.reconciler import BatchReconciler
from f1sync.settings import Settings


class AppContainer:
    """Builds and owns the database, HTTP client, cache and services."""

    def __init__(self, settings: Settings, source: ErgastSource | None = None):
        self.settings = settings
        self.database = Database(settings.database_url, echo=settings.database_echo)
        self.source = source or ErgastSource(
            base_url=settings.ergast_base_url,
            timeout=settings.request_timeout_seconds,
            max_attempts=settings.max_retry_attempts,
        )
        self.cache = CacheManager(
            max_size=settings.cache_max_size,
            default_ttl_seconds=settings.seasons_cache_ttl,
        )

        self.repository: F1Repository | None = None
        self.reconciler: BatchReconciler | None = None
        self.catalog: F1Catalog | None = None
        self.scheduler: SeasonSyncScheduler | None = None

    async def start(self, run_scheduler: bool = True) -> None:
        """Initialize the database, assemble the services and start the scheduler."""
        await self.database.init()

        self.repository = F1Repository(
            self.database.session_factory,
            throttle_seconds=self.settings.throttle_seconds,
        )
        self.reconciler = BatchReconciler(
            self.source,
            self.repository,
            start_year=self.settings.start_year,
        )
        self.catalog = F1Catalog(
            self.reconciler,
            self.cache,
            seasons_ttl_seconds=self.settings.seasons_cache_ttl,
            races_ttl_seconds=self.settings.races_cache_ttl,
        )
        self.scheduler = SeasonSyncScheduler(
            self.source,
            self.repository,
            self.cache,
            cron=self.settings.season_sync_cron,
            startup_delay_seconds=self.settings.startup_delay_seconds,
        )

        if run_scheduler:
            self.scheduler.start(run_immediately=self.settings.season_sync_on_startup)
        logger.info("Application services started")

    async def close(self) -> None:
        """Stop the scheduler and release connections."""
        if self.scheduler is not None and self.scheduler.is_running():
            self.scheduler.stop()
        await self.source.close()
        await self.database.close()
        logger.info("Application services stopped")
