"""
F1Catalog - cache-aside read path for seasons and races.
"""

from loguru import logger

from f1sync.datastore.types import Race, RaceSummary, SeasonSummary
from f1sync.services.cache import SEASONS_CACHE_KEY, CacheManager, races_cache_key
from f1sync.services.reconciler import BatchReconciler
from f1sync.validation import validate_year


def is_champion(race: Race) -> bool:
    """Whether the race winner is also the champion of that season."""
    return (
        race.champion_driver_id is not None
        and race.winner_driver_id == race.champion_driver_id
    )


def to_race_summary(race: Race) -> RaceSummary:
    return RaceSummary(
        round=race.round,
        name=race.name,
        url=race.url,
        date=race.date,
        country=race.country,
        winner=race.winner,
        is_champion=is_champion(race),
    )


class F1Catalog:
    """
    Serves seasons and races from the cache, falling back to the reconciler.

    Results are cached only when the reconciliation finished without item
    errors, so a partially healed listing is retried on the next request.
    """

    def __init__(
        self,
        reconciler: BatchReconciler,
        cache: CacheManager,
        seasons_ttl_seconds: int = 300,
        races_ttl_seconds: int = 300,
    ):
        self.reconciler = reconciler
        self.cache = cache
        self.seasons_ttl_seconds = seasons_ttl_seconds
        self.races_ttl_seconds = races_ttl_seconds

    async def get_seasons(self) -> list[SeasonSummary]:
        cached = await self.cache.get(SEASONS_CACHE_KEY)
        if cached is not None:
            logger.debug("Serving seasons from cache")
            return [SeasonSummary.model_validate(item) for item in cached]

        result = await self.reconciler.sync_seasons()
        if not result.has_errors:
            await self.cache.set(
                SEASONS_CACHE_KEY,
                [item.model_dump(mode="json") for item in result.items],
                self.seasons_ttl_seconds,
            )
        return result.items

    async def get_races(self, year: int) -> list[RaceSummary]:
        validate_year(year)
        key = races_cache_key(year)

        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug(f"Serving races for {year} from cache")
            return [RaceSummary.model_validate(item) for item in cached]

        result = await self.reconciler.sync_races(year)
        races = [to_race_summary(race) for race in result.items]
        if not result.has_errors:
            await self.cache.set(
                key,
                [race.model_dump(mode="json") for race in races],
                self.races_ttl_seconds,
            )
        return races
