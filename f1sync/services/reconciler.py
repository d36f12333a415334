"""
BatchReconciler - gap-aware self-healing for seasons and races.

Both entity families follow one cycle: read what the store has, fetch what
is missing from upstream, upsert it item by item through the throttled
batch processor, then re-read the store.
"""

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from loguru import logger

from f1sync.datasource.ergast import ErgastSource, RaceInfo
from f1sync.datastore.repositories import BatchResult, F1Repository
from f1sync.datastore.types import Race, SeasonSummary
from f1sync.services.errors import SyncError, UpstreamError
from f1sync.utils import log_operation
from f1sync.validation import (
    current_year,
    validate_driver_data,
    validate_race_data,
    validate_year,
)

T = TypeVar("T")


@dataclass
class ReconcileResult(Generic[T]):
    """Items read back from the store, plus the batch that filled the gaps."""

    items: list[T]
    batch: BatchResult | None = None

    @property
    def has_errors(self) -> bool:
        return self.batch is not None and bool(self.batch.errors)


class BatchReconciler:
    """Fills missing seasons and races from the upstream API."""

    def __init__(
        self,
        source: ErgastSource,
        repository: F1Repository,
        start_year: int = 2005,
        year_provider: Callable[[], int] = current_year,
    ):
        self.source = source
        self.repository = repository
        self.start_year = start_year
        self._year_provider = year_provider

    @log_operation
    async def sync_seasons(self) -> ReconcileResult[SeasonSummary]:
        """
        Return one entry per year from start_year to the current year.

        Missing years are fetched and stored first. A year whose champion is
        still unknown upstream is not stored, so it is retried on the next call,
        and reported with champion=None.

        Raises:
            SyncError: If the upstream API fails for a missing year. Validation
                and upsert failures stay per item in the batch errors.
        """
        end_year = self._year_provider()
        seasons = await self.repository.find_seasons(self.start_year, end_year)

        present = {season.year for season in seasons}
        missing = [
            {"year": year}
            for year in range(self.start_year, end_year + 1)
            if year not in present
        ]

        batch = None
        if missing:
            logger.info(f"Filling {len(missing)} missing seasons")
            try:
                batch = await self.repository.process_batch(
                    missing, self._fill_season, "season", abort_on=(UpstreamError,)
                )
            except UpstreamError as e:
                logger.error(f"Failed to fetch season data for {e.year}: {e}")
                raise SyncError(e.year, e, "season data") from e
            self._log_batch_errors("Season", batch)
            seasons = await self.repository.find_seasons(self.start_year, end_year)

        by_year = {season.year: season for season in seasons}
        items = [
            SeasonSummary(
                year=year,
                champion=by_year[year].champion if year in by_year else None,
            )
            for year in range(self.start_year, end_year + 1)
        ]
        return ReconcileResult(items=items, batch=batch)

    async def _fill_season(self, item: dict[str, int]) -> None:
        year = validate_year(item["year"])
        champion = await self.source.fetch_champion_driver(year)
        if champion is None:
            logger.info(f"No champion available for {year}, leaving season absent")
            return

        validate_driver_data(champion)
        driver = await self.repository.upsert_driver(champion)
        await self.repository.upsert_season(year, driver.id)

    @log_operation
    async def sync_races(self, year: int) -> ReconcileResult[Race]:
        """
        Return the races of a season ordered by round.

        Stored races are returned as-is. Otherwise the season is fetched,
        upserted race by race, and read back from the store.

        Raises:
            ValidationError: If the year is out of range
            SyncError: If the season could not be fetched at all
        """
        validate_year(year)

        existing = await self.repository.find_races_by_season(year)
        if existing:
            return ReconcileResult(items=existing)

        try:
            results = await self.source.fetch_season_results(year)
        except Exception as e:
            logger.error(f"Failed to fetch results for year {year}: {e}")
            raise SyncError(year, e, "race data") from e

        with_winner = [race for race in results if race.winner is not None]
        if len(with_winner) < len(results):
            logger.info(
                f"Skipping {len(results) - len(with_winner)} races without a winner "
                f"in {year}"
            )

        async def fill_race(race: RaceInfo) -> None:
            validate_race_data(race)
            validate_driver_data(race.winner)
            driver = await self.repository.upsert_driver(race.winner)
            await self.repository.upsert_race(
                year,
                race.round,
                race.name,
                driver.id,
                url=race.url,
                date=race.date,
                country=race.country,
            )

        batch = await self.repository.process_batch(with_winner, fill_race, "race")
        self._log_batch_errors("Race", batch)

        races = await self.repository.find_races_by_season(year)
        logger.info(
            f"Seeded races for {year}: {len(races)} stored, "
            f"{batch.processed_count}/{batch.total_count} processed, "
            f"{len(batch.errors)} errors"
        )
        return ReconcileResult(items=races, batch=batch)

    @staticmethod
    def _log_batch_errors(label: str, batch: BatchResult) -> None:
        if not batch.errors:
            return
        summary = ", ".join(f"{label} {e.id}: {e.error}" for e in batch.errors)
        logger.error(f"Completed with {len(batch.errors)} errors: {summary}")
