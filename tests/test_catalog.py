"""
Tests for the cache-aside read path and champion flag derivation.
"""

import asyncio

import pytest

from f1sync.datastore.repositories import BatchError, BatchResult
from f1sync.datastore.types import Driver, Race, SeasonSummary
from f1sync.services.cache import CacheManager
from f1sync.services.catalog import F1Catalog, is_champion, to_race_summary
from f1sync.services.errors import ValidationError
from f1sync.services.reconciler import ReconcileResult

HAMILTON = Driver(id=1, driver_ref="hamilton", name="Lewis Hamilton")
ROSBERG = Driver(id=2, driver_ref="rosberg", name="Nico Rosberg")


def make_race(round: int, winner: Driver, champion_id: int | None) -> Race:
    return Race(
        id=round,
        year=2016,
        round=round,
        name=f"Grand Prix {round}",
        winner_driver_id=winner.id,
        winner=winner,
        champion_driver_id=champion_id,
    )


class CountingReconciler:
    def __init__(self, seasons=None, races=None, batch=None):
        self.seasons = seasons or []
        self.races = races or []
        self.batch = batch
        self.season_calls = 0
        self.race_calls = []

    async def sync_seasons(self):
        self.season_calls += 1
        return ReconcileResult(items=self.seasons, batch=self.batch)

    async def sync_races(self, year):
        self.race_calls.append(year)
        return ReconcileResult(items=self.races, batch=self.batch)


class TestChampionFlag:
    def test_winner_equal_to_champion(self):
        assert is_champion(make_race(1, ROSBERG, ROSBERG.id)) is True

    def test_winner_different_from_champion(self):
        assert is_champion(make_race(1, HAMILTON, ROSBERG.id)) is False

    def test_season_without_champion(self):
        assert is_champion(make_race(1, HAMILTON, None)) is False
        assert to_race_summary(make_race(1, ROSBERG, None)).is_champion is False


class TestSeasons:
    def test_second_read_is_served_from_cache(self):
        seasons = [
            SeasonSummary(year=2015, champion=HAMILTON),
            SeasonSummary(year=2016, champion=None),
        ]
        reconciler = CountingReconciler(seasons=seasons)
        catalog = F1Catalog(reconciler, CacheManager())

        async def scenario():
            first = await catalog.get_seasons()
            second = await catalog.get_seasons()
            return first, second

        first, second = asyncio.run(scenario())
        assert reconciler.season_calls == 1
        assert first == second == seasons

    def test_partial_results_are_not_cached(self):
        batch = BatchResult(
            errors=[BatchError(id=2016, error="boom")],
            processed_count=0,
            total_count=1,
        )
        reconciler = CountingReconciler(
            seasons=[SeasonSummary(year=2016)], batch=batch
        )
        catalog = F1Catalog(reconciler, CacheManager())

        async def scenario():
            await catalog.get_seasons()
            await catalog.get_seasons()

        asyncio.run(scenario())
        assert reconciler.season_calls == 2


class TestRaces:
    def test_races_carry_champion_flag_and_are_cached(self):
        reconciler = CountingReconciler(
            races=[make_race(1, HAMILTON, ROSBERG.id), make_race(2, ROSBERG, ROSBERG.id)]
        )
        cache = CacheManager()
        catalog = F1Catalog(reconciler, cache)

        async def scenario():
            first = await catalog.get_races(2016)
            second = await catalog.get_races(2016)
            return first, second, await cache.get("races:2016")

        first, second, cached = asyncio.run(scenario())
        assert [r.is_champion for r in first] == [False, True]
        assert first == second
        assert reconciler.race_calls == [2016]
        assert cached[1]["winner"]["driver_ref"] == "rosberg"

    def test_invalid_year_never_reaches_the_reconciler(self):
        reconciler = CountingReconciler()
        catalog = F1Catalog(reconciler, CacheManager())

        with pytest.raises(ValidationError):
            asyncio.run(catalog.get_races(1900))
        assert reconciler.race_calls == []
