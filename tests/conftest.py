"""
Pytest configuration
====================
Shared fixtures: an in-memory store, a scripted upstream source, a
recording sleep and driver/race builders.
"""

from contextlib import asynccontextmanager

import pytest

from f1sync.datasource.ergast import DriverInfo, RaceInfo
from f1sync.datastore.engine import Database
from f1sync.datastore.repositories import F1Repository

MEMORY_DB_URL = "sqlite+aiosqlite:///:memory:"


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers every delay."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeSource:
    """Scripted upstream: values per year, exceptions are raised."""

    def __init__(self):
        self.champions: dict = {}
        self.seasons: dict = {}
        self.calls: list[tuple[str, int]] = []

    async def fetch_champion_driver(self, year: int):
        self.calls.append(("champion", year))
        value = self.champions.get(year)
        if isinstance(value, Exception):
            raise value
        return value

    async def fetch_season_results(self, year: int):
        self.calls.append(("results", year))
        value = self.seasons.get(year, [])
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def fake_source():
    return FakeSource()


@pytest.fixture
def open_repository(recording_sleep):
    """Async context manager yielding a repository over a fresh in-memory DB."""

    @asynccontextmanager
    async def _open():
        db = Database(MEMORY_DB_URL)
        await db.init()
        try:
            yield F1Repository(
                db.session_factory, throttle_seconds=0.3, sleep=recording_sleep
            )
        finally:
            await db.close()

    return _open


@pytest.fixture
def make_driver():
    def _make(ref: str = "max_verstappen", name: str | None = None, **kwargs):
        return DriverInfo(
            driver_ref=ref,
            name=name or ref.replace("_", " ").title(),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_race(make_driver):
    def _make(round: int, name: str | None = None, winner: str | None = None, **kw):
        return RaceInfo(
            round=round,
            name=name or f"Grand Prix {round}",
            winner=make_driver(winner) if winner else None,
            **kw,
        )

    return _make
