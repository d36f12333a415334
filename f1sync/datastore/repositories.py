"""
Repository layer - the only code that reads or writes the relational store.
"""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Sequence, TypeVar

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from f1sync.datastore.models import DriverDB, RaceDB, SeasonDB
from f1sync.datastore.types import Driver, Race, Season
from f1sync.services.errors import PersistenceError

if TYPE_CHECKING:
    from f1sync.datasource.ergast import DriverInfo

T = TypeVar("T")


@dataclass
class BatchError:
    """A single failed item of a batch."""

    id: Any
    error: str


@dataclass
class BatchResult:
    """Outcome of process_batch."""

    errors: list[BatchError] = field(default_factory=list)
    processed_count: int = 0
    total_count: int = 0


def _item_identifier(item: Any) -> Any:
    for attr in ("id", "round", "year"):
        if isinstance(item, Mapping):
            value = item.get(attr)
        else:
            value = getattr(item, attr, None)
        if value:
            return value
    return "unknown"


class F1Repository:
    """Natural-key upserts and range reads for drivers, seasons and races."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        throttle_seconds: float = 0.3,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._session_factory = session_factory
        self.throttle_seconds = throttle_seconds
        self._sleep = sleep

    # ── Upserts ──────────────────────────────────────────────────────────────

    async def upsert_driver(self, driver: "DriverInfo") -> Driver:
        """Insert or update a driver by its reference string."""

        async def apply(session: AsyncSession) -> Driver:
            result = await session.execute(
                select(DriverDB).where(DriverDB.driver_ref == driver.driver_ref)
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = DriverDB(
                    driver_ref=driver.driver_ref,
                    name=driver.name,
                    nationality=driver.nationality,
                    url=driver.url,
                )
                session.add(row)
                await session.flush()
            else:
                row.name = driver.name
                row.nationality = driver.nationality
                if driver.url:
                    row.url = driver.url
            return Driver.model_validate(row)

        return await self._upsert(f"driver {driver.driver_ref}", apply)

    async def upsert_season(
        self, year: int, champion_driver_id: int | None = None
    ) -> Season:
        """Insert or update a season by year."""

        async def apply(session: AsyncSession) -> Season:
            row = await session.get(SeasonDB, year)
            if row is None:
                row = SeasonDB(year=year, champion_driver_id=champion_driver_id)
                session.add(row)
                await session.flush()
            else:
                row.champion_driver_id = champion_driver_id
            return Season(year=row.year, champion_driver_id=row.champion_driver_id)

        return await self._upsert(f"season {year}", apply)

    async def upsert_race(
        self,
        year: int,
        round: int,
        name: str,
        winner_driver_id: int,
        url: str | None = None,
        date: str | None = None,
        country: str | None = None,
    ) -> Race:
        """Insert or update a race by (year, round)."""

        async def apply(session: AsyncSession) -> Race:
            result = await session.execute(
                select(RaceDB).where(RaceDB.year == year, RaceDB.round == round)
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = RaceDB(year=year, round=round)
                session.add(row)
            row.name = name
            row.winner_driver_id = winner_driver_id
            row.url = url
            row.date = date
            row.country = country
            await session.flush()
            return self._to_race(row)

        return await self._upsert(f"race {year}/{round}", apply)

    async def _upsert(
        self, label: str, apply: Callable[[AsyncSession], Awaitable[T]]
    ) -> T:
        # a duplicate-key insert means another request created the row first;
        # the second pass finds it and updates instead
        try:
            return await self._commit(apply)
        except IntegrityError:
            logger.debug(f"Duplicate key while upserting {label}, retrying as update")
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to upsert {label}: {e}") from e

        try:
            return await self._commit(apply)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to upsert {label}: {e}") from e

    async def _commit(self, apply: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self._session_factory() as session:
            result = await apply(session)
            await session.commit()
            return result

    # ── Reads ────────────────────────────────────────────────────────────────

    async def find_seasons(
        self, start_year: int, end_year: int, include_champion: bool = True
    ) -> list[Season]:
        """All seasons in ``[start_year, end_year]`` ordered by year."""
        stmt = (
            select(SeasonDB)
            .where(SeasonDB.year >= start_year, SeasonDB.year <= end_year)
            .order_by(SeasonDB.year.asc())
        )
        if include_champion:
            stmt = stmt.options(selectinload(SeasonDB.champion))

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to read seasons {start_year}-{end_year}: {e}"
            ) from e

        seasons = []
        for row in rows:
            champion = None
            if include_champion and row.champion is not None:
                champion = Driver.model_validate(row.champion)
            seasons.append(
                Season(
                    year=row.year,
                    champion_driver_id=row.champion_driver_id,
                    champion=champion,
                )
            )
        return seasons

    async def find_races_by_season(
        self, year: int, include_winner: bool = True
    ) -> list[Race]:
        """All races of a season ordered by round, with the season's champion id."""
        stmt = (
            select(RaceDB, SeasonDB.champion_driver_id)
            .outerjoin(SeasonDB, SeasonDB.year == RaceDB.year)
            .where(RaceDB.year == year)
            .order_by(RaceDB.round.asc())
        )
        if include_winner:
            stmt = stmt.options(selectinload(RaceDB.winner))

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read races for {year}: {e}") from e

        return [
            self._to_race(race, champion_id, include_winner)
            for race, champion_id in rows
        ]

    @staticmethod
    def _to_race(
        row: RaceDB,
        champion_driver_id: int | None = None,
        include_winner: bool = False,
    ) -> Race:
        return Race(
            id=row.id,
            year=row.year,
            round=row.round,
            name=row.name,
            url=row.url,
            date=row.date,
            country=row.country,
            winner_driver_id=row.winner_driver_id,
            winner=Driver.model_validate(row.winner) if include_winner else None,
            champion_driver_id=champion_driver_id,
        )

    # ── Batches ──────────────────────────────────────────────────────────────

    async def process_batch(
        self,
        items: Sequence[T],
        process_fn: Callable[[T], Awaitable[Any]],
        item_label: str = "item",
        abort_on: tuple[type[Exception], ...] = (),
    ) -> BatchResult:
        """
        Apply ``process_fn`` to each item one at a time.

        The throttle delay follows every item whether it succeeded or not.
        Item failures are collected instead of aborting the batch, except
        for exceptions listed in ``abort_on``, which stop the batch and propagate.
        """
        batch = BatchResult(total_count=len(items))

        for item in items:
            try:
                await process_fn(item)
                batch.processed_count += 1
            except abort_on:
                raise
            except Exception as e:
                identifier = _item_identifier(item)
                batch.errors.append(BatchError(id=identifier, error=str(e)))
                logger.error(f"Error processing {item_label} {identifier}: {e}")

            await self._sleep(self.throttle_seconds)

        return batch
