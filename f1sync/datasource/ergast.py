"""
Ergast (Jolpica mirror) data source for season champions and race winners.

API Documentation: https://github.com/jolpica/jolpica-f1
Rate limited: bursts answer HTTP 429 with a Retry-After header.
"""

import asyncio
import math
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from f1sync.services.errors import UpstreamError, UpstreamErrorKind


class DriverInfo(BaseModel):
    """Driver as described by the upstream API."""

    driver_ref: str
    name: str
    nationality: str | None = None
    url: str | None = None


class RaceInfo(BaseModel):
    """Race result as described by the upstream API; winner may be missing."""

    round: int
    name: str
    url: str | None = None
    date: str | None = None
    country: str | None = None
    winner: DriverInfo | None = None


class ErgastSource:
    """
    Ergast API data source.

    Only HTTP 429 is retried; every other failure is classified into an
    UpstreamErrorKind and raised as UpstreamError.
    """

    BASE_URL = "https://api.jolpi.ca/ergast/f1"
    SERVICE_ID = "ergast"
    DEFAULT_RETRY_AFTER = 1.0

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        max_attempts: int = 3,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._owns_client = http_client is None
        self._http_client = http_client

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._http_client

    async def fetch_champion_driver(self, year: int) -> DriverInfo | None:
        """
        Fetch the driver leading the standings of a season.

        Returns:
            DriverInfo, or None if the season has no standings yet
        """
        operation = "fetch_champion_driver"
        data = await self._get_json(f"/{year}/driverStandings/1.json", year, operation)

        try:
            lists = data["MRData"]["StandingsTable"]["StandingsLists"]
            if not lists or not lists[0].get("DriverStandings"):
                logger.info(f"No driver standings available for {year}")
                return None
            return self._transform_driver(lists[0]["DriverStandings"][0]["Driver"])
        except (KeyError, IndexError, TypeError, PydanticValidationError) as e:
            raise UpstreamError(
                UpstreamErrorKind.UNKNOWN,
                operation,
                year,
                detail=f"unexpected payload: {e!r}",
                service_id=self.SERVICE_ID,
            ) from e

    async def fetch_season_results(self, year: int) -> list[RaceInfo]:
        """
        Fetch every race of a season with its winner.

        Returns:
            RaceInfo list in upstream order; winner is None when unknown
        """
        operation = "fetch_season_results"
        data = await self._get_json(
            f"/{year}/results/1.json", year, operation, params={"limit": 100}
        )

        try:
            races = data["MRData"]["RaceTable"]["Races"]
            results = [self._transform_race(race) for race in races]
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamError(
                UpstreamErrorKind.UNKNOWN,
                operation,
                year,
                detail=f"unexpected payload: {e!r}",
                service_id=self.SERVICE_ID,
            ) from e

        logger.info(f"Fetched {len(results)} races for {year}")
        return results

    def _transform_driver(self, driver: dict[str, Any]) -> DriverInfo:
        name = " ".join(
            part for part in (driver.get("givenName"), driver.get("familyName")) if part
        )
        return DriverInfo(
            driver_ref=driver["driverId"],
            name=name,
            nationality=driver.get("nationality"),
            url=driver.get("url"),
        )

    def _transform_race(self, race: dict[str, Any]) -> RaceInfo:
        results = race.get("Results") or []
        winner = self._transform_driver(results[0]["Driver"]) if results else None
        location = (race.get("Circuit") or {}).get("Location") or {}
        return RaceInfo(
            round=int(race["round"]),
            name=race["raceName"],
            url=race.get("url"),
            date=race.get("date"),
            country=location.get("country"),
            winner=winner,
        )

    async def _get_json(
        self,
        path: str,
        year: int,
        operation: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """GET a JSON document, retrying rate-limited responses with backoff."""
        client = self._get_http_client()
        url = f"{self.base_url}{path}"

        for attempt in range(self.max_attempts):
            try:
                response = await client.get(
                    url, params=params, timeout=httpx.Timeout(self.timeout)
                )
            except httpx.TimeoutException as e:
                raise UpstreamError(
                    UpstreamErrorKind.TIMEOUT,
                    operation,
                    year,
                    detail=f"timed out after {self.timeout}s",
                    service_id=self.SERVICE_ID,
                ) from e
            except httpx.NetworkError as e:
                raise UpstreamError(
                    UpstreamErrorKind.NETWORK,
                    operation,
                    year,
                    detail=str(e),
                    service_id=self.SERVICE_ID,
                ) from e
            except httpx.HTTPError as e:
                raise UpstreamError(
                    UpstreamErrorKind.UNKNOWN,
                    operation,
                    year,
                    detail=str(e),
                    service_id=self.SERVICE_ID,
                ) from e

            if response.status_code == 429:
                if attempt + 1 >= self.max_attempts:
                    raise UpstreamError(
                        UpstreamErrorKind.RATE_LIMITED,
                        operation,
                        year,
                        detail=f"still rate limited after {self.max_attempts} attempts",
                        status_code=429,
                        service_id=self.SERVICE_ID,
                    )
                delay = self._retry_after(response) * 2**attempt
                logger.warning(
                    f"Rate limited on {operation} for {year}, "
                    f"retrying in {delay}s (attempt {attempt + 1}/{self.max_attempts})"
                )
                await self._sleep(delay)
                continue

            if response.is_error:
                raise UpstreamError(
                    UpstreamErrorKind.HTTP_STATUS,
                    operation,
                    year,
                    detail=response.text[:200],
                    status_code=response.status_code,
                    service_id=self.SERVICE_ID,
                )

            try:
                return response.json()
            except ValueError as e:
                raise UpstreamError(
                    UpstreamErrorKind.UNKNOWN,
                    operation,
                    year,
                    detail=f"invalid JSON: {e}",
                    service_id=self.SERVICE_ID,
                ) from e

        # max_attempts < 1
        raise UpstreamError(
            UpstreamErrorKind.UNKNOWN,
            operation,
            year,
            detail="no request attempted",
            service_id=self.SERVICE_ID,
        )

    def _retry_after(self, response: httpx.Response) -> float:
        header = response.headers.get("Retry-After")
        if header is None:
            return self.DEFAULT_RETRY_AFTER
        try:
            value = float(header)
        except ValueError:
            return self.DEFAULT_RETRY_AFTER
        if not math.isfinite(value):
            return self.DEFAULT_RETRY_AFTER
        return max(value, 0.0)

    async def close(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
        self._http_client = None
        logger.debug("ErgastSource closed")
