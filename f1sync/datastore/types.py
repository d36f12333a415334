"""
Read shapes returned by the repository and the catalog.
"""

from pydantic import BaseModel, ConfigDict


class Driver(BaseModel):
    """A persisted driver."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    driver_ref: str
    name: str
    nationality: str | None = None
    url: str | None = None


class Season(BaseModel):
    """A persisted season, optionally with its champion joined."""

    year: int
    champion_driver_id: int | None = None
    champion: Driver | None = None


class Race(BaseModel):
    """A persisted race plus the champion id of its season."""

    id: int
    year: int
    round: int
    name: str
    url: str | None = None
    date: str | None = None
    country: str | None = None
    winner_driver_id: int
    winner: Driver | None = None
    champion_driver_id: int | None = None


class SeasonSummary(BaseModel):
    """One entry of the seasons listing."""

    year: int
    champion: Driver | None = None


class RaceSummary(BaseModel):
    """One entry of a season's race listing."""

    round: int
    name: str
    url: str | None = None
    date: str | None = None
    country: str | None = None
    winner: Driver | None = None
    is_champion: bool = False
