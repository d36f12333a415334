"""
Shape checks for years, drivers and races before they reach the store.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from f1sync.services.errors import ValidationError

MIN_YEAR = 1950


def current_year() -> int:
    return datetime.now().year


class _DriverShape(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    driver_ref: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=100)
    nationality: str | None = Field(default=None, max_length=50)


class _RaceShape(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    round: int = Field(gt=0)
    country: str | None = Field(default=None, max_length=100)


def _as_mapping(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return data


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "value"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def validate_year(year: Any) -> int:
    """Check that ``year`` is an int in ``[1950, current_year() + 1]``."""
    if isinstance(year, bool) or not isinstance(year, int):
        raise ValidationError(f"Invalid year: {year!r} is not an integer", "year")

    max_year = current_year() + 1
    if year < MIN_YEAR or year > max_year:
        raise ValidationError(
            f"Invalid year: {year} is outside {MIN_YEAR}..{max_year}", "year"
        )
    return year


def validate_driver_data(driver: Any) -> None:
    if driver is None:
        raise ValidationError("Invalid driver data: missing driver", "driver")
    try:
        _DriverShape.model_validate(_as_mapping(driver))
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid driver data: {_describe(e)}", "driver") from e


def validate_race_data(race: Any) -> None:
    try:
        _RaceShape.model_validate(_as_mapping(race))
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid race data: {_describe(e)}", "race") from e
