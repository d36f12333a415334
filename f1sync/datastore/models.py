"""
Database models.
SQLAlchemy 2.0+ declarative mapping.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all models"""

    pass


class DriverDB(Base):
    """Drivers, keyed by their upstream reference"""

    __tablename__ = "drivers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    driver_ref: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    nationality: Mapped[str | None] = mapped_column(String(50), nullable=True)
    url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Driver(ref={self.driver_ref}, name={self.name})>"


class SeasonDB(Base):
    """Seasons with an optional champion"""

    __tablename__ = "seasons"

    year: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    champion_driver_id: Mapped[int | None] = mapped_column(
        ForeignKey("drivers.id"), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now, nullable=False
    )

    champion: Mapped[DriverDB | None] = relationship(lazy="raise")

    def __repr__(self) -> str:
        return f"<Season(year={self.year}, champion={self.champion_driver_id})>"


class RaceDB(Base):
    """Races with their winner"""

    __tablename__ = "races"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    round: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    winner_driver_id: Mapped[int] = mapped_column(
        ForeignKey("drivers.id"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now, nullable=False
    )

    winner: Mapped[DriverDB] = relationship(lazy="raise")

    __table_args__ = (UniqueConstraint("year", "round", name="uq_race_year_round"),)

    def __repr__(self) -> str:
        return f"<Race(year={self.year}, round={self.round}, name={self.name})>"
