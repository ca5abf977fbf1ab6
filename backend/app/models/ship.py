"""Ship entity, the single record type managed by the registry."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Integer, Float, Boolean, DateTime, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base, ShipTypeEnum


class Ship(Base):
    __tablename__ = "ship"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    planet: Mapped[str] = mapped_column(String(50), nullable=False)
    ship_type: Mapped[ShipTypeEnum] = mapped_column(SAEnum(ShipTypeEnum), nullable=False)
    # Naive UTC; the production year is always read in UTC
    prod_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    speed: Mapped[float] = mapped_column(Float, nullable=False)
    crew_size: Mapped[int] = mapped_column(Integer, nullable=False)
    # Derived from speed, is_used and prod_date on every write
    rating: Mapped[float] = mapped_column(Float, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Ship id={self.id} name={self.name!r} type={self.ship_type}>"
