"""Ship filter composer.

Turns the optional list/count query parameters into a single SQLAlchemy
predicate. Every criterion is independent: an absent criterion adds no
constraint, and with nothing supplied the predicate matches every ship.

Range criteria share one rule:
  - neither bound  -> no constraint
  - lower only     -> column >= lower
  - upper only     -> column <= upper
  - both           -> lower <= column <= upper
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import and_, true
from sqlalchemy.sql.elements import ColumnElement

from app.models.base import ShipTypeEnum
from app.models.ship import Ship
from app.utils.epoch import from_epoch_millis

_INT64_MIN, _INT64_MAX = -2**63, 2**63 - 1


@dataclass(frozen=True)
class ShipFilter:
    name: Optional[str] = None
    planet: Optional[str] = None
    ship_type: Optional[ShipTypeEnum] = None
    after: Optional[int] = None  # epoch ms, inclusive
    before: Optional[int] = None  # epoch ms, inclusive
    is_used: Optional[bool] = None
    min_speed: Optional[float] = None
    max_speed: Optional[float] = None
    min_crew_size: Optional[int] = None
    max_crew_size: Optional[int] = None
    min_rating: Optional[float] = None
    max_rating: Optional[float] = None


def inclusive_range(column, lower: Any = None, upper: Any = None) -> Optional[ColumnElement[bool]]:
    """Inclusive range on ``column``; None when both bounds are absent."""
    if lower is None and upper is None:
        return None
    if lower is None:
        return column <= upper
    if upper is None:
        return column >= lower
    return column.between(lower, upper)


def _contains(column, needle: Optional[str]) -> Optional[ColumnElement[bool]]:
    if needle is None:
        return None
    # autoescape: % and _ in the needle are literal characters
    return column.contains(needle, autoescape=True)


def _equals(column, value: Any) -> Optional[ColumnElement[bool]]:
    if value is None:
        return None
    return column == value


def _millis(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return from_epoch_millis(value)
    except ValueError:
        # Bounds beyond datetime's range clamp to its ends
        return datetime.min if value < 0 else datetime.max


def _int64(value: Optional[int]) -> Optional[int]:
    # SQL integers are 64-bit; wider bounds clamp without changing the match
    if value is None:
        return None
    return max(_INT64_MIN, min(value, _INT64_MAX))


def build_ship_predicate(f: ShipFilter) -> ColumnElement[bool]:
    """AND of every supplied criterion in ``f``."""
    clauses = [
        _contains(Ship.name, f.name),
        _contains(Ship.planet, f.planet),
        _equals(Ship.ship_type, f.ship_type),
        inclusive_range(Ship.prod_date, _millis(f.after), _millis(f.before)),
        _equals(Ship.is_used, f.is_used),
        inclusive_range(Ship.speed, f.min_speed, f.max_speed),
        inclusive_range(Ship.crew_size, _int64(f.min_crew_size), _int64(f.max_crew_size)),
        inclusive_range(Ship.rating, f.min_rating, f.max_rating),
    ]
    return and_(true(), *(c for c in clauses if c is not None))
