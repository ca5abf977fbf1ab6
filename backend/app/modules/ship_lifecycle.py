"""Ship lifecycle: validation, rating derivation and persistence.

All writes go through here so the rating invariant holds for every stored
ship:

    rating = round2(80 * speed * k / (3019 - year + 1)),  k = 0.5 if used else 1

Validation is fail-fast: the first violated rule raises BadRequestError.
Callers own the session; every write commits.
"""
from __future__ import annotations

import enum
import logging
import re
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import BadRequestError, NotFoundError
from app.models.base import ShipTypeEnum
from app.models.ship import Ship
from app.modules.ship_filter import ShipFilter, build_ship_predicate

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 50
MIN_SPEED, MAX_SPEED = 0.01, 0.99
MIN_CREW_SIZE, MAX_CREW_SIZE = 1, 9999
MIN_PROD_YEAR, CURRENT_YEAR = 2800, 3019
_MAX_ID = _MAX_OFFSET = 2**63 - 1
_ID_PATTERN = re.compile(r"[+-]?\d+")

REQUIRED_FIELDS = ("name", "planet", "ship_type", "prod_date", "speed", "crew_size")


class ShipOrder(str, enum.Enum):
    ID = "ID"
    SPEED = "SPEED"
    CREW_SIZE = "CREW_SIZE"
    DATE = "DATE"
    RATING = "RATING"

    @property
    def column(self):
        return {
            ShipOrder.ID: Ship.id,
            ShipOrder.SPEED: Ship.speed,
            ShipOrder.CREW_SIZE: Ship.crew_size,
            ShipOrder.DATE: Ship.prod_date,
            ShipOrder.RATING: Ship.rating,
        }[self]


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------

def check_id(raw: Any) -> int:
    """Parse a path id. Anything but a positive integer is a bad request."""
    text = str(raw)
    if not _ID_PATTERN.fullmatch(text):
        raise BadRequestError(f"Invalid id: {raw!r}")
    value = int(text)
    if value <= 0 or value > _MAX_ID:
        raise BadRequestError(f"Invalid id: {raw!r}")
    return value


def _check_text(field: str, value: Any) -> str:
    if not isinstance(value, str) or not 1 <= len(value) <= NAME_MAX_LENGTH:
        raise BadRequestError(f"{field} must be 1-{NAME_MAX_LENGTH} characters")
    return value


def check_name(value: Any) -> str:
    return _check_text("name", value)


def check_planet(value: Any) -> str:
    return _check_text("planet", value)


def check_ship_type(value: Any) -> ShipTypeEnum:
    try:
        return ShipTypeEnum(value)
    except ValueError:
        raise BadRequestError(f"shipType must be one of: {[e.value for e in ShipTypeEnum]}")


def check_prod_date(value: Any) -> datetime:
    if not isinstance(value, datetime) or not MIN_PROD_YEAR <= value.year <= CURRENT_YEAR:
        raise BadRequestError(f"prodDate year must be within {MIN_PROD_YEAR}-{CURRENT_YEAR}")
    return value


def check_is_used(value: Any) -> bool:
    if not isinstance(value, bool):
        raise BadRequestError("isUsed must be a boolean")
    return value


def check_speed(value: Any) -> float:
    """Range-check the raw speed, then round it half-up to two places."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not MIN_SPEED <= value <= MAX_SPEED:
        raise BadRequestError(f"speed must be within {MIN_SPEED}-{MAX_SPEED}")
    return round2(value)


def check_crew_size(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not MIN_CREW_SIZE <= value <= MAX_CREW_SIZE:
        raise BadRequestError(f"crewSize must be within {MIN_CREW_SIZE}-{MAX_CREW_SIZE}")
    return value


# Order matters: create and update validate in this sequence.
FIELD_RULES: dict[str, Callable[[Any], Any]] = {
    "name": check_name,
    "planet": check_planet,
    "ship_type": check_ship_type,
    "prod_date": check_prod_date,
    "is_used": check_is_used,
    "speed": check_speed,
    "crew_size": check_crew_size,
}


def round2(value: float) -> float:
    """Round half-up to two decimal places using the value's shortest decimal form."""
    return float(Decimal(repr(float(value))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def compute_rating(speed: float, is_used: bool, prod_year: int) -> float:
    k = 0.5 if is_used else 1.0
    return round2(80 * speed * k / (CURRENT_YEAR - prod_year + 1))


def _rate(ship: Ship) -> None:
    ship.rating = compute_rating(ship.speed, ship.is_used, ship.prod_date.year)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def list_ships(
    db: Session,
    ship_filter: ShipFilter,
    order: ShipOrder = ShipOrder.ID,
    page_number: int = 0,
    page_size: Optional[int] = None,
) -> list[Ship]:
    """One page of ships matching ``ship_filter``, ascending by ``order``."""
    if page_size is None:
        page_size = settings.DEFAULT_PAGE_SIZE
    if page_number < 0:
        raise BadRequestError("pageNumber must be >= 0")
    if page_size < 1:
        raise BadRequestError("pageSize must be >= 1")
    page_size = min(page_size, settings.MAX_PAGE_SIZE)
    offset = page_number * page_size
    if offset > _MAX_OFFSET:
        raise BadRequestError("pageNumber is too large")

    q = db.query(Ship).filter(build_ship_predicate(ship_filter))
    order_by = [order.column] if order is ShipOrder.ID else [order.column, Ship.id]
    return q.order_by(*order_by).offset(offset).limit(page_size).all()


def count_ships(db: Session, ship_filter: ShipFilter) -> int:
    return db.query(Ship).filter(build_ship_predicate(ship_filter)).count()


def _require(db: Session, ship_id: int) -> Ship:
    ship = db.query(Ship).filter(Ship.id == ship_id).first()
    if ship is None:
        raise NotFoundError(f"Ship {ship_id} not found")
    return ship


def get_ship(db: Session, raw_id: Any) -> Ship:
    return _require(db, check_id(raw_id))


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def create_ship(db: Session, fields: dict[str, Any]) -> Ship:
    """Validate and persist a new ship from ``fields`` (snake_case keys).

    ``id`` and ``rating`` are never taken from the caller. A missing
    ``is_used`` defaults to False.
    """
    fields = {k: v for k, v in fields.items() if k in FIELD_RULES and v is not None}
    missing = [name for name in REQUIRED_FIELDS if name not in fields]
    if missing:
        logger.debug("Ship create rejected, missing fields: %s", missing)
        raise BadRequestError(f"Missing required fields: {', '.join(missing)}")
    fields.setdefault("is_used", False)

    values = {name: rule(fields[name]) for name, rule in FIELD_RULES.items()}
    ship = Ship(**values)
    _rate(ship)
    db.add(ship)
    db.commit()
    logger.info("Created ship %s (%s)", ship.id, ship.name)
    return _require(db, ship.id)


def update_ship(db: Session, raw_id: Any, fields: dict[str, Any]) -> Ship:
    """Merge the supplied ``fields`` into an existing ship.

    Fields absent from ``fields`` (or None) keep their stored value. The
    rating is recomputed from the merged record regardless of which fields
    changed.
    """
    ship_id = check_id(raw_id)
    ship = _require(db, ship_id)

    # Validate everything before touching the tracked instance
    updates = {
        name: rule(fields[name])
        for name, rule in FIELD_RULES.items()
        if fields.get(name) is not None
    }
    for name, value in updates.items():
        setattr(ship, name, value)
    _rate(ship)
    db.commit()
    logger.info("Updated ship %s: %s", ship_id, ", ".join(updates) or "no fields")
    return _require(db, ship_id)


def delete_ship(db: Session, raw_id: Any) -> None:
    ship_id = check_id(raw_id)
    ship = _require(db, ship_id)
    db.delete(ship)
    db.commit()
    logger.info("Deleted ship %s", ship_id)
