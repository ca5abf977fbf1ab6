from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.base import ShipTypeEnum
from app.modules import ship_lifecycle
from app.modules.ship_filter import ShipFilter
from app.modules.ship_lifecycle import ShipOrder
from app.schemas.ship import ShipCreateRequest, ShipRead, ShipUpdateRequest

logger = logging.getLogger(__name__)

router = APIRouter()

# Widths of the integer query parameters; anything wider is a bad request
INT_MIN, INT_MAX = -2**31, 2**31 - 1
LONG_MIN, LONG_MAX = -2**63, 2**63 - 1


def ship_filter_params(
    name: Optional[str] = Query(None, description="Substring of the ship name (case-sensitive)"),
    planet: Optional[str] = Query(None, description="Substring of the planet (case-sensitive)"),
    ship_type: Optional[ShipTypeEnum] = Query(None, alias="shipType"),
    after: Optional[int] = Query(None, ge=LONG_MIN, le=LONG_MAX, description="Earliest prodDate, epoch ms, inclusive"),
    before: Optional[int] = Query(None, ge=LONG_MIN, le=LONG_MAX, description="Latest prodDate, epoch ms, inclusive"),
    is_used: Optional[bool] = Query(None, alias="isUsed"),
    min_speed: Optional[float] = Query(None, alias="minSpeed"),
    max_speed: Optional[float] = Query(None, alias="maxSpeed"),
    min_crew_size: Optional[int] = Query(None, alias="minCrewSize", ge=INT_MIN, le=INT_MAX),
    max_crew_size: Optional[int] = Query(None, alias="maxCrewSize", ge=INT_MIN, le=INT_MAX),
    min_rating: Optional[float] = Query(None, alias="minRating"),
    max_rating: Optional[float] = Query(None, alias="maxRating"),
) -> ShipFilter:
    """Filter parameters shared by GET /ships and GET /ships/count."""
    return ShipFilter(
        name=name,
        planet=planet,
        ship_type=ship_type,
        after=after,
        before=before,
        is_used=is_used,
        min_speed=min_speed,
        max_speed=max_speed,
        min_crew_size=min_crew_size,
        max_crew_size=max_crew_size,
        min_rating=min_rating,
        max_rating=max_rating,
    )


# ---------------------------------------------------------------------------
# Ships
# ---------------------------------------------------------------------------

@router.get("/ships", tags=["ships"], response_model=list[ShipRead])
def list_ships(
    ship_filter: ShipFilter = Depends(ship_filter_params),
    order: ShipOrder = Query(ShipOrder.ID),
    page_number: int = Query(0, alias="pageNumber", ge=INT_MIN, le=INT_MAX),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, alias="pageSize", ge=INT_MIN, le=INT_MAX),
    db: Session = Depends(get_db),
):
    """One page of ships matching the filters, sorted ascending by ``order``."""
    return ship_lifecycle.list_ships(db, ship_filter, order, page_number, page_size)


@router.get("/ships/count", tags=["ships"], response_model=int)
def count_ships(
    ship_filter: ShipFilter = Depends(ship_filter_params),
    db: Session = Depends(get_db),
):
    """Total number of ships matching the filters, ignoring paging."""
    return ship_lifecycle.count_ships(db, ship_filter)


@router.get("/ships/{ship_id}", tags=["ships"], response_model=ShipRead)
def get_ship(ship_id: str, db: Session = Depends(get_db)):
    return ship_lifecycle.get_ship(db, ship_id)


@router.post("/ships", tags=["ships"], response_model=ShipRead)
def create_ship(body: ShipCreateRequest, db: Session = Depends(get_db)):
    """Create a ship. ``id`` and ``rating`` in the body are ignored; ``isUsed`` defaults to false."""
    return ship_lifecycle.create_ship(db, body.present_fields())


@router.post("/ships/{ship_id}", tags=["ships"], response_model=ShipRead)
def update_ship(ship_id: str, body: ShipUpdateRequest, db: Session = Depends(get_db)):
    """Partial update: only fields present in the body are validated and changed."""
    return ship_lifecycle.update_ship(db, ship_id, body.present_fields())


@router.delete("/ships/{ship_id}", tags=["ships"])
def delete_ship(ship_id: str, db: Session = Depends(get_db)):
    ship_lifecycle.delete_ship(db, ship_id)
    return Response(status_code=200)
