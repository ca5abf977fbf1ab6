"""Pydantic schemas for Ship requests and responses.

Wire names are camelCase (``shipType``, ``prodDate``, ``isUsed``,
``crewSize``); ``prodDate`` travels as epoch milliseconds.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from app.models.base import ShipTypeEnum
from app.utils.epoch import from_epoch_millis, to_epoch_millis, to_naive_utc


class ShipPayload(BaseModel):
    """Client-supplied ship fields, every one optional.

    Range and presence rules are enforced by ``app.modules.ship_lifecycle``
    so that violations surface as 400, not as schema errors. Unknown keys
    (including ``id`` and ``rating``) are ignored.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    planet: Optional[str] = None
    ship_type: Optional[ShipTypeEnum] = None
    prod_date: Optional[datetime] = None
    is_used: Optional[bool] = None
    speed: Optional[float] = None
    crew_size: Optional[int] = None

    @field_validator("prod_date", mode="before")
    @classmethod
    def epoch_millis_to_datetime(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return from_epoch_millis(int(v))
        return v

    @field_validator("prod_date")
    @classmethod
    def normalize_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else None

    def present_fields(self) -> dict[str, Any]:
        """Fields the client actually sent with a non-null value."""
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}


class ShipCreateRequest(ShipPayload):
    pass


class ShipUpdateRequest(ShipPayload):
    pass


class ShipRead(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    name: str
    planet: str
    ship_type: ShipTypeEnum
    prod_date: datetime
    is_used: bool
    speed: float
    crew_size: int
    rating: float

    @field_serializer("prod_date")
    def serialize_prod_date(self, v: datetime) -> int:
        return to_epoch_millis(v)
