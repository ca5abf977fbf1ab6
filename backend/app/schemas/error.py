"""Standard error response schema."""
from __future__ import annotations

from pydantic import BaseModel

from app.exceptions import ShipRegistryError


class ErrorResponse(BaseModel):
    detail: str
    code: str = "error"

    @classmethod
    def from_error(cls, exc: ShipRegistryError) -> "ErrorResponse":
        return cls(detail=exc.detail, code=exc.code)
