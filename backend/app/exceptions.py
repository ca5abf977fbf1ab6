"""Domain errors raised by the ship lifecycle and mapped to HTTP statuses in ``app.main``."""
from __future__ import annotations


class ShipRegistryError(Exception):
    status_code = 500
    code = "error"

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail


class BadRequestError(ShipRegistryError):
    status_code = 400
    code = "bad_request"


class NotFoundError(ShipRegistryError):
    status_code = 404
    code = "not_found"
