"""Epoch-millisecond <-> naive UTC datetime conversion.

Production dates travel over the wire as epoch milliseconds and are stored
as naive UTC datetimes, so every conversion goes through this module.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1)


def from_epoch_millis(millis: int) -> datetime:
    """Epoch milliseconds to a naive UTC datetime.

    Raises ValueError when the instant falls outside datetime's range.
    """
    try:
        return EPOCH + timedelta(milliseconds=millis)
    except OverflowError as exc:
        raise ValueError(f"timestamp out of range: {millis}") from exc


def to_epoch_millis(value: datetime) -> int:
    return (to_naive_utc(value) - EPOCH) // timedelta(milliseconds=1)


def to_naive_utc(value: datetime) -> datetime:
    """Drop tzinfo after converting to UTC; naive values are assumed UTC already."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
