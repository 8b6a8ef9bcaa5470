"""Utility helpers for the AnimeRanker service."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(timezone.utc)


def round_half_up(value: Decimal | float | int, places: int = 1) -> float:
    """Round ``value`` to ``places`` decimals, halves rounding away from zero."""

    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    quantum = Decimal(1).scaleb(-places)
    return float(value.quantize(quantum, rounding=ROUND_HALF_UP))


def clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(upper, value))
