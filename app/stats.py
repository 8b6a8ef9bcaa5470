"""Aggregate statistics over a user's ratings."""

from __future__ import annotations

from decimal import Decimal

from .models import UserStats
from .ratings import RatingStore
from .utils import round_half_up

FAVORITE_THRESHOLD = 9


def compute_stats(store: RatingStore, user_id: str) -> UserStats:
    """Return the rated count, mean rating and favorite count for ``user_id``."""

    values = [rating.value for rating in store.get_by_user(user_id)]
    total = len(values)
    if not total:
        return UserStats()
    average = round_half_up(Decimal(sum(values)) / Decimal(total), 1)
    favorites = sum(1 for value in values if value >= FAVORITE_THRESHOLD)
    return UserStats(total_rated=total, average_rating=average, favorites=favorites)
