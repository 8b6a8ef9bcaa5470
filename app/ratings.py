"""In-memory rating persistence."""

from __future__ import annotations

import logging
import threading
import uuid

from .errors import InvalidRatingError, NotFoundError
from .models import MAX_RATING, MIN_RATING, Rating
from .utils import utcnow

logger = logging.getLogger(__name__)


def _validate_value(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRatingError("Rating must be an integer")
    if value < MIN_RATING or value > MAX_RATING:
        raise InvalidRatingError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}"
        )
    return value


class RatingStore:
    """Owns every :class:`Rating` and keeps one per (anime, user) pair."""

    def __init__(self) -> None:
        self._ratings: dict[str, Rating] = {}
        self._ids_by_pair: dict[tuple[int, str], str] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._ratings)

    def list_all(self) -> list[Rating]:
        with self._lock:
            return list(self._ratings.values())

    def get_by_user(self, user_id: str) -> list[Rating]:
        with self._lock:
            return [rating for rating in self._ratings.values() if rating.user_id == user_id]

    def get_by_anime(self, anime_id: int) -> list[Rating]:
        with self._lock:
            return [rating for rating in self._ratings.values() if rating.anime_id == anime_id]

    def get_one(self, anime_id: int, user_id: str) -> Rating | None:
        with self._lock:
            rating_id = self._ids_by_pair.get((anime_id, user_id))
            if rating_id is None:
                return None
            return self._ratings[rating_id]

    def create(self, anime_id: int, user_id: str, value: int) -> Rating:
        """Store a new rating.

        The pair is not checked here; callers that may already hold a rating
        for ``(anime_id, user_id)`` should use :meth:`upsert_rating`.
        """

        _validate_value(value)
        with self._lock:
            now = utcnow()
            rating = Rating(
                id=str(uuid.uuid4()),
                anime_id=anime_id,
                user_id=user_id,
                value=value,
                created_at=now,
                updated_at=now,
            )
            self._ratings[rating.id] = rating
            self._ids_by_pair[(anime_id, user_id)] = rating.id
            logger.info("User %s rated anime %s: %s", user_id, anime_id, value)
            return rating

    def update(self, anime_id: int, user_id: str, value: int) -> Rating:
        """Overwrite the value of an existing rating."""

        _validate_value(value)
        with self._lock:
            existing = self.get_one(anime_id, user_id)
            if existing is None:
                raise NotFoundError(
                    f"No rating for anime {anime_id} by user {user_id}"
                )
            updated = existing.model_copy(
                update={"value": value, "updated_at": utcnow()}
            )
            self._ratings[existing.id] = updated
            logger.info(
                "User %s re-rated anime %s: %s -> %s",
                user_id,
                anime_id,
                existing.value,
                value,
            )
            return updated

    def upsert_rating(self, anime_id: int, user_id: str, value: int) -> Rating:
        """Create the rating for the pair, or update it when one exists."""

        _validate_value(value)
        with self._lock:
            if self.get_one(anime_id, user_id) is None:
                return self.create(anime_id, user_id, value)
            return self.update(anime_id, user_id, value)
