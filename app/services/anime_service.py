"""High level orchestration between the Jikan client and the local stores."""

from __future__ import annotations

import logging
from typing import Iterable

from ..catalogue import CatalogueCache
from ..config import Settings
from ..errors import NotFoundError
from ..models import (
    AnimeData,
    AnimeUpdate,
    CatalogueEntry,
    FilterCriteria,
    Genre,
    Rating,
    SortKey,
    UserStats,
)
from ..query import filter_entries, hidden_gems, search, sort_entries, top_ranked
from ..ratings import RatingStore
from ..stats import compute_stats
from .jikan import JikanClient

logger = logging.getLogger(__name__)


class AnimeService:
    """Entry point used by the route layer for every catalogue and rating view."""

    def __init__(
        self,
        settings: Settings,
        jikan: JikanClient,
        catalogue: CatalogueCache | None = None,
        ratings: RatingStore | None = None,
    ) -> None:
        self._settings = settings
        self._jikan = jikan
        self.catalogue = catalogue if catalogue is not None else CatalogueCache()
        self.ratings = ratings if ratings is not None else RatingStore()

    @property
    def default_user_id(self) -> str:
        return self._settings.default_user_id

    async def popular(self, *, page: int = 1, limit: int | None = None) -> list[CatalogueEntry]:
        fetched = await self._jikan.top_anime(
            page=page, limit=limit or self._settings.page_size
        )
        return self._ingest(fetched)

    async def search(self, query: str, *, page: int = 1) -> list[CatalogueEntry]:
        cleaned = (query or "").strip()
        if not cleaned:
            raise ValueError("Search query is required")
        fetched = await self._jikan.search_anime(
            cleaned, page=page, limit=self._settings.page_size
        )
        return self._ingest(fetched)

    async def by_genre(self, genre_id: int, *, page: int = 1) -> list[CatalogueEntry]:
        fetched = await self._jikan.anime_by_genre(
            genre_id, page=page, limit=self._settings.page_size
        )
        return self._ingest(fetched)

    async def genres(self) -> list[Genre]:
        return await self._jikan.genres()

    def _ingest(self, fetched: Iterable[AnimeData]) -> list[CatalogueEntry]:
        """Cache freshly fetched anime, refreshing entries seen before."""

        entries: list[CatalogueEntry] = []
        for data in fetched:
            existing = self.catalogue.get_by_mal_id(data.mal_id)
            if existing is None:
                entries.append(self.catalogue.upsert(data))
                continue
            entries.append(
                self.catalogue.update(existing.id, AnimeUpdate.from_data(data))
            )
        logger.debug("Ingested %s anime, %s cached", len(entries), len(self.catalogue))
        return entries

    def browse(
        self,
        *,
        query: str | None = None,
        criteria: FilterCriteria | None = None,
        sort_key: SortKey | None = None,
    ) -> list[CatalogueEntry]:
        """Search, filter and order the cached catalogue."""

        entries = self.catalogue.list_all()
        if query and query.strip():
            entries = search(entries, query.strip())
        entries = filter_entries(entries, criteria)
        if sort_key:
            entries = sort_entries(entries, sort_key)
        return entries

    def ranking(self, limit: int | None = None) -> list[CatalogueEntry]:
        return top_ranked(
            self.catalogue.list_all(), limit or self._settings.ranking_size
        )

    def hidden_gems(self) -> list[CatalogueEntry]:
        return hidden_gems(
            self.catalogue.list_all(),
            min_score=self._settings.gem_min_score,
            max_votes=self._settings.gem_max_votes,
        )

    def get_entry(self, entry_id: int) -> CatalogueEntry:
        entry = self.catalogue.get_by_id(entry_id)
        if entry is None:
            raise NotFoundError(f"Anime {entry_id} not found")
        return entry

    def user_ratings(self, user_id: str | None = None) -> dict[int, int]:
        """Return ``{anime_id: rating}`` for the user."""

        ratings = self.ratings.get_by_user(user_id or self.default_user_id)
        return {rating.anime_id: rating.value for rating in ratings}

    def ratings_for(self, anime_id: int) -> list[Rating]:
        return self.ratings.get_by_anime(anime_id)

    def rate(self, anime_id: int, value: int, user_id: str | None = None) -> Rating:
        return self.ratings.upsert_rating(
            anime_id, user_id or self.default_user_id, value
        )

    def stats(self, user_id: str | None = None) -> UserStats:
        return compute_stats(self.ratings, user_id or self.default_user_id)
