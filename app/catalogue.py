"""In-memory cache of catalogue entries observed from the catalogue source."""

from __future__ import annotations

import logging
import threading

from .errors import NotFoundError
from .models import AnimeData, AnimeUpdate, CatalogueEntry
from .utils import utcnow

logger = logging.getLogger(__name__)


class CatalogueCache:
    """Stores catalogue entries keyed by a synthetic sequential identifier.

    Entries are unique by ``mal_id``: inserting data for an already known
    MyAnimeList id returns the stored entry untouched. Field changes go
    through :meth:`update`.
    """

    def __init__(self) -> None:
        self._entries: dict[int, CatalogueEntry] = {}
        self._ids_by_mal_id: dict[int, int] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._entries)

    def upsert(self, data: AnimeData) -> CatalogueEntry:
        """Insert ``data`` unless its ``mal_id`` is already cached."""

        with self._lock:
            existing_id = self._ids_by_mal_id.get(data.mal_id)
            if existing_id is not None:
                return self._entries[existing_id]

            entry_id = self._next_id
            self._next_id += 1
            entry = CatalogueEntry(
                **data.model_dump(), id=entry_id, created_at=utcnow()
            )
            self._entries[entry_id] = entry
            self._ids_by_mal_id[data.mal_id] = entry_id
            logger.debug("Cached anime %s (mal_id=%s) as %s", entry.title, data.mal_id, entry_id)
            return entry

    def update(self, entry_id: int, changes: AnimeUpdate) -> CatalogueEntry:
        """Merge the fields set on ``changes`` over the stored entry."""

        with self._lock:
            existing = self._entries.get(entry_id)
            if existing is None:
                raise NotFoundError(f"Anime {entry_id} not found")
            updated = existing.model_copy(update=changes.changes())
            self._entries[entry_id] = updated
            return updated

    def get_by_id(self, entry_id: int) -> CatalogueEntry | None:
        with self._lock:
            return self._entries.get(entry_id)

    def get_by_mal_id(self, mal_id: int) -> CatalogueEntry | None:
        with self._lock:
            entry_id = self._ids_by_mal_id.get(mal_id)
            if entry_id is None:
                return None
            return self._entries[entry_id]

    def list_all(self) -> list[CatalogueEntry]:
        """Return every cached entry in insertion order."""

        with self._lock:
            return list(self._entries.values())
