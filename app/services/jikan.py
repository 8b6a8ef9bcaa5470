"""Client for the Jikan (unofficial MyAnimeList) REST API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..models import AnimeData, Genre
from ..utils import clamp

logger = logging.getLogger(__name__)

# Jikan rejects page sizes above this value.
MAX_PAGE_LIMIT = 25
RATE_LIMIT_STATUS = 429


class JikanError(RuntimeError):
    """Raised when the Jikan API cannot satisfy a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class JikanClient:
    """Fetches anime listings and genres and normalizes them to ``AnimeData``."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        *,
        retry_delay: float = 1.0,
    ) -> None:
        self._settings = settings
        self._client = http_client
        self._retry_delay = retry_delay
        self._semaphore = asyncio.Semaphore(3)

    async def top_anime(
        self, *, page: int = 1, limit: int = 24, anime_type: str | None = "tv"
    ) -> list[AnimeData]:
        """Return the most popular anime for the requested page."""

        params: dict[str, Any] = self._page_params(page, limit)
        if anime_type:
            params["type"] = anime_type
        payload = await self._get("/top/anime", params)
        return self._normalize_list(payload)

    async def search_anime(
        self, query: str, *, page: int = 1, limit: int = 24
    ) -> list[AnimeData]:
        """Return anime whose titles match ``query``."""

        params = {"q": query, **self._page_params(page, limit)}
        payload = await self._get("/anime", params)
        return self._normalize_list(payload)

    async def anime_by_genre(
        self, genre_id: int, *, page: int = 1, limit: int = 24
    ) -> list[AnimeData]:
        """Return anime tagged with the Jikan genre ``genre_id``."""

        params = {"genres": genre_id, **self._page_params(page, limit)}
        payload = await self._get("/anime", params)
        return self._normalize_list(payload)

    async def genres(self) -> list[Genre]:
        payload = await self._get("/genres/anime", {})
        genres: list[Genre] = []
        for raw in payload.get("data") or []:
            if not isinstance(raw, dict):
                continue
            try:
                genres.append(Genre.model_validate(raw))
            except ValidationError:
                logger.debug("Skipping malformed Jikan genre: %s", raw)
        return genres

    async def _get(self, path: str, params: Mapping[str, Any]) -> dict[str, Any]:
        url = f"{self._settings.jikan_base_url}{path}"
        max_attempts = self._settings.jikan_retry_limit + 1
        response: httpx.Response | None = None
        for attempt in range(1, max_attempts + 1):
            try:
                async with self._semaphore:
                    response = await self._client.get(url, params=dict(params))
                response.raise_for_status()
                break
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if status == RATE_LIMIT_STATUS and attempt < max_attempts:
                    logger.info(
                        "Jikan rate limited %s, retrying (attempt %s/%s)",
                        path,
                        attempt,
                        max_attempts,
                    )
                    await asyncio.sleep(self._retry_delay * attempt)
                    continue
                logger.warning("Jikan request to %s failed: %s", path, exc)
                raise JikanError(f"Jikan API error: {status}", status) from exc
            except httpx.HTTPError as exc:
                logger.warning("Jikan request to %s failed: %s", path, exc)
                raise JikanError(f"Jikan API request failed: {exc}") from exc
        else:  # pragma: no cover - loop always breaks or raises
            raise JikanError("Jikan API request failed")

        assert response is not None
        try:
            payload = response.json()
        except ValueError as exc:
            raise JikanError("Jikan API returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise JikanError("Jikan API returned an unexpected payload")
        return payload

    def _normalize_list(self, payload: Mapping[str, Any]) -> list[AnimeData]:
        items: list[AnimeData] = []
        for raw in payload.get("data") or []:
            anime = self.normalize_anime(raw)
            if anime is not None:
                items.append(anime)
        return items

    @staticmethod
    def _page_params(page: int, limit: int) -> dict[str, int]:
        return {"page": max(page, 1), "limit": clamp(limit, 1, MAX_PAGE_LIMIT)}

    @staticmethod
    def normalize_anime(raw: Any) -> AnimeData | None:
        """Map a Jikan anime object to ``AnimeData``; ``None`` when unusable."""

        if not isinstance(raw, dict):
            return None
        mal_id = raw.get("mal_id")
        title = str(raw.get("title") or "").strip()
        if isinstance(mal_id, bool) or not isinstance(mal_id, int) or not title:
            return None

        genres = [
            str(genre["name"])
            for genre in raw.get("genres") or []
            if isinstance(genre, dict) and genre.get("name")
        ]
        images = raw.get("images") or {}
        jpg = images.get("jpg") if isinstance(images, dict) else None
        image_url = jpg.get("image_url") if isinstance(jpg, dict) else None
        aired = raw.get("aired") or {}
        aired_text = aired.get("string") if isinstance(aired, dict) else None

        try:
            return AnimeData(
                mal_id=mal_id,
                title=title,
                english_title=raw.get("title_english") or None,
                genres=genres,
                synopsis=raw.get("synopsis") or None,
                image_url=image_url or None,
                episodes=raw.get("episodes") or None,
                status=raw.get("status") or None,
                aired=aired_text or None,
                score=raw.get("score") or None,
                scored_by=raw.get("scored_by") or None,
                type=raw.get("type") or None,
                year=raw.get("year") or None,
            )
        except ValidationError:
            logger.debug("Skipping malformed Jikan anime %s", mal_id)
            return None
