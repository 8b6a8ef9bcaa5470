"""Entry point for the FastAPI-powered anime rating service."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, Mapping

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from .config import settings
from .errors import InvalidRatingError
from .models import MAX_RATING, MIN_RATING, FilterCriteria, RatingSubmission
from .query import paginate
from .services.anime_service import AnimeService
from .services.jikan import JikanClient, JikanError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI

SORT_KEYS = ("popularity", "rating", "title", "year")


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    jikan_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(settings.jikan_timeout_seconds, connect=10.0),
            headers={"Accept": "application/json"},
        )
    )
    jikan = JikanClient(settings, jikan_http_client)
    fastapi_app.state.anime_service = AnimeService(settings, jikan)

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Browse, search and rate anime sourced from MyAnimeList via Jikan",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_anime_service(app: FastAPI) -> AnimeService:
    service = getattr(app.state, "anime_service", None)
    if not isinstance(service, AnimeService):
        raise RuntimeError("Anime service not initialised")
    return service


def _parse_int(value: str | None, default: int) -> int:
    """Parse a positive integer query value, falling back to ``default``."""

    try:
        parsed = int(value) if value is not None else default
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _dump(value: BaseModel | list[BaseModel]) -> Any:
    if isinstance(value, list):
        return [item.model_dump(mode="json", by_alias=True) for item in value]
    return value.model_dump(mode="json", by_alias=True)


def _data(payload: Any) -> JSONResponse:
    return JSONResponse({"data": payload})


def register_routes(fastapi_app: FastAPI) -> None:
    def _page(params: Mapping[str, str]) -> int:
        return _parse_int(params.get("page"), 1)

    def _user_id(service: AnimeService, params: Mapping[str, str]) -> str:
        requested = (params.get("userId") or "").strip()
        return requested or service.default_user_id

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/anime/popular")
    async def popular_anime(request: Request) -> JSONResponse:
        service = get_anime_service(fastapi_app)
        params = request.query_params
        limit = _parse_int(params.get("limit"), settings.page_size)
        try:
            entries = await service.popular(page=_page(params), limit=limit)
        except JikanError as exc:
            logger.exception("Error fetching popular anime")
            raise HTTPException(
                status_code=500, detail="Failed to fetch popular anime"
            ) from exc
        return _data(_dump(entries))

    @fastapi_app.get("/api/anime/search")
    async def search_anime(request: Request) -> JSONResponse:
        service = get_anime_service(fastapi_app)
        params = request.query_params
        try:
            entries = await service.search(params.get("q") or "", page=_page(params))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except JikanError as exc:
            logger.exception("Error searching anime")
            raise HTTPException(status_code=500, detail="Failed to search anime") from exc
        return _data(_dump(entries))

    @fastapi_app.get("/api/anime/genres/{genre_id}")
    async def anime_by_genre(request: Request, genre_id: int) -> JSONResponse:
        service = get_anime_service(fastapi_app)
        try:
            entries = await service.by_genre(genre_id, page=_page(request.query_params))
        except JikanError as exc:
            logger.exception("Error fetching anime by genre")
            raise HTTPException(
                status_code=500, detail="Failed to fetch anime by genre"
            ) from exc
        return _data(_dump(entries))

    @fastapi_app.get("/api/anime/ranking")
    async def anime_ranking(request: Request) -> JSONResponse:
        service = get_anime_service(fastapi_app)
        limit = _parse_int(request.query_params.get("limit"), settings.ranking_size)
        return _data(_dump(service.ranking(limit)))

    @fastapi_app.get("/api/anime/gems")
    async def anime_gems() -> JSONResponse:
        service = get_anime_service(fastapi_app)
        return _data(_dump(service.hidden_gems()))

    @fastapi_app.get("/api/anime")
    async def browse_anime(request: Request) -> JSONResponse:
        """Search, filter and sort anime already held in the local cache."""

        service = get_anime_service(fastapi_app)
        params = request.query_params
        sort_key = (params.get("sortBy") or "").strip() or None
        if sort_key is not None and sort_key not in SORT_KEYS:
            raise HTTPException(status_code=400, detail=f"Unsupported sort key: {sort_key}")
        try:
            criteria = FilterCriteria.from_query(
                {
                    key: params[key]
                    for key in ("genre", "minRating", "minScore", "status", "type")
                    if key in params
                }
            )
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc

        entries = service.browse(
            query=params.get("q"), criteria=criteria, sort_key=sort_key
        )
        if "page" in params or "limit" in params:
            limit = _parse_int(params.get("limit"), settings.page_size)
            entries = paginate(entries, _page(params), limit)
        return _data(_dump(entries))

    @fastapi_app.get("/api/anime/{entry_id}")
    async def anime_detail(entry_id: int) -> JSONResponse:
        """Return a cached entry by the synthetic ``id`` assigned by the cache."""

        service = get_anime_service(fastapi_app)
        try:
            entry = service.get_entry(entry_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _data(_dump(entry))

    @fastapi_app.get("/api/anime/{mal_id}/ratings")
    async def anime_ratings(mal_id: int) -> JSONResponse:
        """Return every user's rating of an anime, keyed by its MyAnimeList id.

        Ratings reference ``malId`` rather than the cache ``id`` so that an
        anime can be rated before it has been cached.
        """

        service = get_anime_service(fastapi_app)
        return _data(_dump(service.ratings_for(mal_id)))

    @fastapi_app.get("/api/ratings")
    async def user_ratings(request: Request) -> JSONResponse:
        service = get_anime_service(fastapi_app)
        ratings = service.user_ratings(_user_id(service, request.query_params))
        return _data({str(anime_id): value for anime_id, value in ratings.items()})

    @fastapi_app.post("/api/ratings")
    async def submit_rating(request: Request) -> JSONResponse:
        service = get_anime_service(fastapi_app)
        try:
            payload = await request.json()
        except json.JSONDecodeError:
            payload = {}
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")
        if not payload.get("animeId") or payload.get("rating") is None:
            raise HTTPException(
                status_code=400, detail="animeId and rating are required"
            )

        try:
            submission = RatingSubmission.model_validate(payload)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc
        if not MIN_RATING <= submission.rating <= MAX_RATING:
            raise HTTPException(
                status_code=400,
                detail=f"Rating must be between {MIN_RATING} and {MAX_RATING}",
            )

        # No authentication: every submission belongs to the pseudo-user.
        try:
            rating = service.rate(submission.anime_id, submission.rating)
        except InvalidRatingError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _data(_dump(rating))

    @fastapi_app.get("/api/stats")
    async def user_stats(request: Request) -> JSONResponse:
        service = get_anime_service(fastapi_app)
        stats = service.stats(_user_id(service, request.query_params))
        return _data(_dump(stats))

    @fastapi_app.get("/api/genres")
    async def genres() -> JSONResponse:
        service = get_anime_service(fastapi_app)
        try:
            items = await service.genres()
        except JikanError as exc:
            logger.exception("Error fetching genres")
            raise HTTPException(status_code=500, detail="Failed to fetch genres") from exc
        return _data(_dump(items))


app = create_app()
