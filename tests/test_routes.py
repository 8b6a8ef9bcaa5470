"""HTTP route behaviour using a mocked Jikan backend."""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import register_routes
from app.services.anime_service import AnimeService
from app.services.jikan import JikanClient

TOP_ANIME = [
    {"mal_id": 1, "title": "Alpha", "score": 7.5, "scored_by": 100, "genres": [{"name": "Drama"}], "type": "TV", "status": "Finished Airing", "year": 2010},
    {"mal_id": 2, "title": "Beta", "score": 9.0, "scored_by": 40_000, "genres": [{"name": "Action"}], "type": "TV", "status": "Finished Airing", "year": 2020},
]


def default_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/top/anime"):
        return httpx.Response(200, json={"data": TOP_ANIME})
    if request.url.path.endswith("/genres/anime"):
        return httpx.Response(200, json={"data": [{"mal_id": 1, "name": "Action"}]})
    if request.url.path.endswith("/anime"):
        query = request.url.params.get("q", "")
        matches = [item for item in TOP_ANIME if query.lower() in item["title"].lower()]
        return httpx.Response(200, json={"data": matches})
    return httpx.Response(404)


def build_client(handler: Callable[[httpx.Request], httpx.Response] = default_handler) -> tuple[TestClient, AnimeService]:
    settings = Settings(_env_file=None, JIKAN_API_URL="https://jikan.example.com/v4")  # type: ignore[call-arg]
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    service = AnimeService(settings, JikanClient(settings, http_client, retry_delay=0))

    app = FastAPI()
    register_routes(app)
    app.state.anime_service = service
    return TestClient(app), service


@pytest.fixture
def client() -> TestClient:
    test_client, _ = build_client()
    with test_client:
        yield test_client


def rate(client: TestClient, payload: dict[str, Any]) -> httpx.Response:
    return client.post("/api/ratings", json=payload)


def test_popular_caches_entries_and_supports_sorting(client: TestClient) -> None:
    response = client.get("/api/anime/popular")

    assert response.status_code == 200
    data = response.json()["data"]
    assert [item["malId"] for item in data] == [1, 2]
    assert data[0]["id"] == 1
    assert data[1]["scoredBy"] == 40_000

    sorted_response = client.get("/api/anime", params={"sortBy": "rating"})
    assert [item["title"] for item in sorted_response.json()["data"]] == ["Beta", "Alpha"]


def test_refetching_popular_keeps_synthetic_ids(client: TestClient) -> None:
    first = client.get("/api/anime/popular").json()["data"]
    second = client.get("/api/anime/popular").json()["data"]

    assert [item["id"] for item in first] == [item["id"] for item in second]
    assert len(client.get("/api/anime").json()["data"]) == 2


def test_rating_flow_updates_stats(client: TestClient) -> None:
    client.get("/api/anime/popular")

    response = rate(client, {"animeId": 2, "rating": 9})

    assert response.status_code == 200
    rating = response.json()["data"]
    assert rating["animeId"] == 2
    assert rating["rating"] == 9
    assert rating["userId"] == "default-user"

    stats = client.get("/api/stats").json()["data"]
    assert stats == {"totalRated": 1, "averageRating": 9.0, "favorites": 1}


def test_rerating_replaces_value_without_new_record(client: TestClient) -> None:
    first = rate(client, {"animeId": 2, "rating": 4}).json()["data"]
    second = rate(client, {"animeId": 2, "rating": 8}).json()["data"]

    assert second["id"] == first["id"]
    assert second["createdAt"] == first["createdAt"]
    assert client.get("/api/ratings").json()["data"] == {"2": 8}
    assert len(client.get("/api/anime/2/ratings").json()["data"]) == 1


@pytest.mark.parametrize(
    ("payload", "detail"),
    [
        ({"animeId": 2, "rating": 0}, "Rating must be between 1 and 10"),
        ({"animeId": 2, "rating": 11}, "Rating must be between 1 and 10"),
        ({"rating": 5}, "animeId and rating are required"),
        ({"animeId": 2}, "animeId and rating are required"),
    ],
)
def test_invalid_rating_submissions_are_rejected(client: TestClient, payload: dict[str, Any], detail: str) -> None:
    response = rate(client, payload)

    assert response.status_code == 400
    assert response.json()["detail"] == detail
    assert client.get("/api/stats").json()["data"]["totalRated"] == 0


def test_stats_for_other_user_are_independent(client: TestClient) -> None:
    rate(client, {"animeId": 1, "rating": 10})

    stats = client.get("/api/stats", params={"userId": "someone-else"}).json()["data"]

    assert stats == {"totalRated": 0, "averageRating": 0.0, "favorites": 0}


def test_search_requires_query(client: TestClient) -> None:
    response = client.get("/api/anime/search", params={"q": "   "})

    assert response.status_code == 400
    assert response.json()["detail"] == "Search query is required"


def test_search_returns_cached_matches(client: TestClient) -> None:
    response = client.get("/api/anime/search", params={"q": "bet"})

    assert response.status_code == 200
    assert [item["title"] for item in response.json()["data"]] == ["Beta"]
    assert client.get("/api/anime/1").json()["data"]["title"] == "Beta"


def test_browse_filters_cached_entries(client: TestClient) -> None:
    client.get("/api/anime/popular")

    response = client.get("/api/anime", params={"minRating": "8", "genre": "Action"})

    assert [item["title"] for item in response.json()["data"]] == ["Beta"]


def test_browse_rejects_unknown_sort_key(client: TestClient) -> None:
    response = client.get("/api/anime", params={"sortBy": "episodes"})

    assert response.status_code == 400


def test_ranking_and_gems_views(client: TestClient) -> None:
    client.get("/api/anime/popular")

    ranking = client.get("/api/anime/ranking").json()["data"]
    gems = client.get("/api/anime/gems").json()["data"]

    assert [item["title"] for item in ranking] == ["Beta", "Alpha"]
    assert [item["title"] for item in gems] == ["Beta"]


def test_unknown_anime_returns_404(client: TestClient) -> None:
    response = client.get("/api/anime/999")

    assert response.status_code == 404


def test_genres_are_proxied(client: TestClient) -> None:
    response = client.get("/api/genres")

    assert response.status_code == 200
    assert response.json()["data"][0]["name"] == "Action"


def test_upstream_failure_returns_500() -> None:
    test_client, service = build_client(lambda _: httpx.Response(502))

    with test_client:
        response = test_client.get("/api/anime/popular")

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to fetch popular anime"
    assert len(service.catalogue) == 0


@pytest.mark.parametrize(
    "payload",
    [
        {"animeId": 5, "rating": True},
        {"animeId": True, "rating": 5},
        {"animeId": 5, "rating": "7"},
    ],
)
def test_non_integer_rating_submissions_are_rejected(client: TestClient, payload: dict[str, Any]) -> None:
    response = rate(client, payload)

    assert response.status_code == 400
    assert client.get("/api/ratings").json()["data"] == {}


def test_sparse_refetch_keeps_cached_fields() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        if calls == 1:
            return httpx.Response(200, json={"data": [{"mal_id": 1, "title": "Alpha", "score": 8.5, "scored_by": 100, "synopsis": "s"}]})
        return httpx.Response(200, json={"data": [{"mal_id": 1, "title": "Alpha", "status": "Finished Airing"}]})

    test_client, _ = build_client(handler)
    with test_client:
        test_client.get("/api/anime/popular")
        refreshed = test_client.get("/api/anime/popular").json()["data"][0]

    assert refreshed["score"] == 8.5
    assert refreshed["scoredBy"] == 100
    assert refreshed["synopsis"] == "s"
    assert refreshed["status"] == "Finished Airing"
