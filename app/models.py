"""Pydantic models describing catalogue entries, ratings and statistics."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SortKey = Literal["popularity", "rating", "title", "year"]

MIN_RATING = 1
MAX_RATING = 10


class AnimeData(BaseModel):
    """Normalized catalogue fields as delivered by the catalogue source."""

    model_config = ConfigDict(
        populate_by_name=True, alias_generator=to_camel, frozen=True
    )

    mal_id: int
    title: str = Field(min_length=1)
    english_title: str | None = None
    genres: list[str] = Field(default_factory=list)
    synopsis: str | None = None
    image_url: str | None = None
    episodes: int | None = None
    status: str | None = None
    aired: str | None = None
    score: float | None = Field(default=None, ge=0.0, le=10.0)
    scored_by: int | None = Field(default=None, ge=0)
    type: str | None = None
    year: int | None = None


class CatalogueEntry(AnimeData):
    """A catalogue record held by the cache under its synthetic identifier."""

    id: int
    created_at: datetime


class AnimeUpdate(BaseModel):
    """Partial update for a cached entry; only fields that are set apply."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    title: str | None = Field(default=None, min_length=1)
    english_title: str | None = None
    genres: list[str] | None = None
    synopsis: str | None = None
    image_url: str | None = None
    episodes: int | None = None
    status: str | None = None
    aired: str | None = None
    score: float | None = Field(default=None, ge=0.0, le=10.0)
    scored_by: int | None = Field(default=None, ge=0)
    type: str | None = None
    year: int | None = None

    @classmethod
    def from_data(cls, data: AnimeData) -> "AnimeUpdate":
        """Build an update from the mutable fields ``data`` actually carries.

        Missing values are left out so a sparse re-fetch keeps what is cached.
        """

        return cls(**data.model_dump(exclude={"mal_id"}, exclude_none=True))

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class Rating(BaseModel):
    """A single user's rating of one anime."""

    model_config = ConfigDict(
        populate_by_name=True, alias_generator=to_camel, frozen=True
    )

    id: str
    anime_id: int
    user_id: str
    value: int = Field(
        ge=MIN_RATING,
        le=MAX_RATING,
        validation_alias=AliasChoices("value", "rating"),
        serialization_alias="rating",
    )
    created_at: datetime
    updated_at: datetime


class UserStats(BaseModel):
    """Aggregate figures over one user's ratings."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    total_rated: int = 0
    average_rating: float = 0.0
    favorites: int = 0


class Genre(BaseModel):
    """Genre descriptor published by the catalogue source."""

    model_config = ConfigDict(populate_by_name=True)

    mal_id: int
    name: str
    url: str | None = None
    count: int | None = None


class FilterCriteria(BaseModel):
    """Optional, conjunctive filters applied to catalogue listings."""

    genre: str | None = None
    min_score: float | None = Field(
        default=None,
        ge=0.0,
        le=10.0,
        validation_alias=AliasChoices("minRating", "minScore", "min_score"),
    )
    status: str | None = None
    type: str | None = None

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "FilterCriteria":
        """Build criteria from query parameters, ignoring blank values."""

        payload: dict[str, str] = {}
        for key, value in params.items():
            if value is None:
                continue
            cleaned = str(value).strip()
            if cleaned:
                payload[key] = cleaned
        return cls.model_validate(payload)

    def is_empty(self) -> bool:
        return (
            not self.genre
            and self.min_score is None
            and not self.status
            and not self.type
        )


class RatingSubmission(BaseModel):
    """Body accepted by the rating endpoint."""

    anime_id: int = Field(
        strict=True, validation_alias=AliasChoices("animeId", "anime_id")
    )
    rating: int = Field(strict=True)
