"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_ID = "default-user"


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="AnimeRanker", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=5000, alias="PORT")

    jikan_api_url: HttpUrl = Field(
        default="https://api.jikan.moe/v4", alias="JIKAN_API_URL"
    )
    jikan_timeout_seconds: float = Field(
        default=20.0, alias="JIKAN_TIMEOUT", gt=0, le=120
    )
    jikan_retry_limit: int = Field(
        default=2, alias="JIKAN_RETRY_LIMIT", ge=0, le=10
    )

    default_user_id: str = Field(default=DEFAULT_USER_ID, alias="DEFAULT_USER_ID")
    page_size: int = Field(default=24, alias="PAGE_SIZE", ge=1, le=25)
    ranking_size: int = Field(default=20, alias="RANKING_SIZE", ge=1, le=100)
    gem_min_score: float = Field(default=8.0, alias="GEM_MIN_SCORE", ge=0, le=10)
    gem_max_votes: int = Field(default=50_000, alias="GEM_MAX_VOTES", ge=1)

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("default_user_id", mode="before")
    @classmethod
    def _clean_user_id(cls, value: object) -> str:
        """Reject blank pseudo-user identifiers."""

        if value is None:
            return DEFAULT_USER_ID
        cleaned = str(value).strip()
        if not cleaned:
            raise ValueError("DEFAULT_USER_ID must not be blank")
        return cleaned

    @property
    def jikan_base_url(self) -> str:
        """Return the Jikan API URL without a trailing slash."""

        return str(self.jikan_api_url).rstrip("/")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
