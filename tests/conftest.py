"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable

import pytest

# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.models import AnimeData  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def make_anime() -> Callable[..., AnimeData]:
    """Return a factory building ``AnimeData`` with sensible defaults."""

    def factory(mal_id: int, title: str | None = None, **fields: Any) -> AnimeData:
        return AnimeData(mal_id=mal_id, title=title or f"Anime {mal_id}", **fields)

    return factory
