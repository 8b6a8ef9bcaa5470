"""AnimeRanker application package.

The FastAPI app and the in-memory stores are resolved lazily so that importing
``app.models`` or ``app.query`` does not build the application.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "1.0.0"

_LAZY_EXPORTS = {
    "app": "app.main",
    "create_app": "app.main",
    "AnimeService": "app.services.anime_service",
    "CatalogueCache": "app.catalogue",
    "RatingStore": "app.ratings",
}

__all__ = ["__version__", *_LAZY_EXPORTS]


def __getattr__(name: str) -> Any:
    module_name = _LAZY_EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module 'app' has no attribute {name}")
    return getattr(import_module(module_name), name)
