"""Run the AnimeRanker API with ``python -m animeranker``."""

from __future__ import annotations

import logging

import uvicorn

from app.config import settings

logger = logging.getLogger("animeranker")


def main() -> None:
    """Serve ``app.main:app``; development mode reloads and logs at debug level."""

    development = settings.environment == "development"
    logger.info(
        "Starting %s on %s:%s against %s",
        settings.app_name,
        settings.server_host,
        settings.server_port,
        settings.jikan_base_url,
    )
    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=development,
        log_level="debug" if development else "info",
    )


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
