from typing import AsyncIterator

import httpx
from fastapi import Depends

from bingetrack.config import settings
from bingetrack.services.catalog import CatalogClient
from bingetrack.services.tmdb import TmdbClient
from bingetrack.services.tracker import WatchTracker
from bingetrack.services.watch_log import WatchLogStore


async def get_catalog() -> AsyncIterator[CatalogClient]:
    """Dependency yielding a TMDB client sharing one connection pool per request."""
    async with httpx.AsyncClient() as client:
        yield TmdbClient(
            settings.tmdb_api_key,
            base_url=settings.tmdb_base_url,
            language=settings.tmdb_language,
            timeout=settings.request_timeout,
            client=client
        )


def get_store() -> WatchLogStore:
    """Dependency for the watch log store."""
    return WatchLogStore()


def get_tracker(
    catalog: CatalogClient = Depends(get_catalog),
    store: WatchLogStore = Depends(get_store)
) -> WatchTracker:
    """Dependency for the watch tracker, configured from current settings."""
    return WatchTracker(
        catalog,
        store,
        stale_after_days=settings.stale_after_days,
        lenient=settings.lenient_timestamps,
        prefetch_seasons=settings.prefetch_seasons
    )
