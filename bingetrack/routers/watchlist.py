from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from bingetrack.config import settings
from bingetrack.dependencies import get_catalog, get_store
from bingetrack.fanout import ShowFanout
from bingetrack.services.airdates import partition_by_air_date
from bingetrack.services.catalog import CatalogClient
from bingetrack.services.categories import build_categories
from bingetrack.services.history import build_history
from bingetrack.services.watch_log import WatchLogStore

router = APIRouter()


def _onboarded_fanout(name: str, user_id: str, store: WatchLogStore) -> ShowFanout:
    """A fan-out that drops shows the user deselects while it runs."""
    return ShowFanout(name, membership=lambda: store.get_onboarded_shows(user_id))


class OnboardedShows(BaseModel):
    show_ids: list[int]


@router.get("/users/{user_id}/watchlist")
async def get_watchlist(
    user_id: str,
    catalog: CatalogClient = Depends(get_catalog),
    store: WatchLogStore = Depends(get_store)
):
    """Watch Next, Haven't Watched For A While and Haven't Started buckets."""
    show_ids = await store.get_onboarded_shows(user_id)
    watch_logs = await store.get_watch_logs(user_id, show_ids)

    categories = await build_categories(
        catalog,
        show_ids,
        watch_logs,
        stale_after_days=settings.stale_after_days,
        lenient=settings.lenient_timestamps,
        prefetch_seasons=settings.prefetch_seasons,
        fanout=_onboarded_fanout("watchlist", user_id, store)
    )
    return categories.to_dict(settings.tmdb_image_base_url)


@router.get("/users/{user_id}/calendar")
async def get_calendar(
    user_id: str,
    today: Optional[date] = Query(None),
    catalog: CatalogClient = Depends(get_catalog),
    store: WatchLogStore = Depends(get_store)
):
    """Past and upcoming episodes of every onboarded show."""
    show_ids = await store.get_onboarded_shows(user_id)
    partition = await partition_by_air_date(
        catalog,
        show_ids,
        today or date.today(),
        fanout=_onboarded_fanout("calendar", user_id, store)
    )
    return partition.to_dict(settings.tmdb_image_base_url)


@router.get("/users/{user_id}/history")
async def get_history(
    user_id: str,
    limit: int = Query(20, ge=0),
    catalog: CatalogClient = Depends(get_catalog),
    store: WatchLogStore = Depends(get_store)
):
    """Watched episodes across all shows, newest first, with a stable total count."""
    watch_logs = await store.get_watch_logs(user_id)
    history = await build_history(catalog, watch_logs, lenient=settings.lenient_timestamps)
    return history.to_dict(settings.tmdb_image_base_url, limit=limit)


@router.get("/users/{user_id}/shows")
async def get_onboarded_shows(user_id: str, store: WatchLogStore = Depends(get_store)):
    """Shows picked during onboarding."""
    return {"show_ids": await store.get_onboarded_shows(user_id)}


@router.put("/users/{user_id}/shows")
async def put_onboarded_shows(
    user_id: str,
    body: OnboardedShows,
    store: WatchLogStore = Depends(get_store)
):
    """Replace the onboarded show list."""
    return {"show_ids": await store.set_onboarded_shows(user_id, body.show_ids)}
