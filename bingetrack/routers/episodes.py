from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from bingetrack.config import settings
from bingetrack.dependencies import get_tracker
from bingetrack.services.tracker import WatchTracker

router = APIRouter()

EPISODE_PATH = "/users/{user_id}/shows/{show_id}/episodes/{season}/{episode}"


@router.get(EPISODE_PATH)
async def get_episode(
    user_id: str,
    show_id: int,
    season: int = Path(..., ge=0),
    episode: int = Path(..., ge=1),
    tracker: WatchTracker = Depends(get_tracker)
):
    """Episode details, labelled with the watch date when watched."""
    info = await tracker.episode_info(user_id, show_id, season, episode)
    return info.to_dict(settings.tmdb_image_base_url)


@router.get(EPISODE_PATH + "/previous")
async def get_previous_episode(
    user_id: str,
    show_id: int,
    season: int = Path(..., ge=0),
    episode: int = Path(..., ge=1),
    tracker: WatchTracker = Depends(get_tracker)
):
    """The episode before this one in the same season."""
    info = await tracker.sibling_episode(user_id, show_id, season, episode, "previous")
    return info.to_dict(settings.tmdb_image_base_url)


@router.get(EPISODE_PATH + "/next")
async def get_next_episode(
    user_id: str,
    show_id: int,
    season: int = Path(..., ge=0),
    episode: int = Path(..., ge=1),
    tracker: WatchTracker = Depends(get_tracker)
):
    """The episode after this one in the same season."""
    info = await tracker.sibling_episode(user_id, show_id, season, episode, "next")
    return info.to_dict(settings.tmdb_image_base_url)


@router.post(EPISODE_PATH + "/watched")
async def mark_watched(
    user_id: str,
    show_id: int,
    season: int,
    episode: int,
    tracker: WatchTracker = Depends(get_tracker)
):
    """Mark an episode as watched now."""
    update = await tracker.mark_watched(user_id, show_id, season, episode)
    return update.to_dict()


@router.delete(EPISODE_PATH + "/watched")
async def unmark_watched(
    user_id: str,
    show_id: int,
    season: int,
    episode: int,
    confirmed: bool = Query(False),
    tracker: WatchTracker = Depends(get_tracker)
):
    """Unmark a watched episode. Requires ``confirmed=true``."""
    update = await tracker.unmark_watched(user_id, show_id, season, episode, confirmed=confirmed)
    return update.to_dict()


@router.get("/shows/{show_id}/providers")
async def get_providers(
    show_id: int,
    region: Optional[str] = Query(None, min_length=2, max_length=2),
    tracker: WatchTracker = Depends(get_tracker)
):
    """Where a show can be watched in a region."""
    providers = await tracker.watch_providers(show_id, region or settings.default_region)
    return providers.to_dict()
