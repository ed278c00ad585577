"""
Progression resolution: where a user is in a show.

The resolver always walks the catalog from season 1 upwards and reports the
first episode the user has no watch entry for. It never resumes from the last
watched season: catalogs renumber and insert episodes, and a gap early in the
show must win over a later one.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from bingetrack.episodes import Category, EpisodeRef, NormalizedWatchSet, ShowProgression
from bingetrack.errors import NotFound
from bingetrack.services.catalog import (
    CatalogClient, EpisodeDetails, ShowDetails, episode_or_none, season_or_none
)

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """A show's progression plus the catalog details of its next episode."""
    progression: ShowProgression
    episode: Optional[EpisodeDetails] = None
    show: Optional[ShowDetails] = None


class ProgressionResolver:
    """Resolves a show's next unwatched episode and its watch-list category."""

    def __init__(
        self,
        catalog: CatalogClient,
        stale_after_days: int = 30,
        prefetch_seasons: bool = True
    ):
        self.catalog = catalog
        self.stale_after = timedelta(days=stale_after_days)
        self.prefetch_seasons = prefetch_seasons

    async def resolve(
        self,
        show_id: int,
        normalized: NormalizedWatchSet,
        now: Optional[datetime] = None
    ) -> Optional[ShowProgression]:
        """Resolve a show's progression, or None when the show has nothing to offer."""
        resolution = await self.resolve_with_details(show_id, normalized, now=now)
        return resolution.progression if resolution else None

    async def resolve_with_details(
        self,
        show_id: int,
        normalized: NormalizedWatchSet,
        now: Optional[datetime] = None
    ) -> Optional[Resolution]:
        """
        Resolve a show's progression and keep the next episode's details.

        Returns None for an unstarted show whose S1E1 the catalog does not
        know. Raises NotFound / CatalogUnavailable for show-level failures,
        and CatalogUnavailable when an unstarted show's S1E1 cannot be
        fetched. Missing seasons and episodes of a started show are absent.
        """
        if not normalized:
            show = await self.catalog.get_show_details(show_id)
            try:
                details = await self.catalog.get_episode_details(show_id, 1, 1)
            except NotFound:
                logger.info(f"Show {show_id} has no S1E1 in the catalog, skipping")
                return None
            return Resolution(
                progression=ShowProgression(
                    show_id=show_id,
                    category=Category.NOT_STARTED,
                    next_episode=EpisodeRef(show_id, 1, 1)
                ),
                episode=details,
                show=show
            )

        most_recent = normalized.most_recent()
        show = await self.catalog.get_show_details(show_id)
        gap = await self.find_first_gap(show_id, normalized, show=show)

        if gap is None:
            return Resolution(
                progression=ShowProgression(
                    show_id=show_id,
                    category=Category.COMPLETE,
                    next_episode=None,
                    last_watched_at=most_recent.watched_at
                ),
                show=show
            )

        ref, details = gap
        return Resolution(
            progression=ShowProgression(
                show_id=show_id,
                category=self.classify(most_recent.watched_at, now),
                next_episode=ref,
                last_watched_at=most_recent.watched_at
            ),
            episode=details,
            show=show
        )

    def classify(self, last_watched_at: datetime, now: Optional[datetime] = None) -> Category:
        """NEXT when the last watch is at most ``stale_after_days`` old, STALE otherwise."""
        now = now or datetime.now(timezone.utc)
        if now - last_watched_at <= self.stale_after:
            return Category.NEXT
        return Category.STALE

    async def find_first_gap(
        self,
        show_id: int,
        normalized: NormalizedWatchSet,
        show: Optional[ShowDetails] = None
    ) -> Optional[tuple[EpisodeRef, EpisodeDetails]]:
        """Walk seasons and episodes in ascending order and return the first unwatched one."""
        if show is None:
            show = await self.catalog.get_show_details(show_id)
        seasons = range(1, show.total_seasons + 1)

        prefetched: dict[int, asyncio.Task] = {}
        if self.prefetch_seasons:
            prefetched = {
                number: asyncio.ensure_future(season_or_none(self.catalog, show_id, number))
                for number in seasons
            }

        try:
            for number in seasons:
                if prefetched:
                    season = await prefetched[number]
                else:
                    season = await season_or_none(self.catalog, show_id, number)
                if season is None:
                    continue

                for episode_number in season.episode_numbers():
                    if (number, episode_number) in normalized:
                        continue
                    details = await episode_or_none(self.catalog, show_id, number, episode_number)
                    if details is None:
                        continue
                    return EpisodeRef(show_id, number, episode_number), details
        finally:
            for task in prefetched.values():
                if not task.done():
                    task.cancel()
            if prefetched:
                await asyncio.gather(*prefetched.values(), return_exceptions=True)

        return None

