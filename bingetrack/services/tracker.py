from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
import logging

from bingetrack.episodes import (
    EpisodeInfo, ShowProgression, WatchedEntry, episode_label, normalize, watched_label
)
from bingetrack.errors import (
    BingetrackError, ConfirmationRequired, InvalidWatchEntry, NotFound, ShowResolutionFailure
)
from bingetrack.services.catalog import CatalogClient, WatchProviders
from bingetrack.services.progression import ProgressionResolver
from bingetrack.services.watch_log import WatchLogStore

logger = logging.getLogger(__name__)


@dataclass
class WatchUpdate:
    """
    Outcome of a committed mark or unmark.

    ``progression`` is None when the show has nothing to offer, or when it
    could not be recomputed after the write; ``warning`` says which.
    """
    watched: bool
    progression: Optional[ShowProgression] = None
    warning: Optional[ShowResolutionFailure] = None

    def to_dict(self) -> dict:
        return {
            "watched": self.watched,
            "progression": self.progression.to_dict() if self.progression else None,
            "warning": self.warning.to_dict() if self.warning else None
        }


class WatchTracker:
    """
    Mutations on a user's watch log, and single-episode lookups.

    Mutations go to the store first; the returned progression is recomputed
    from what the store holds after the write, never from local state.
    """

    def __init__(
        self,
        catalog: CatalogClient,
        store: WatchLogStore,
        stale_after_days: int = 30,
        lenient: bool = False,
        prefetch_seasons: bool = True
    ):
        self.catalog = catalog
        self.store = store
        self.lenient = lenient
        self.resolver = ProgressionResolver(
            catalog,
            stale_after_days=stale_after_days,
            prefetch_seasons=prefetch_seasons
        )

    async def mark_watched(
        self,
        user_id: str,
        show_id: int,
        season: int,
        episode: int,
        watched_at: Optional[datetime] = None
    ) -> WatchUpdate:
        """Record a watch of an episode and return the show's new progression."""
        if season < 1 or episode < 1:
            raise InvalidWatchEntry(f"Invalid episode S{season} E{episode}")

        watched_at = watched_at or datetime.now(timezone.utc)
        entry = WatchedEntry(season=season, episode=episode, watched_at=watched_at)
        await self.store.append_watched_entry(user_id, show_id, entry)
        logger.info(f"User {user_id} watched show {show_id} {episode_label(season, episode)}")

        return await self._after_write(user_id, show_id, watched=True)

    async def unmark_watched(
        self,
        user_id: str,
        show_id: int,
        season: int,
        episode: int,
        confirmed: bool = False
    ) -> WatchUpdate:
        """Forget every watch of an episode. The caller must pass ``confirmed=True``."""
        if not confirmed:
            raise ConfirmationRequired(
                f"Unmarking {episode_label(season, episode)} of show {show_id} needs confirmation"
            )

        removed = await self.store.remove_watched_entry(user_id, show_id, season, episode)
        logger.info(
            f"User {user_id} unwatched show {show_id} {episode_label(season, episode)} "
            f"({removed} entries removed)"
        )

        return await self._after_write(user_id, show_id, watched=False)

    async def _after_write(self, user_id: str, show_id: int, watched: bool) -> WatchUpdate:
        # The write is committed at this point and must be reported as such
        try:
            progression = await self.progression(user_id, show_id)
        except BingetrackError as e:
            logger.warning(f"Show {show_id} progression not recomputed after write: {e}")
            return WatchUpdate(
                watched=watched,
                warning=ShowResolutionFailure(show_id, str(e) or type(e).__name__, cause=e)
            )
        return WatchUpdate(watched=watched, progression=progression)

    async def progression(self, user_id: str, show_id: int) -> Optional[ShowProgression]:
        """Recompute one show's progression from the stored log."""
        raw = await self.store.get_watch_log(user_id, show_id)
        normalized = normalize(raw, lenient=self.lenient)
        return await self.resolver.resolve(show_id, normalized)

    async def episode_info(self, user_id: str, show_id: int, season: int, episode: int) -> EpisodeInfo:
        """Episode details with a label telling whether and when the user watched it."""
        show = await self.catalog.get_show_details(show_id)
        details = await self.catalog.get_episode_details(show_id, season, episode)

        raw = await self.store.get_watch_log(user_id, show_id)
        watched = normalize(raw, lenient=self.lenient).get(season, episode)

        info = EpisodeInfo(
            show_id=show_id,
            season=details.season_number,
            episode=details.episode_number,
            show_name=show.name,
            poster_path=show.poster_path,
            title=details.name,
            overview=details.overview,
            air_date=details.air_date,
            still_path=details.still_path,
            vote_average=details.vote_average
        )
        if watched is not None:
            info.watched_at = watched.watched_at
            info.label = watched_label(watched.watched_at)
        return info

    async def sibling_episode(
        self,
        user_id: str,
        show_id: int,
        season: int,
        episode: int,
        direction: str
    ) -> EpisodeInfo:
        """The previous or next episode within the same season. Raises NotFound at either end."""
        if direction == "next":
            target = episode + 1
        elif direction == "previous":
            target = episode - 1
        else:
            raise ValueError(f"Unknown direction: {direction}")

        if target < 1:
            raise NotFound(f"No episode before {episode_label(season, episode)}")
        return await self.episode_info(user_id, show_id, season, target)

    async def watch_providers(self, show_id: int, region: str) -> WatchProviders:
        return await self.catalog.get_watch_providers(show_id, region)
