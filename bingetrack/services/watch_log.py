from datetime import datetime
from typing import Iterable, Optional
import logging

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bingetrack.database import async_session
from bingetrack.episodes import WatchedEntry
from bingetrack.errors import StoreWriteFailure
from bingetrack.models import OnboardedShow, WatchedEpisode

logger = logging.getLogger(__name__)


def _to_entry(row: WatchedEpisode) -> WatchedEntry:
    return WatchedEntry(
        season=row.season_number,
        episode=row.episode_number,
        watched_at=row.watched_at
    )


class WatchLogStore:
    """
    Per-user watch log and onboarded-show list.

    Every mutation touches only the rows of a single (user, show) pair:
    appends are one INSERT, removals one DELETE. Nothing ever rewrites a
    user's whole log, so concurrent writes to other shows are never lost.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = async_session):
        self._session_factory = session_factory

    async def get_watch_log(self, user_id: str, show_id: int) -> list[WatchedEntry]:
        """Get the raw (undeduplicated) watch log for one show."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(WatchedEpisode).where(
                    WatchedEpisode.user_id == user_id,
                    WatchedEpisode.show_id == show_id
                ).order_by(WatchedEpisode.id)
            )
            return [_to_entry(row) for row in result.scalars().all()]

    async def get_watch_logs(
        self,
        user_id: str,
        show_ids: Optional[Iterable[int]] = None
    ) -> dict[int, list[WatchedEntry]]:
        """Get raw watch logs keyed by show id, optionally limited to some shows."""
        query = select(WatchedEpisode).where(WatchedEpisode.user_id == user_id)
        if show_ids is not None:
            query = query.where(WatchedEpisode.show_id.in_(list(show_ids)))

        async with self._session_factory() as session:
            result = await session.execute(query.order_by(WatchedEpisode.id))
            logs: dict[int, list[WatchedEntry]] = {}
            for row in result.scalars().all():
                logs.setdefault(row.show_id, []).append(_to_entry(row))
            return logs

    async def append_watched_entry(self, user_id: str, show_id: int, entry: WatchedEntry) -> None:
        """Append one watched entry to a show's log."""
        watched_at = entry.watched_at
        if isinstance(watched_at, datetime):
            watched_at = watched_at.isoformat()

        try:
            async with self._session_factory() as session:
                session.add(WatchedEpisode(
                    user_id=user_id,
                    show_id=show_id,
                    season_number=entry.season,
                    episode_number=entry.episode,
                    watched_at=watched_at
                ))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to append S{entry.season}E{entry.episode} for show {show_id}: {e}")
            raise StoreWriteFailure(f"Could not record watch for show {show_id}") from e

    async def remove_watched_entry(
        self,
        user_id: str,
        show_id: int,
        season: int,
        episode: int
    ) -> int:
        """Remove every entry for an episode of a show. Returns the number of rows removed."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(WatchedEpisode).where(
                        WatchedEpisode.user_id == user_id,
                        WatchedEpisode.show_id == show_id,
                        WatchedEpisode.season_number == season,
                        WatchedEpisode.episode_number == episode
                    )
                )
                await session.commit()
                return result.rowcount or 0
        except SQLAlchemyError as e:
            logger.error(f"Failed to remove S{season}E{episode} for show {show_id}: {e}")
            raise StoreWriteFailure(f"Could not remove watch for show {show_id}") from e

    async def get_onboarded_shows(self, user_id: str) -> list[int]:
        """Get the show ids a user picked during onboarding."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(OnboardedShow.show_id).where(
                    OnboardedShow.user_id == user_id
                ).order_by(OnboardedShow.id)
            )
            return list(result.scalars().all())

    async def set_onboarded_shows(self, user_id: str, show_ids: Iterable[int]) -> list[int]:
        """Replace a user's onboarded show list."""
        unique_ids = list(dict.fromkeys(show_ids))
        try:
            async with self._session_factory() as session:
                await session.execute(
                    delete(OnboardedShow).where(OnboardedShow.user_id == user_id)
                )
                for show_id in unique_ids:
                    session.add(OnboardedShow(user_id=user_id, show_id=show_id))
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save onboarded shows for user {user_id}: {e}")
            raise StoreWriteFailure("Could not save onboarded shows") from e
        return unique_ids
