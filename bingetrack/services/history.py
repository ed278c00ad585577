import asyncio
from dataclasses import dataclass, field
from typing import Mapping, Optional
import logging

from bingetrack.episodes import EpisodeInfo, WatchedEntry, normalize, take_first_n, watched_label
from bingetrack.errors import ShowResolutionFailure
from bingetrack.fanout import ShowFanout, run_per_show
from bingetrack.services.catalog import CatalogClient, episode_or_none

logger = logging.getLogger(__name__)


@dataclass
class History:
    """Every watched episode across shows, most recent first."""
    entries: list[EpisodeInfo] = field(default_factory=list)
    warnings: list[ShowResolutionFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.entries)

    def take_first(self, n: int) -> list[EpisodeInfo]:
        return take_first_n(self.entries, n)

    def to_dict(self, image_base_url: str = "", limit: Optional[int] = None) -> dict:
        entries = self.entries if limit is None else self.take_first(limit)
        return {
            "total": self.total,
            "entries": [e.to_dict(image_base_url) for e in entries],
            "warnings": [w.to_dict() for w in self.warnings]
        }


async def build_history(
    catalog: CatalogClient,
    watch_log_by_show: Mapping[int, list[WatchedEntry]],
    lenient: bool = False,
    fanout: Optional[ShowFanout] = None
) -> History:
    """
    Flatten every show's watch log into one feed sorted by watch time, newest first.

    Each show's log is normalized first, so a re-watched episode appears once
    with its latest watch time. Episodes the catalog no longer knows keep
    their numbers with empty metadata.
    """

    async def enrich_show(show_id: int) -> list[EpisodeInfo]:
        normalized = normalize(watch_log_by_show.get(show_id, []), lenient=lenient)
        if not normalized:
            return []

        show = await catalog.get_show_details(show_id)
        entries = normalized.entries()
        details = await _gather_details(catalog, show_id, entries)

        feed = []
        for entry, episode in zip(entries, details):
            info = EpisodeInfo(
                show_id=show_id,
                season=entry.season,
                episode=entry.episode,
                show_name=show.name,
                poster_path=show.poster_path,
                label=watched_label(entry.watched_at),
                watched_at=entry.watched_at
            )
            if episode is not None:
                info.title = episode.name
                info.overview = episode.overview
                info.air_date = episode.air_date
                info.still_path = episode.still_path
                info.vote_average = episode.vote_average
            feed.append(info)
        return feed

    outcome = await run_per_show(watch_log_by_show.keys(), enrich_show, name="history", fanout=fanout)

    history = History(warnings=outcome.warnings)
    for feed in outcome.results.values():
        history.entries.extend(feed)
    history.entries.sort(key=lambda e: (e.show_id, e.season, e.episode))
    history.entries.sort(key=lambda e: e.watched_at, reverse=True)

    logger.info(f"History built: {history.total} entries, {len(history.warnings)} shows failed")
    return history


async def _gather_details(catalog: CatalogClient, show_id: int, entries: list[WatchedEntry]):
    return await asyncio.gather(*(
        episode_or_none(catalog, show_id, entry.season, entry.episode) for entry in entries
    ))
