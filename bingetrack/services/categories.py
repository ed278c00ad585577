from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Optional
import logging

from bingetrack.episodes import Category, EpisodeInfo, WatchedEntry, normalize
from bingetrack.errors import ShowResolutionFailure
from bingetrack.fanout import ShowFanout, run_per_show
from bingetrack.services.catalog import CatalogClient
from bingetrack.services.progression import ProgressionResolver

logger = logging.getLogger(__name__)


@dataclass
class Categories:
    """The three watch-list buckets, each sorted by show name."""
    next: list[EpisodeInfo] = field(default_factory=list)
    stale: list[EpisodeInfo] = field(default_factory=list)
    not_started: list[EpisodeInfo] = field(default_factory=list)
    warnings: list[ShowResolutionFailure] = field(default_factory=list)

    def to_dict(self, image_base_url: str = "") -> dict:
        return {
            "next": [e.to_dict(image_base_url) for e in self.next],
            "stale": [e.to_dict(image_base_url) for e in self.stale],
            "not_started": [e.to_dict(image_base_url) for e in self.not_started],
            "warnings": [w.to_dict() for w in self.warnings]
        }


def _by_show_name(info: EpisodeInfo) -> tuple:
    return (info.show_name.casefold(), info.show_id)


async def build_categories(
    catalog: CatalogClient,
    onboarded_show_ids: Iterable[int],
    watch_log_by_show: Mapping[int, list[WatchedEntry]],
    stale_after_days: int = 30,
    lenient: bool = False,
    prefetch_seasons: bool = True,
    now: Optional[datetime] = None,
    fanout: Optional[ShowFanout] = None
) -> Categories:
    """
    Resolve every onboarded show and sort the results into watch-list buckets.

    Complete shows and shows the catalog cannot start are left out. A show
    that fails (unknown to the catalog, malformed watch log) is reported in
    ``warnings`` and never affects the others. Raises CatalogUnavailable when
    every show failed because of the catalog.
    """
    resolver = ProgressionResolver(
        catalog,
        stale_after_days=stale_after_days,
        prefetch_seasons=prefetch_seasons
    )

    async def resolve_show(show_id: int) -> Optional[tuple[Category, EpisodeInfo]]:
        normalized = normalize(watch_log_by_show.get(show_id, []), lenient=lenient)
        resolution = await resolver.resolve_with_details(show_id, normalized, now=now)
        if resolution is None or resolution.progression.category == Category.COMPLETE:
            return None

        show = resolution.show or await catalog.get_show_details(show_id)
        ref = resolution.progression.next_episode
        episode = resolution.episode
        info = EpisodeInfo(
            show_id=show_id,
            season=ref.season,
            episode=ref.episode,
            show_name=show.name,
            poster_path=show.poster_path,
            title=episode.name,
            overview=episode.overview,
            air_date=episode.air_date,
            still_path=episode.still_path,
            vote_average=episode.vote_average
        )
        return resolution.progression.category, info

    outcome = await run_per_show(onboarded_show_ids, resolve_show, name="categories", fanout=fanout)

    categories = Categories(warnings=outcome.warnings)
    buckets = {
        Category.NEXT: categories.next,
        Category.STALE: categories.stale,
        Category.NOT_STARTED: categories.not_started
    }
    for resolved in outcome.results.values():
        if resolved is None:
            continue
        category, info = resolved
        buckets[category].append(info)

    for bucket in buckets.values():
        bucket.sort(key=_by_show_name)

    logger.info(
        f"Watch list built: {len(categories.next)} next, {len(categories.stale)} stale, "
        f"{len(categories.not_started)} not started, {len(categories.warnings)} failed"
    )

    outcome.raise_if_all_failed()
    return categories
