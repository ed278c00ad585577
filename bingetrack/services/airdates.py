"""
Upcoming/past calendar over every onboarded show.

This walks every season and episode of every show rather than trusting the
catalog's "next episode to air" field, which says nothing about the user's
own backlog. Watch status is ignored here.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Union
import logging

from bingetrack.episodes import EpisodeInfo
from bingetrack.errors import ShowResolutionFailure
from bingetrack.fanout import ShowFanout, run_per_show
from bingetrack.services.catalog import CatalogClient, season_or_none

logger = logging.getLogger(__name__)


@dataclass
class Partition:
    past: list[EpisodeInfo] = field(default_factory=list)
    upcoming: list[EpisodeInfo] = field(default_factory=list)
    warnings: list[ShowResolutionFailure] = field(default_factory=list)

    def to_dict(self, image_base_url: str = "") -> dict:
        return {
            "past": [e.to_dict(image_base_url) for e in self.past],
            "upcoming": [e.to_dict(image_base_url) for e in self.upcoming],
            "warnings": [w.to_dict() for w in self.warnings]
        }


def _tiebreak(info: EpisodeInfo) -> tuple:
    return (info.show_name.casefold(), info.show_id, info.season, info.episode)


async def list_show_episodes(catalog: CatalogClient, show_id: int) -> list[EpisodeInfo]:
    """Every episode of a show with its air date, seasons fetched concurrently."""
    show = await catalog.get_show_details(show_id)
    numbers = range(1, show.total_seasons + 1)
    seasons = await asyncio.gather(*(season_or_none(catalog, show_id, n) for n in numbers))

    episodes = []
    for season in seasons:
        if season is None:
            continue
        for ep in season.episodes:
            episodes.append(EpisodeInfo(
                show_id=show_id,
                season=season.season_number,
                episode=ep.episode_number,
                show_name=show.name,
                poster_path=show.poster_path,
                title=ep.name,
                overview=ep.overview,
                air_date=ep.air_date or "",
                still_path=ep.still_path,
                vote_average=ep.vote_average
            ))
    return episodes


async def partition_by_air_date(
    catalog: CatalogClient,
    onboarded_show_ids: Iterable[int],
    today_iso: Union[str, date],
    fanout: Optional[ShowFanout] = None
) -> Partition:
    """
    Split every episode of every onboarded show into past and upcoming.

    Air date before ``today_iso`` is past, on or after it is upcoming, and
    episodes without an air date are left out. ``past`` is newest first,
    ``upcoming`` soonest first.
    """
    if isinstance(today_iso, date):
        today_iso = today_iso.isoformat()
    else:
        today_iso = date.fromisoformat(today_iso).isoformat()

    outcome = await run_per_show(
        onboarded_show_ids,
        lambda show_id: list_show_episodes(catalog, show_id),
        name="calendar",
        fanout=fanout
    )

    partition = Partition(warnings=outcome.warnings)
    for episodes in outcome.results.values():
        for info in episodes:
            if not info.air_date:
                continue
            if info.air_date < today_iso:
                partition.past.append(info)
            else:
                partition.upcoming.append(info)

    partition.past.sort(key=_tiebreak)
    partition.past.sort(key=lambda e: e.air_date, reverse=True)
    partition.upcoming.sort(key=lambda e: (e.air_date,) + _tiebreak(e))

    logger.info(
        f"Calendar built for {today_iso}: {len(partition.past)} past, "
        f"{len(partition.upcoming)} upcoming, {len(partition.warnings)} failed"
    )

    outcome.raise_if_all_failed()
    return partition
