from dataclasses import dataclass, field
from typing import Optional, Protocol
import logging

from bingetrack.errors import CatalogUnavailable, NotFound

logger = logging.getLogger(__name__)


@dataclass
class ShowDetails:
    id: int
    name: str
    poster_path: Optional[str]
    total_seasons: int


@dataclass
class SeasonEpisode:
    episode_number: int
    name: str = ""
    air_date: str = ""
    still_path: Optional[str] = None
    overview: str = ""
    vote_average: float = 0.0


@dataclass
class SeasonDetails:
    season_number: int
    episodes: list[SeasonEpisode] = field(default_factory=list)

    def episode_numbers(self) -> list[int]:
        """Episode numbers in ascending order."""
        return sorted(ep.episode_number for ep in self.episodes)


@dataclass
class EpisodeDetails:
    season_number: int
    episode_number: int
    name: str = ""
    overview: str = ""
    air_date: str = ""
    still_path: Optional[str] = None
    vote_average: float = 0.0


@dataclass
class Provider:
    provider_id: int
    provider_name: str
    logo_path: Optional[str] = None


@dataclass
class WatchProviders:
    region: str
    link: str = ""
    flatrate: list[Provider] = field(default_factory=list)
    rent: list[Provider] = field(default_factory=list)
    buy: list[Provider] = field(default_factory=list)

    def to_dict(self) -> dict:
        def _providers(items: list[Provider]) -> list[dict]:
            return [
                {"provider_id": p.provider_id, "provider_name": p.provider_name, "logo_path": p.logo_path}
                for p in items
            ]

        return {
            "region": self.region,
            "link": self.link,
            "flatrate": _providers(self.flatrate),
            "rent": _providers(self.rent),
            "buy": _providers(self.buy)
        }


class CatalogClient(Protocol):
    """Read-only show/season/episode metadata source. Raises NotFound for absent entities."""

    async def get_show_details(self, show_id: int) -> ShowDetails: ...

    async def get_season_details(self, show_id: int, season_number: int) -> SeasonDetails: ...

    async def get_episode_details(
        self, show_id: int, season_number: int, episode_number: int
    ) -> EpisodeDetails: ...

    async def get_watch_providers(self, show_id: int, region: str) -> WatchProviders: ...


async def season_or_none(catalog: CatalogClient, show_id: int, season_number: int) -> Optional[SeasonDetails]:
    """Fetch a season, treating a missing or unreachable season as absent."""
    try:
        return await catalog.get_season_details(show_id, season_number)
    except NotFound:
        logger.debug(f"Show {show_id} season {season_number} not in catalog, skipping")
    except CatalogUnavailable as e:
        logger.warning(f"Show {show_id} season {season_number} unavailable, skipping: {e}")
    return None


async def episode_or_none(
    catalog: CatalogClient,
    show_id: int,
    season_number: int,
    episode_number: int
) -> Optional[EpisodeDetails]:
    """Fetch an episode, treating a missing or unreachable episode as absent."""
    try:
        return await catalog.get_episode_details(show_id, season_number, episode_number)
    except NotFound:
        logger.debug(f"Show {show_id} S{season_number}E{episode_number} not in catalog")
    except CatalogUnavailable as e:
        logger.warning(f"Show {show_id} S{season_number}E{episode_number} unavailable: {e}")
    return None
