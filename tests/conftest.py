from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bingetrack.database import Base
from bingetrack.errors import CatalogUnavailable, NotFound
from bingetrack.services.catalog import (
    EpisodeDetails, Provider, SeasonDetails, SeasonEpisode, ShowDetails, WatchProviders
)
from bingetrack.services.watch_log import WatchLogStore
import bingetrack.models  # noqa: F401

NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


def days_ago(days: float, now: datetime = NOW) -> str:
    return (now - timedelta(days=days)).isoformat()


class FakeCatalog:
    """In-memory catalog. Seasons map episode numbers to air dates."""

    def __init__(self):
        self.shows: dict[int, ShowDetails] = {}
        self.seasons: dict[tuple[int, int], SeasonDetails] = {}
        self.missing_episodes: set[tuple[int, int, int]] = set()
        self.unavailable_shows: set[int] = set()
        self.providers: dict[int, dict[str, WatchProviders]] = {}
        self.calls: list[tuple] = []

    def add_show(
        self,
        show_id: int,
        name: str,
        seasons: dict[int, dict[int, str]],
        total_seasons: Optional[int] = None,
        poster_path: Optional[str] = None
    ):
        self.shows[show_id] = ShowDetails(
            id=show_id,
            name=name,
            poster_path=poster_path or f"/poster{show_id}.jpg",
            total_seasons=total_seasons if total_seasons is not None else len(seasons)
        )
        for season_number, episodes in seasons.items():
            self.seasons[(show_id, season_number)] = SeasonDetails(
                season_number=season_number,
                episodes=[
                    SeasonEpisode(
                        episode_number=number,
                        name=f"{name} {season_number}x{number}",
                        air_date=air_date,
                        still_path=f"/still{show_id}-{season_number}-{number}.jpg",
                        overview=f"Overview of {season_number}x{number}",
                        vote_average=7.5
                    )
                    for number, air_date in episodes.items()
                ]
            )

    async def get_show_details(self, show_id: int) -> ShowDetails:
        self.calls.append(("show", show_id))
        if show_id in self.unavailable_shows:
            raise CatalogUnavailable(f"show {show_id} unavailable")
        if show_id not in self.shows:
            raise NotFound(f"show {show_id}")
        return self.shows[show_id]

    async def get_season_details(self, show_id: int, season_number: int) -> SeasonDetails:
        self.calls.append(("season", show_id, season_number))
        season = self.seasons.get((show_id, season_number))
        if season is None:
            raise NotFound(f"show {show_id} season {season_number}")
        return season

    async def get_episode_details(self, show_id: int, season_number: int, episode_number: int) -> EpisodeDetails:
        self.calls.append(("episode", show_id, season_number, episode_number))
        if (show_id, season_number, episode_number) in self.missing_episodes:
            raise NotFound(f"show {show_id} S{season_number}E{episode_number}")
        season = self.seasons.get((show_id, season_number))
        if season is None:
            raise NotFound(f"show {show_id} season {season_number}")
        for ep in season.episodes:
            if ep.episode_number == episode_number:
                return EpisodeDetails(
                    season_number=season_number,
                    episode_number=episode_number,
                    name=ep.name,
                    overview=ep.overview,
                    air_date=ep.air_date,
                    still_path=ep.still_path,
                    vote_average=ep.vote_average
                )
        raise NotFound(f"show {show_id} S{season_number}E{episode_number}")

    async def get_watch_providers(self, show_id: int, region: str) -> WatchProviders:
        if show_id not in self.shows:
            raise NotFound(f"show {show_id}")
        return self.providers.get(show_id, {}).get(region, WatchProviders(region=region))


def aired(count: int, first: str = "2020-01-01") -> dict[int, str]:
    """Episodes 1..count, all with the same past air date."""
    return {n: first for n in range(1, count + 1)}


@pytest.fixture
def catalog() -> FakeCatalog:
    fake = FakeCatalog()
    fake.add_show(1, "Andor", {1: aired(10)})
    fake.add_show(2, "Severance", {1: aired(5), 2: aired(3)})
    fake.providers[2] = {
        "US": WatchProviders(
            region="US",
            link="https://example.test/severance",
            flatrate=[Provider(provider_id=350, provider_name="Apple TV+", logo_path="/apple.jpg")]
        )
    }
    return fake


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def store(session_factory) -> WatchLogStore:
    return WatchLogStore(session_factory)
