import httpx
from typing import Optional
import logging

from bingetrack.errors import CatalogUnavailable, NotFound
from bingetrack.services.catalog import (
    EpisodeDetails, Provider, SeasonDetails, SeasonEpisode, ShowDetails, WatchProviders
)

logger = logging.getLogger(__name__)


class TmdbClient:
    """Client for the TMDB v3 TV endpoints."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.themoviedb.org/3",
        language: str = "en-US",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.language = language
        self.timeout = timeout
        self.headers = {
            "Accept": "application/json"
        }
        self._client = client

    async def _get_json(self, path: str, params: Optional[dict] = None) -> dict:
        """GET a TMDB path, mapping 404 to NotFound and other failures to CatalogUnavailable."""
        query = {"api_key": self.api_key, "language": self.language}
        if params:
            query.update(params)

        try:
            if self._client is not None:
                response = await self._client.get(
                    f"{self.base_url}{path}",
                    headers=self.headers,
                    params=query,
                    timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(
                        f"{self.base_url}{path}",
                        headers=self.headers,
                        params=query,
                        timeout=self.timeout
                    )
            if response.status_code == 404:
                raise NotFound(f"TMDB has no resource at {path}")
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            logger.error(f"TMDB request failed for {path}: {e}")
            raise CatalogUnavailable(f"TMDB request failed for {path}: {e}") from e
        except ValueError as e:
            logger.error(f"TMDB returned a non-JSON body for {path}: {e}")
            raise CatalogUnavailable(f"TMDB returned a non-JSON body for {path}") from e

    async def get_show_details(self, show_id: int) -> ShowDetails:
        """Get name, poster and season count for a show."""
        data = await self._get_json(f"/tv/{show_id}")
        return ShowDetails(
            id=data.get("id", show_id),
            name=data.get("name") or "",
            poster_path=data.get("poster_path"),
            total_seasons=data.get("number_of_seasons") or 0
        )

    async def get_season_details(self, show_id: int, season_number: int) -> SeasonDetails:
        """Get every episode listed for a season."""
        data = await self._get_json(f"/tv/{show_id}/season/{season_number}")
        episodes = []
        for ep in data.get("episodes", []) or []:
            number = ep.get("episode_number")
            if number is None:
                continue
            episodes.append(SeasonEpisode(
                episode_number=number,
                name=ep.get("name") or "",
                air_date=ep.get("air_date") or "",
                still_path=ep.get("still_path"),
                overview=ep.get("overview") or "",
                vote_average=ep.get("vote_average") or 0.0
            ))
        return SeasonDetails(
            season_number=data.get("season_number", season_number),
            episodes=episodes
        )

    async def get_episode_details(
        self,
        show_id: int,
        season_number: int,
        episode_number: int
    ) -> EpisodeDetails:
        """Get title, synopsis, air date, still and rating for one episode."""
        data = await self._get_json(
            f"/tv/{show_id}/season/{season_number}/episode/{episode_number}"
        )
        return EpisodeDetails(
            season_number=data.get("season_number", season_number),
            episode_number=data.get("episode_number", episode_number),
            name=data.get("name") or "",
            overview=data.get("overview") or "",
            air_date=data.get("air_date") or "",
            still_path=data.get("still_path"),
            vote_average=data.get("vote_average") or 0.0
        )

    async def get_watch_providers(self, show_id: int, region: str) -> WatchProviders:
        """Get where a show can be streamed, rented or bought in a region."""
        data = await self._get_json(f"/tv/{show_id}/watch/providers")
        regional = (data.get("results") or {}).get(region.upper())
        if not regional:
            return WatchProviders(region=region.upper())

        def _providers(key: str) -> list[Provider]:
            return [
                Provider(
                    provider_id=p.get("provider_id"),
                    provider_name=p.get("provider_name") or "",
                    logo_path=p.get("logo_path")
                )
                for p in regional.get(key, []) or []
            ]

        return WatchProviders(
            region=region.upper(),
            link=regional.get("link") or "",
            flatrate=_providers("flatrate"),
            rent=_providers("rent"),
            buy=_providers("buy")
        )
