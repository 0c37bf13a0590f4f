import logging
from typing import Any, Dict, List, Optional

import httpx

from moviematch.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_LIMIT = 12


def normalize_movie(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Keep the fields clients render from a TMDb result."""
    return {
        "id": raw["id"],
        "title": raw.get("title") or raw.get("original_title") or "",
        "overview": raw.get("overview") or "",
        "poster_path": raw.get("poster_path"),
        "release_date": raw.get("release_date") or None,
        "popularity": raw.get("popularity"),
        "vote_average": raw.get("vote_average"),
        "genre_ids": raw.get("genre_ids") or [],
    }


class CatalogModule:
    """
    Client for the TMDb discover endpoint.

    One request per call, bounded by a timeout and never retried. Every
    failure surfaces as UpstreamUnavailable.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_BASE_URL,
        language: str = "en-US",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize catalog client.

        Args:
            api_key: TMDb API key (from the environment, never hard-coded)
            base_url: TMDb API base URL
            language: Language of titles and overviews
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.language = language
        self.timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def build_params(self, genres: List[str], release_year_cutoff: Optional[int]) -> Dict[str, Any]:
        """Query parameters for /discover/movie."""
        params = {
            "api_key": self.api_key,
            "with_genres": ",".join(genres),
            "language": self.language,
            "sort_by": "popularity.desc",
            "page": 1,
        }
        if release_year_cutoff is not None:
            params["primary_release_date.lte"] = f"{release_year_cutoff}-12-31"
        return params

    async def discover(
        self,
        genres: List[str],
        release_year_cutoff: Optional[int] = None,
        limit: int = DEFAULT_LIMIT,
    ) -> List[Dict[str, Any]]:
        """
        Fetch candidate movies, most popular first.

        Args:
            genres: Genre ids to filter by
            release_year_cutoff: Latest release year to include, None for no limit
            limit: Maximum number of movies returned

        Returns:
            Normalized movie records in the provider's order

        Raises:
            UpstreamUnavailable: Missing API key, transport error, bad status or body
        """
        if not self.is_configured:
            logger.error("TMDB_API_KEY is not configured, cannot fetch movies")
            raise UpstreamUnavailable("Movie catalog is not configured")

        params = self.build_params(genres, release_year_cutoff)
        url = f"{self.base_url}/discover/movie"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"Catalog request timed out after {self.timeout}s: {e}")
            raise UpstreamUnavailable("Movie catalog timed out", cause=e) from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Catalog returned HTTP {e.response.status_code}")
            raise UpstreamUnavailable("Error fetching movie list", cause=e) from e
        except httpx.HTTPError as e:
            logger.error(f"Catalog request failed: {e}")
            raise UpstreamUnavailable("Error fetching movie list", cause=e) from e
        except ValueError as e:
            logger.error(f"Catalog returned invalid JSON: {e}")
            raise UpstreamUnavailable("Invalid response from movie catalog", cause=e) from e

        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            logger.error("Catalog response has no results list")
            raise UpstreamUnavailable("Invalid response from movie catalog")

        movies = [normalize_movie(raw) for raw in results if isinstance(raw, dict) and "id" in raw]
        logger.info(f"Catalog returned {len(results)} movies, keeping {min(len(movies), limit)}")
        return movies[:limit]
