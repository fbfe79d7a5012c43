"""
TMDB Core Service - Catalog client for TMDB TV endpoints.
Handles API communication and adapts raw payloads into canonical catalog models.
"""

from __future__ import annotations

from typing import Any, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

from adapters.config import SearchSettings
from api.tmdb.auth import Auth
from api.tmdb.models import (
    AvailabilitySet,
    CatalogSearchPage,
    CatalogShow,
    SeasonAvailability,
    SeasonDetail,
)
from api.tmdb.tmdb_models import (
    TMDBSeasonDetailsResult,
    TMDBSearchTvResult,
    TMDBTvDetailsResult,
    TMDBWatchProvidersResult,
)
from contracts.errors import InvalidQuery, UpstreamError
from utils.base_api_client import BaseAPIClient
from utils.call_quota import CallQuota
from utils.get_logger import get_logger
from utils.redis_cache import RedisCache

# Request cache - raw TMDB responses, refreshed daily
TMDBRequestCache = RedisCache(
    defaultTTL=24 * 60 * 60,
    prefix="tmdb_request",
    verbose=False,
    isClassMethod=True,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class TMDBService(Auth, BaseAPIClient):
    """
    Catalog client for TMDB TV data.

    Every public method returns canonical models from api.tmdb.models and
    raises UpstreamError on any failure other than a not-found detail lookup.
    """

    # TMDB allows ~40 requests per second; stay under it
    _rate_limit_max = 35
    _rate_limit_period = 1

    def __init__(self, settings: SearchSettings | None = None, quota: CallQuota | None = None):
        super().__init__(settings)
        self._rate_limit_max = self.settings.tmdb_rate_limit_max
        self.quota = quota or CallQuota(limit=self.settings.tmdb_daily_call_limit)

    @RedisCache.use_cache(TMDBRequestCache, prefix="tmdb_api")
    async def _make_request(
        self, endpoint: str, params: dict[str, Any] | None = None, max_retries: int = 3
    ) -> dict[str, Any] | None:
        """Make async HTTP request to TMDB API.

        Cached responses do not spend quota; live requests spend one unit.

        Args:
            endpoint: API endpoint (e.g., 'tv/1396')
            params: Optional query parameters
            max_retries: Maximum number of retry attempts

        Returns:
            JSON response dict, or None when TMDB answers 404

        Raises:
            UpstreamError: quota exhausted, network failure, non-2xx or non-object body
        """
        if not self.quota.try_acquire():
            raise UpstreamError(
                f"TMDB daily call quota exhausted ({self.quota.limit} calls); "
                f"resets in {self.quota.seconds_until_reset():.0f}s",
                endpoint=endpoint,
            )

        url = f"{self.base_url}/{endpoint}"
        request_params = {**(params or {}), **self.auth_params()}
        try:
            data, status = await self._core_async_request(
                url=url,
                params=request_params or None,
                headers=self.auth_headers(),
                timeout=30,
                max_retries=max_retries,
                rate_limit_max=self._rate_limit_max,
                rate_limit_period=self._rate_limit_period,
                return_status_code=True,
            )
        except (TimeoutError, aiohttp.ClientError) as e:
            raise UpstreamError(f"TMDB request failed: {e}", endpoint=endpoint) from e
        except ValueError as e:
            # Undecodable body on a 200: JSONDecodeError / UnicodeDecodeError
            raise UpstreamError(f"Malformed TMDB payload: {e}", endpoint=endpoint) from e

        if status == 404:
            return None
        if status != 200 or data is None:
            raise UpstreamError("TMDB returned an error", endpoint=endpoint, upstream_status=status)
        if not isinstance(data, dict):
            raise UpstreamError("TMDB returned a non-object body", endpoint=endpoint)
        return data

    @staticmethod
    def _validate(model: type[ModelT], data: dict[str, Any], endpoint: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise UpstreamError(
                f"Malformed TMDB payload: {e.error_count()} validation errors", endpoint=endpoint
            ) from e

    async def _get_page(
        self, endpoint: str, params: dict[str, Any], limit: int | None = None
    ) -> CatalogSearchPage:
        data = await self._make_request(endpoint, params=params)
        if data is None:
            raise UpstreamError("TMDB list endpoint not found", endpoint=endpoint, upstream_status=404)
        result = self._validate(TMDBSearchTvResult, data, endpoint)
        shows = [CatalogShow.from_tv_search(item) for item in result.results]
        if limit is not None:
            shows = shows[: max(limit, 0)]
        return CatalogSearchPage(
            shows=shows,
            page=result.page,
            total_pages=result.total_pages,
            total_results=result.total_results,
        )

    async def search_by_title(self, title: str, page: int = 1, limit: int = 20) -> CatalogSearchPage:
        """Search TV titles. The upstream page is truncated to `limit` entries."""
        title = title.strip()
        if not title:
            raise InvalidQuery("Search title must not be empty")
        return await self._get_page(
            "search/tv",
            {"query": title, "page": page, "include_adult": "false", "language": "en-US"},
            limit=limit,
        )

    async def get_show_detail(self, catalog_id: int) -> CatalogShow | None:
        """Show detail, or None when TMDB does not know the id."""
        endpoint = f"tv/{catalog_id}"
        data = await self._make_request(endpoint, params={"language": "en-US"})
        if data is None:
            return None
        return CatalogShow.from_tv_details(self._validate(TMDBTvDetailsResult, data, endpoint))

    async def _get_availability(self, endpoint: str, country: str) -> AvailabilitySet:
        data = await self._make_request(endpoint)
        if data is None:
            return AvailabilitySet.empty()
        result = self._validate(TMDBWatchProvidersResult, data, endpoint)
        return AvailabilitySet.from_tmdb(result.results.get(country.upper()))

    async def get_providers(self, catalog_id: int, country: str) -> AvailabilitySet:
        """Current watch providers for a show in one country; empty when the country is absent."""
        return await self._get_availability(f"tv/{catalog_id}/watch/providers", country)

    async def get_season_providers(
        self, catalog_id: int, season_number: int, country: str
    ) -> SeasonAvailability:
        availability = await self._get_availability(
            f"tv/{catalog_id}/season/{season_number}/watch/providers", country
        )
        return SeasonAvailability.from_availability(season_number, availability)

    async def get_season_detail(self, catalog_id: int, season_number: int) -> SeasonDetail | None:
        endpoint = f"tv/{catalog_id}/season/{season_number}"
        data = await self._make_request(endpoint, params={"language": "en-US"})
        if data is None:
            return None
        return SeasonDetail.from_tmdb(
            catalog_id, self._validate(TMDBSeasonDetailsResult, data, endpoint)
        )

    async def get_popular_shows(self, page: int = 1, limit: int = 20) -> CatalogSearchPage:
        return await self._get_page("tv/popular", {"page": page, "language": "en-US"}, limit=limit)

    async def get_trending_shows(self, limit: int = 20) -> list[CatalogShow]:
        """Today's trending TV shows."""
        page = await self._get_page("trending/tv/day", {"language": "en-US"}, limit=limit)
        return page.shows

    async def get_shows_by_genre(
        self, genre_id: int, page: int = 1, limit: int = 20
    ) -> CatalogSearchPage:
        return await self._get_page(
            "discover/tv",
            {
                "with_genres": genre_id,
                "page": page,
                "sort_by": "popularity.desc",
                "language": "en-US",
            },
            limit=limit,
        )
