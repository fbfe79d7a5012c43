"""
TMDB Models - Pydantic models for raw TMDB TV payloads.
These mirror what the API returns; nothing outside api.tmdb should depend on them.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# ============================================================================
# Raw TMDB API Models
# ============================================================================


class TMDBSearchTv(BaseModel):
    """Model for a tv result from TMDB search, popular, trending and discover APIs."""

    adult: bool = False
    backdrop_path: str | None = None
    genre_ids: list[int] = Field(default_factory=list)
    id: int
    origin_country: list[str] = Field(default_factory=list)
    original_language: str | None = None
    original_name: str | None = None
    overview: str | None = None
    popularity: float = 0.0
    poster_path: str | None = None
    first_air_date: str | None = None
    name: str | None = None
    vote_average: float = 0.0
    vote_count: int = 0


class TMDBSearchTvResult(BaseModel):
    """Paged list envelope shared by /search/tv, /tv/popular, /trending/tv and /discover/tv."""

    page: int = 1
    results: list[TMDBSearchTv] = Field(default_factory=list)
    total_pages: int = 0
    total_results: int = 0


class TMDBGenre(BaseModel):
    id: int
    name: str


class TMDBSeasonSummary(BaseModel):
    id: int | None = None
    name: str | None = None
    season_number: int
    episode_count: int | None = None
    air_date: str | None = None
    poster_path: str | None = None


class TMDBTvDetailsResult(BaseModel):
    """Model for TMDB /tv/{id} response."""

    id: int
    name: str | None = None
    original_name: str | None = None
    overview: str | None = None
    status: str | None = None
    type: str | None = None
    backdrop_path: str | None = None
    poster_path: str | None = None
    first_air_date: str | None = None
    last_air_date: str | None = None
    number_of_seasons: int | None = None
    number_of_episodes: int | None = None
    vote_average: float = 0.0
    vote_count: int = 0
    popularity: float = 0.0
    genres: list[TMDBGenre] = Field(default_factory=list)
    seasons: list[TMDBSeasonSummary] = Field(default_factory=list)


class TMDBWatchProvider(BaseModel):
    """One provider entry inside a country's availability buckets."""

    provider_id: int
    provider_name: str
    logo_path: str | None = None
    display_priority: int = 999


class TMDBCountryProviders(BaseModel):
    link: str | None = None
    flatrate: list[TMDBWatchProvider] = Field(default_factory=list)
    free: list[TMDBWatchProvider] = Field(default_factory=list)
    ads: list[TMDBWatchProvider] = Field(default_factory=list)
    rent: list[TMDBWatchProvider] = Field(default_factory=list)
    buy: list[TMDBWatchProvider] = Field(default_factory=list)


class TMDBWatchProvidersResult(BaseModel):
    """Model for /tv/{id}/watch/providers and /tv/{id}/season/{n}/watch/providers.

    `results` is keyed by ISO 3166-1 country code.
    """

    id: int | None = None
    results: dict[str, TMDBCountryProviders] = Field(default_factory=dict)


class TMDBEpisode(BaseModel):
    id: int
    name: str | None = None
    overview: str | None = None
    episode_number: int
    season_number: int
    air_date: str | None = None
    runtime: int | None = None
    still_path: str | None = None
    vote_average: float = 0.0


class TMDBSeasonDetailsResult(BaseModel):
    """Model for TMDB /tv/{id}/season/{n} response."""

    id: int | None = None
    name: str | None = None
    overview: str | None = None
    air_date: str | None = None
    season_number: int
    poster_path: str | None = None
    episodes: list[TMDBEpisode] = Field(default_factory=list)
