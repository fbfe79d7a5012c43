"""
Canonical catalog models.

Raw TMDB payloads (api.tmdb.tmdb_models) are adapted into these shapes at the
client boundary; the rest of the service only ever sees these.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from pydantic import Field, field_validator

from utils.pydantic_tools import CamelModel

if TYPE_CHECKING:
    from api.tmdb.tmdb_models import (
        TMDBCountryProviders,
        TMDBEpisode,
        TMDBSeasonDetailsResult,
        TMDBSearchTv,
        TMDBTvDetailsResult,
        TMDBWatchProvider,
    )

# Fixed bucket order used for flattening and for every union
AVAILABILITY_BUCKETS = ("flatrate", "free", "ads", "rent", "buy")


class ShowStatus(str, Enum):
    ENDED = "ended"
    RETURNING = "returning"
    UNKNOWN = "unknown"


_ENDED_STATUSES = {"ended", "canceled", "cancelled"}
_RETURNING_STATUSES = {"returning series", "in production", "planned", "pilot"}


def map_catalog_status(tmdb_status: str | None) -> ShowStatus:
    """Map TMDB's status vocabulary onto ended / returning / unknown."""
    normalized = (tmdb_status or "").strip().lower()
    if normalized in _ENDED_STATUSES:
        return ShowStatus.ENDED
    if normalized in _RETURNING_STATUSES:
        return ShowStatus.RETURNING
    return ShowStatus.UNKNOWN


def year_from_date(date_str: str | None) -> str | None:
    """'2005-03-24' -> '2005'. Anything without a leading 4-digit year -> None."""
    if not date_str:
        return None
    year = date_str.strip()[:4]
    return year if len(year) == 4 and year.isdigit() else None


def dedupe_offers(offers: list[ProviderOffer]) -> list[ProviderOffer]:
    """Drop repeated provider ids, keeping the first occurrence and input order."""
    seen: set[int] = set()
    unique: list[ProviderOffer] = []
    for offer in offers:
        if offer.provider_id in seen:
            continue
        seen.add(offer.provider_id)
        unique.append(offer)
    return unique


class ProviderOffer(CamelModel):
    provider_id: int
    provider_name: str
    logo_path: str | None = None

    @classmethod
    def from_tmdb(cls, item: TMDBWatchProvider) -> ProviderOffer:
        return cls(
            provider_id=item.provider_id,
            provider_name=item.provider_name,
            logo_path=item.logo_path,
        )


class AvailabilitySet(CamelModel):
    """Five availability buckets, each deduplicated by provider id."""

    flatrate: list[ProviderOffer] = Field(default_factory=list)
    free: list[ProviderOffer] = Field(default_factory=list)
    ads: list[ProviderOffer] = Field(default_factory=list)
    rent: list[ProviderOffer] = Field(default_factory=list)
    buy: list[ProviderOffer] = Field(default_factory=list)

    @field_validator(*AVAILABILITY_BUCKETS)
    @classmethod
    def _dedupe_bucket(cls, offers: list[ProviderOffer]) -> list[ProviderOffer]:
        return dedupe_offers(offers)

    @classmethod
    def empty(cls) -> AvailabilitySet:
        return cls()

    @classmethod
    def from_tmdb(cls, country: TMDBCountryProviders | None) -> AvailabilitySet:
        if country is None:
            return cls.empty()
        return cls(
            **{
                bucket: [ProviderOffer.from_tmdb(p) for p in getattr(country, bucket)]
                for bucket in AVAILABILITY_BUCKETS
            }
        )

    def bucket(self, name: str) -> list[ProviderOffer]:
        if name not in AVAILABILITY_BUCKETS:
            raise ValueError(f"Unknown availability bucket: {name}")
        return getattr(self, name)

    def flattened(self) -> list[ProviderOffer]:
        """All offers across buckets in bucket order, one per provider id."""
        offers: list[ProviderOffer] = []
        for bucket in AVAILABILITY_BUCKETS:
            offers.extend(getattr(self, bucket))
        return dedupe_offers(offers)

    def pool(self, tier: str) -> set[int]:
        """Provider ids available under a subscription tier ('any' spans all buckets)."""
        tier = str(getattr(tier, "value", tier))
        if tier == "any":
            return {offer.provider_id for offer in self.flattened()}
        return {offer.provider_id for offer in self.bucket(tier)}

    def union(self, other: AvailabilitySet) -> AvailabilitySet:
        return AvailabilitySet(
            **{
                bucket: getattr(self, bucket) + getattr(other, bucket)
                for bucket in AVAILABILITY_BUCKETS
            }
        )

    def is_empty(self) -> bool:
        return not any(getattr(self, bucket) for bucket in AVAILABILITY_BUCKETS)


class SeasonAvailability(CamelModel):
    season_number: int = Field(ge=1)
    providers: list[ProviderOffer] = Field(default_factory=list)
    availability: AvailabilitySet = Field(default_factory=AvailabilitySet)

    @classmethod
    def from_availability(cls, season_number: int, availability: AvailabilitySet) -> SeasonAvailability:
        return cls(
            season_number=season_number,
            providers=availability.flattened(),
            availability=availability,
        )

    def union(self, other: SeasonAvailability) -> SeasonAvailability:
        return SeasonAvailability.from_availability(
            self.season_number, self.availability.union(other.availability)
        )


class CatalogShow(CamelModel):
    catalog_id: int
    title: str
    overview: str | None = None
    first_air_year: str | None = None
    first_air_date: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    status: ShowStatus = ShowStatus.UNKNOWN
    rating_average: float = 0.0
    popularity: float = 0.0
    total_seasons: int = Field(default=0, ge=0)
    genre_ids: list[int] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)

    @classmethod
    def from_tv_search(cls, item: TMDBSearchTv) -> CatalogShow:
        """Search results carry no status or season count; those stay at defaults."""
        return cls(
            catalog_id=item.id,
            title=item.name or item.original_name or "",
            overview=item.overview or None,
            first_air_year=year_from_date(item.first_air_date),
            first_air_date=item.first_air_date or None,
            poster_path=item.poster_path,
            backdrop_path=item.backdrop_path,
            rating_average=item.vote_average,
            popularity=item.popularity,
            genre_ids=item.genre_ids,
        )

    @classmethod
    def from_tv_details(cls, item: TMDBTvDetailsResult) -> CatalogShow:
        total_seasons = item.number_of_seasons
        if total_seasons is None:
            # Season 0 is "Specials" and is never enriched
            total_seasons = len([s for s in item.seasons if s.season_number >= 1])
        return cls(
            catalog_id=item.id,
            title=item.name or item.original_name or "",
            overview=item.overview or None,
            first_air_year=year_from_date(item.first_air_date),
            first_air_date=item.first_air_date or None,
            poster_path=item.poster_path,
            backdrop_path=item.backdrop_path,
            status=map_catalog_status(item.status),
            rating_average=item.vote_average,
            popularity=item.popularity,
            total_seasons=max(total_seasons, 0),
            genre_ids=[g.id for g in item.genres],
            genres=[g.name for g in item.genres],
        )


class CatalogSearchPage(CamelModel):
    shows: list[CatalogShow] = Field(default_factory=list)
    page: int = 1
    total_pages: int = 0
    total_results: int = 0


class EpisodeSummary(CamelModel):
    episode_number: int
    name: str | None = None
    overview: str | None = None
    air_date: str | None = None
    runtime: int | None = None
    still_path: str | None = None

    @classmethod
    def from_tmdb(cls, item: TMDBEpisode) -> EpisodeSummary:
        return cls(
            episode_number=item.episode_number,
            name=item.name,
            overview=item.overview or None,
            air_date=item.air_date,
            runtime=item.runtime,
            still_path=item.still_path,
        )


class SeasonDetail(CamelModel):
    catalog_id: int
    season_number: int
    name: str | None = None
    overview: str | None = None
    air_date: str | None = None
    poster_path: str | None = None
    episodes: list[EpisodeSummary] = Field(default_factory=list)

    @classmethod
    def from_tmdb(cls, catalog_id: int, item: TMDBSeasonDetailsResult) -> SeasonDetail:
        return cls(
            catalog_id=catalog_id,
            season_number=item.season_number,
            name=item.name,
            overview=item.overview or None,
            air_date=item.air_date,
            poster_path=item.poster_path,
            episodes=[EpisodeSummary.from_tmdb(e) for e in item.episodes],
        )


class AutocompleteSuggestion(CamelModel):
    catalog_id: int
    title: str
    year: str | None = None
    poster_path: str | None = None
    popularity: float = 0.0

    @classmethod
    def from_show(cls, show: CatalogShow) -> AutocompleteSuggestion:
        return cls(
            catalog_id=show.catalog_id,
            title=show.title,
            year=show.first_air_year,
            poster_path=show.poster_path,
            popularity=show.popularity,
        )
