"""
Request and response contracts for the universal search endpoint.
"""

from enum import Enum

from pydantic import Field, field_serializer

from api.tmdb.models import AvailabilitySet, CatalogShow, ProviderOffer, SeasonAvailability
from utils.pydantic_tools import CamelModel


class SeasonMode(str, Enum):
    """How deep per-season availability enrichment goes for a result batch."""

    NONE = "none"
    COMPACT = "compact"  # first N shows of the batch only
    ALL = "all"


class EnrichedCandidate(CamelModel):
    """A catalog show plus its availability, score and filter verdict for one search call."""

    show: CatalogShow
    year: str | None = None
    providers: list[ProviderOffer] = Field(default_factory=list)
    availability: AvailabilitySet = Field(default_factory=AvailabilitySet)
    season_availability: list[SeasonAvailability] = Field(default_factory=list)
    total_seasons: int = 0
    matches_filters: bool = True
    title_match_score: int = Field(default=0, ge=0, le=130)
    catalog_ids: set[int] = Field(default_factory=set)

    @field_serializer("catalog_ids")
    def _serialize_catalog_ids(self, catalog_ids: set[int]) -> list[int]:
        return sorted(catalog_ids)


class UniversalSearchRequest(CamelModel):
    query: str
    country: str | None = None
    providers: list[int] = Field(default_factory=list)
    subscription: str = "any"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    season_mode: SeasonMode = SeasonMode.COMPACT


class Pagination(CamelModel):
    page: int
    total_pages: int
    total_results: int


class SearchInfo(CamelModel):
    original_query: str
    parsed_title: str
    parsed_year: str | None = None


class UniversalSearchResponse(CamelModel):
    results: list[EnrichedCandidate] = Field(default_factory=list)
    pagination: Pagination
    search_info: SearchInfo
