"""
TMDB catalog client and the canonical show models it produces.
"""

from api.tmdb.core import TMDBService
from api.tmdb.models import (
    AutocompleteSuggestion,
    AvailabilitySet,
    CatalogSearchPage,
    CatalogShow,
    EpisodeSummary,
    ProviderOffer,
    SeasonAvailability,
    SeasonDetail,
    ShowStatus,
    map_catalog_status,
)

__all__ = [
    "TMDBService",
    "AutocompleteSuggestion",
    "AvailabilitySet",
    "CatalogSearchPage",
    "CatalogShow",
    "EpisodeSummary",
    "ProviderOffer",
    "SeasonAvailability",
    "SeasonDetail",
    "ShowStatus",
    "map_catalog_status",
]
