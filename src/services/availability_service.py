"""
Availability resolution for catalog shows.

Every show gets its current providers. Shows selected by the season mode also
get per-season providers, fetched with one concurrent request per season.
Any lookup that fails is replaced by "no data" at the failing call: a bad
season never sinks its show, and a bad show never sinks the batch.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from api.tmdb.core import TMDBService
from api.tmdb.models import AvailabilitySet, CatalogShow, ProviderOffer, SeasonAvailability
from contracts.errors import InvalidParameter
from contracts.models import SeasonMode
from utils.get_logger import get_logger

logger = get_logger(__name__)

DEFAULT_SEASON_BATCH_LIMIT = 5


@dataclass
class ResolvedAvailability:
    providers: list[ProviderOffer] = field(default_factory=list)
    availability: AvailabilitySet = field(default_factory=AvailabilitySet)
    season_availability: list[SeasonAvailability] = field(default_factory=list)
    total_seasons: int = 0

    @classmethod
    def empty(cls) -> "ResolvedAvailability":
        return cls()


def parse_season_mode(value: "str | SeasonMode | None") -> SeasonMode:
    if value is None or value == "":
        return SeasonMode.COMPACT
    if isinstance(value, SeasonMode):
        return value
    try:
        return SeasonMode(value.strip().lower())
    except ValueError:
        raise InvalidParameter(f"seasonMode must be one of none|compact|all, got {value!r}")


def seasons_enabled_for(
    index: int,
    total: int,
    mode: SeasonMode,
    batch_limit: int = DEFAULT_SEASON_BATCH_LIMIT,
) -> bool:
    """Whether the show at `index` of a `total`-sized batch gets season enrichment."""
    if index < 0 or index >= total:
        return False
    if mode == SeasonMode.ALL:
        return True
    if mode == SeasonMode.COMPACT:
        return index < batch_limit
    return False


def _settled(result: Any, what: str) -> Any:
    """Turn a gather(return_exceptions=True) entry into a value or None."""
    if isinstance(result, BaseException):
        # Cancellation and interpreter exits are not lookup failures
        if not isinstance(result, Exception):
            raise result
        logger.debug(f"Enrichment lookup failed ({what}): {result}")
        return None
    return result


class AvailabilityResolver:
    """Resolves provider and season availability through the catalog client."""

    def __init__(self, catalog: TMDBService):
        self.catalog = catalog

    async def _season_availability(
        self, catalog_id: int, total_seasons: int, country: str
    ) -> list[SeasonAvailability]:
        seasons = await asyncio.gather(
            *[
                self.catalog.get_season_providers(catalog_id, number, country)
                for number in range(1, total_seasons + 1)
            ],
            return_exceptions=True,
        )
        kept: list[SeasonAvailability] = []
        for number, result in zip(range(1, total_seasons + 1), seasons):
            season = _settled(result, f"show {catalog_id} season {number}")
            if season is not None and season.providers:
                kept.append(season)
        dropped = total_seasons - len(kept)
        if dropped:
            logger.debug(f"Show {catalog_id}: {dropped}/{total_seasons} seasons without providers")
        return sorted(kept, key=lambda s: s.season_number)

    async def _total_seasons(self, show: CatalogShow) -> int:
        detail = await self.catalog.get_show_detail(show.catalog_id)
        return detail.total_seasons if detail is not None else 0

    async def resolve(
        self, show: CatalogShow, country: str, enrich_seasons: bool = False
    ) -> ResolvedAvailability:
        """
        Resolve availability for one show.

        Provider and detail lookups run concurrently. Failures degrade to an
        empty AvailabilitySet and zero seasons respectively.
        """
        lookups = [self.catalog.get_providers(show.catalog_id, country)]
        if enrich_seasons:
            lookups.append(self._total_seasons(show))
        results = await asyncio.gather(*lookups, return_exceptions=True)

        availability = _settled(results[0], f"show {show.catalog_id} providers")
        if availability is None:
            availability = AvailabilitySet.empty()

        total_seasons = 0
        season_availability: list[SeasonAvailability] = []
        if enrich_seasons:
            total_seasons = _settled(results[1], f"show {show.catalog_id} detail") or 0
            if total_seasons > 0:
                season_availability = await self._season_availability(
                    show.catalog_id, total_seasons, country
                )

        return ResolvedAvailability(
            providers=availability.flattened(),
            availability=availability,
            season_availability=season_availability,
            total_seasons=total_seasons,
        )

    async def resolve_batch(
        self,
        shows: list[CatalogShow],
        country: str,
        season_mode: SeasonMode = SeasonMode.COMPACT,
        batch_limit: int = DEFAULT_SEASON_BATCH_LIMIT,
    ) -> list[ResolvedAvailability]:
        """Resolve every show concurrently. Results line up with `shows` by index."""
        total = len(shows)
        results = await asyncio.gather(
            *[
                self.resolve(
                    show,
                    country,
                    enrich_seasons=seasons_enabled_for(index, total, season_mode, batch_limit),
                )
                for index, show in enumerate(shows)
            ],
            return_exceptions=True,
        )
        resolved: list[ResolvedAvailability] = []
        for show, result in zip(shows, results):
            value = _settled(result, f"show {show.catalog_id}")
            resolved.append(value if value is not None else ResolvedAvailability.empty())
        return resolved
