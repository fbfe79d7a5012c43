"""
Universal search: parse -> catalog search -> enrich -> score -> merge -> rank.
"""

from adapters.config import SearchSettings, get_settings
from api.tmdb.core import TMDBService
from api.tmdb.models import AutocompleteSuggestion, CatalogSearchPage, CatalogShow
from contracts.errors import SearchError
from contracts.models import (
    EnrichedCandidate,
    Pagination,
    SearchInfo,
    UniversalSearchRequest,
    UniversalSearchResponse,
)
from core.disambiguation import MergeScorePolicy, merge_candidates
from core.provider_filter import SubscriptionTier, matches_provider_filter
from core.query_parsing import ParsedQuery, parse_search_query
from core.ranking import score_title_match
from services.availability_service import AvailabilityResolver, ResolvedAvailability
from utils.get_logger import get_logger

logger = get_logger(__name__)

AUTOCOMPLETE_MIN_QUERY_LENGTH = 2
AUTOCOMPLETE_MAX_SUGGESTIONS = 8


def build_candidate(
    show: CatalogShow,
    resolved: ResolvedAvailability,
    parsed: ParsedQuery,
    provider_ids: list[int],
    tier: SubscriptionTier,
) -> EnrichedCandidate:
    return EnrichedCandidate(
        show=show,
        year=show.first_air_year,
        providers=resolved.providers,
        availability=resolved.availability,
        season_availability=resolved.season_availability,
        total_seasons=resolved.total_seasons,
        matches_filters=matches_provider_filter(resolved.availability, provider_ids, tier),
        title_match_score=score_title_match(
            show.title, parsed.title, show.first_air_year, parsed.year
        ),
        catalog_ids={show.catalog_id},
    )


class UniversalSearchService:
    def __init__(
        self,
        catalog: TMDBService | None = None,
        settings: SearchSettings | None = None,
        resolver: AvailabilityResolver | None = None,
    ):
        self.settings = settings or get_settings()
        self.catalog = catalog or TMDBService(self.settings)
        self.resolver = resolver or AvailabilityResolver(self.catalog)
        self.merge_score_policy = MergeScorePolicy.parse(self.settings.merge_score_policy)

    async def search(self, request: UniversalSearchRequest) -> UniversalSearchResponse:
        """
        Run a universal search.

        Raises:
            InvalidQuery / InvalidParameter: bad input, before any upstream call
            UpstreamError: the title search itself failed
        """
        parsed = parse_search_query(request.query)
        tier = SubscriptionTier.parse(request.subscription)
        country = (request.country or self.settings.default_country).strip().upper()

        page = await self.catalog.search_by_title(parsed.title, request.page, request.limit)

        resolved = await self.resolver.resolve_batch(
            page.shows,
            country,
            season_mode=request.season_mode,
            batch_limit=self.settings.season_batch_limit,
        )
        candidates = [
            build_candidate(show, availability, parsed, request.providers, tier)
            for show, availability in zip(page.shows, resolved)
        ]
        results = merge_candidates(candidates, self.merge_score_policy)
        logger.info(
            f"universal search {parsed.title!r} year={parsed.year} country={country}: "
            f"{len(page.shows)} candidates -> {len(results)} results"
        )

        return UniversalSearchResponse(
            results=results,
            pagination=Pagination(
                page=page.page,
                total_pages=page.total_pages,
                total_results=page.total_results,
            ),
            search_info=SearchInfo(
                original_query=parsed.original_query,
                parsed_title=parsed.title,
                parsed_year=parsed.year,
            ),
        )

    async def search_shows(self, query: str, page: int = 1, limit: int = 20) -> CatalogSearchPage:
        """Plain title search with no enrichment."""
        return await self.catalog.search_by_title(query, page, limit)

    async def autocomplete(
        self, query: str | None, limit: int = AUTOCOMPLETE_MAX_SUGGESTIONS
    ) -> list[AutocompleteSuggestion]:
        """Type-ahead suggestions, most popular first. Never raises on upstream trouble."""
        text = (query or "").strip()
        if len(text) < AUTOCOMPLETE_MIN_QUERY_LENGTH:
            return []
        try:
            page = await self.catalog.search_by_title(text, 1, 20)
        except SearchError as e:
            logger.warning(f"Autocomplete failed for {text!r}: {e}")
            return []
        shows = sorted(page.shows, key=lambda s: s.popularity, reverse=True)
        return [AutocompleteSuggestion.from_show(show) for show in shows[: max(limit, 0)]]


# Lazy initialization
_service: UniversalSearchService | None = None


def get_search_service() -> UniversalSearchService:
    global _service
    if _service is None:
        _service = UniversalSearchService()
    return _service


def reset_search_service():
    """Drop the singleton so the next call picks up new settings."""
    global _service
    _service = None
