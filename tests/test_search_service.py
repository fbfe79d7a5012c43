import pytest
from fakes import offer, show

from adapters.config import SearchSettings
from api.tmdb.models import AvailabilitySet
from contracts.errors import InvalidParameter, InvalidQuery, UpstreamError
from contracts.models import SeasonMode, UniversalSearchRequest
from core.disambiguation import MergeScorePolicy
from services.search_service import UniversalSearchService

pytestmark = pytest.mark.unit


@pytest.fixture
def service(catalog, settings):
    return UniversalSearchService(catalog=catalog, settings=settings)


class TestUniversalSearch:
    @pytest.mark.asyncio
    async def test_duplicate_entries_merge_into_one_result(self, catalog, service):
        catalog.search_results = [show(101, "The Office", "2005"), show(202, "The Office", "2005")]
        catalog.providers[101] = AvailabilitySet(flatrate=[offer(8, "Netflix")])
        catalog.providers[202] = AvailabilitySet(flatrate=[offer(337, "Disney Plus")])

        response = await service.search(
            UniversalSearchRequest(query="The Office (2005)", country="US", subscription="any")
        )

        assert len(response.results) == 1
        [result] = response.results
        assert {p.provider_id for p in result.providers} == {8, 337}
        assert result.title_match_score == 130
        assert result.catalog_ids == {101, 202}
        assert response.search_info.parsed_title == "The Office"
        assert response.search_info.parsed_year == "2005"
        assert response.search_info.original_query == "The Office (2005)"

    @pytest.mark.asyncio
    async def test_catalog_searched_with_parsed_title(self, catalog, service):
        await service.search(UniversalSearchRequest(query="Loki 2021", page=2, limit=5))

        assert catalog.calls_of("search") == [("search", "Loki", 2, 5)]

    @pytest.mark.asyncio
    async def test_ranking_and_pagination_passthrough(self, catalog, service):
        catalog.search_results = [
            show(1, "Office Space Stories", "2010", popularity=90),
            show(2, "The Office", "2001", popularity=50),
            show(3, "The Office", "2005", popularity=40),
            show(4, "The Office", None, popularity=99),
        ]
        catalog.total_pages = 7
        catalog.total_results = 140

        response = await service.search(
            UniversalSearchRequest(query="The Office 2005", season_mode=SeasonMode.NONE)
        )

        assert [r.show.catalog_id for r in response.results] == [3, 4, 2, 1]
        assert [r.title_match_score for r in response.results] == [130, 100, 100, 0]
        assert response.pagination.page == 1
        assert response.pagination.total_pages == 7
        assert response.pagination.total_results == 140

    @pytest.mark.asyncio
    async def test_provider_filter_drops_non_matching(self, catalog, service):
        catalog.search_results = [show(1, "Dark", "2017"), show(2, "Dark Matter", "2015")]
        catalog.providers[1] = AvailabilitySet(flatrate=[offer(8)])
        catalog.providers[2] = AvailabilitySet(buy=[offer(8)])

        response = await service.search(
            UniversalSearchRequest(query="Dark", providers=[8], subscription="flatrate")
        )

        assert [r.show.catalog_id for r in response.results] == [1]
        # Counters still describe the unfiltered catalog result set
        assert response.pagination.total_results == 2

    @pytest.mark.asyncio
    async def test_enrichment_failure_is_not_fatal(self, catalog, service):
        catalog.search_results = [show(1, "Dark", "2017"), show(2, "Dark", "2017")]
        catalog.providers[1] = UpstreamError("providers down")
        catalog.providers[2] = AvailabilitySet(flatrate=[offer(8)])
        catalog.total_seasons[1] = UpstreamError("detail down")
        catalog.total_seasons[2] = 2
        catalog.season_providers[(2, 1)] = AvailabilitySet(flatrate=[offer(8)])
        catalog.season_providers[(2, 2)] = UpstreamError("season down")

        response = await service.search(UniversalSearchRequest(query="Dark"))

        [result] = response.results
        assert result.catalog_ids == {1, 2}
        assert [p.provider_id for p in result.providers] == [8]
        assert [s.season_number for s in result.season_availability] == [1]

    @pytest.mark.asyncio
    async def test_compact_mode_respects_batch_limit_setting(self, catalog):
        settings = SearchSettings(tmdb_read_token="t", season_batch_limit=2)
        service = UniversalSearchService(catalog=catalog, settings=settings)
        catalog.search_results = [show(i, f"Show {i}") for i in range(1, 6)]

        await service.search(UniversalSearchRequest(query="Show"))

        assert sorted(c[1] for c in catalog.calls_of("detail")) == [1, 2]

    @pytest.mark.asyncio
    async def test_country_is_normalized(self, catalog, service):
        catalog.search_results = [show(1, "Dark", "2017")]

        await service.search(UniversalSearchRequest(query="Dark", country="gb"))

        assert catalog.calls_of("providers") == [("providers", 1, "GB")]

    @pytest.mark.asyncio
    async def test_omitted_country_uses_default_country_setting(self, catalog):
        settings = SearchSettings(tmdb_read_token="t", environment="test", default_country="se")
        service = UniversalSearchService(catalog=catalog, settings=settings)
        catalog.search_results = [show(1, "Dark", "2017")]

        await service.search(UniversalSearchRequest(query="Dark"))

        assert catalog.calls_of("providers") == [("providers", 1, "SE")]

    def test_merge_score_policy_from_settings(self, catalog):
        settings = SearchSettings(tmdb_read_token="t", merge_score_policy="max")
        service = UniversalSearchService(catalog=catalog, settings=settings)

        assert service.merge_score_policy == MergeScorePolicy.MAX

    def test_bad_merge_score_policy_setting(self, catalog):
        settings = SearchSettings(tmdb_read_token="t", merge_score_policy="average")

        with pytest.raises(InvalidParameter):
            UniversalSearchService(catalog=catalog, settings=settings)

    @pytest.mark.asyncio
    async def test_search_failure_is_fatal(self, catalog, service):
        catalog.search_results = UpstreamError("catalog down", endpoint="search/tv")

        with pytest.raises(UpstreamError):
            await service.search(UniversalSearchRequest(query="Dark"))

    @pytest.mark.asyncio
    async def test_empty_query_rejected_before_upstream(self, catalog, service):
        with pytest.raises(InvalidQuery):
            await service.search(UniversalSearchRequest(query="   "))
        assert catalog.calls == []

    @pytest.mark.asyncio
    async def test_unknown_subscription_rejected(self, catalog, service):
        with pytest.raises(InvalidParameter):
            await service.search(UniversalSearchRequest(query="Dark", subscription="premium"))
        assert catalog.calls == []

    @pytest.mark.asyncio
    async def test_response_wire_format(self, catalog, service):
        catalog.search_results = [show(101, "Loki", "2021")]
        catalog.providers[101] = AvailabilitySet(flatrate=[offer(337, "Disney Plus")])

        body = (await service.search(UniversalSearchRequest(query="Loki (2021)"))).to_api_dict()

        [result] = body["results"]
        assert result["titleMatchScore"] == 130
        assert result["catalogIds"] == [101]
        assert result["matchesFilters"] is True
        assert result["providers"][0]["providerId"] == 337
        assert result["show"]["catalogId"] == 101
        assert body["searchInfo"] == {
            "originalQuery": "Loki (2021)",
            "parsedTitle": "Loki",
            "parsedYear": "2021",
        }
        assert body["pagination"] == {"page": 1, "totalPages": 1, "totalResults": 1}


class TestAutocomplete:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", " ", "a", " b "])
    async def test_short_queries_return_nothing(self, catalog, service, query):
        assert await service.autocomplete(query) == []
        assert catalog.calls == []

    @pytest.mark.asyncio
    async def test_sorted_by_popularity_and_capped(self, catalog, service):
        catalog.search_results = [show(i, f"Lost {i}", "2004", popularity=float(i)) for i in range(1, 13)]

        suggestions = await service.autocomplete("lost")

        assert len(suggestions) == 8
        assert [s.catalog_id for s in suggestions] == [12, 11, 10, 9, 8, 7, 6, 5]
        assert suggestions[0].year == "2004"

    @pytest.mark.asyncio
    async def test_upstream_failure_returns_empty(self, catalog, service):
        catalog.search_results = UpstreamError("down")

        assert await service.autocomplete("lost") == []


@pytest.mark.asyncio
async def test_search_shows_passthrough(catalog, service):
    catalog.search_results = [show(1, "Dark", "2017"), show(2, "Dark Matter", "2015")]

    page = await service.search_shows("Dark", page=1, limit=1)

    assert [s.catalog_id for s in page.shows] == [1]
    assert page.total_results == 2
