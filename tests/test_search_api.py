import pytest
from fakes import offer, show
from fastapi.testclient import TestClient

from adapters.config import SearchSettings
from api.tmdb.models import AvailabilitySet, CatalogSearchPage, SeasonDetail
from contracts.errors import UpstreamError
from search_api.main import app
from services.search_service import UniversalSearchService, get_search_service

pytestmark = pytest.mark.unit


@pytest.fixture
def client(catalog, settings):
    service = UniversalSearchService(catalog=catalog, settings=settings)
    app.dependency_overrides[get_search_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


class TestUniversalSearchEndpoint:
    def test_merged_result(self, client, catalog):
        catalog.search_results = [show(101, "The Office", "2005"), show(202, "The Office", "2005")]
        catalog.providers[101] = AvailabilitySet(flatrate=[offer(8, "Netflix")])
        catalog.providers[202] = AvailabilitySet(flatrate=[offer(337, "Disney Plus")])

        res = client.get("/shows/universal-search", params={"q": "The Office (2005)"})

        assert res.status_code == 200
        body = res.json()
        assert body["success"] is True
        [result] = body["data"]
        assert result["titleMatchScore"] == 130
        assert result["catalogIds"] == [101, 202]
        assert {p["providerId"] for p in result["providers"]} == {8, 337}
        assert body["searchInfo"]["parsedYear"] == "2005"
        assert body["pagination"]["totalResults"] == 2

    def test_filters_are_parsed(self, client, catalog):
        catalog.search_results = [show(1, "Dark", "2017"), show(2, "Dark Matter", "2015")]
        catalog.providers[1] = AvailabilitySet(flatrate=[offer(8)])
        catalog.providers[2] = AvailabilitySet(rent=[offer(337)])

        res = client.get(
            "/shows/universal-search",
            params={"q": "Dark", "providers": "8,337", "subscription": "rent", "seasonMode": "none"},
        )

        assert [r["show"]["catalogId"] for r in res.json()["data"]] == [2]
        assert catalog.calls_of("detail") == []

    def test_missing_query_is_400(self, client):
        res = client.get("/shows/universal-search")

        assert res.status_code == 400
        assert res.json() == {"success": False, "error": "Search query is required"}

    @pytest.mark.parametrize(
        "params",
        [
            {"q": "Dark", "subscription": "premium"},
            {"q": "Dark", "seasonMode": "deep"},
            {"q": "Dark", "providers": "netflix"},
            {"q": "Dark", "page": "0"},
            {"q": "Dark", "limit": "abc"},
        ],
    )
    def test_bad_parameters_are_400(self, client, catalog, params):
        res = client.get("/shows/universal-search", params=params)

        assert res.status_code == 400
        assert res.json()["success"] is False
        assert catalog.calls_of("search") == []

    def test_upstream_failure_is_502(self, client, catalog):
        catalog.search_results = UpstreamError("catalog down", endpoint="search/tv")

        res = client.get("/shows/universal-search", params={"q": "Dark"})

        assert res.status_code == 502
        assert res.json() == {"success": False, "error": "catalog down"}


class TestCatalogEndpoints:
    def test_search(self, client, catalog):
        catalog.search_results = [show(1, "Dark", "2017")]

        res = client.get("/shows/search", params={"q": "Dark"})

        assert res.status_code == 200
        assert res.json()["data"][0]["firstAirYear"] == "2017"
        assert res.json()["pagination"] == {"page": 1, "totalPages": 1, "totalResults": 1}

    def test_autocomplete(self, client, catalog):
        catalog.search_results = [show(1, "Lost", "2004", popularity=3), show(2, "Lost Girl", "2010", popularity=9)]

        res = client.get("/shows/autocomplete", params={"q": "lo"})

        assert [s["catalogId"] for s in res.json()["data"]] == [2, 1]

    def test_autocomplete_short_query(self, client):
        assert client.get("/shows/autocomplete", params={"q": "l"}).json() == {
            "success": True,
            "data": [],
        }

    def test_show_detail_and_not_found(self, client, catalog):
        catalog.total_seasons[2316] = 9

        found = client.get("/shows/2316")
        missing = client.get("/shows/999")

        assert found.json()["data"]["totalSeasons"] == 9
        assert missing.status_code == 404
        assert missing.json()["success"] is False

    def test_providers(self, client, catalog):
        catalog.providers[2316] = AvailabilitySet(flatrate=[offer(386)], buy=[offer(2), offer(386)])

        res = client.get("/shows/2316/providers", params={"country": "US"})

        data = res.json()["data"]
        assert [p["providerId"] for p in data["providers"]] == [386, 2]
        assert [p["providerId"] for p in data["availability"]["buy"]] == [2, 386]
        assert catalog.calls_of("providers") == [("providers", 2316, "US")]

    def test_popular_trending_genre_and_season(self, client, catalog):
        page = CatalogSearchPage(shows=[show(1, "Dark", "2017")], page=1, total_pages=1, total_results=1)

        async def get_popular_shows(page_number=1, limit=20):
            return page

        async def get_trending_shows(limit=20):
            return page.shows

        async def get_shows_by_genre(genre_id, page_number=1, limit=20):
            assert genre_id == 18
            return page

        async def get_season_detail(catalog_id, season_number):
            if season_number > 1:
                return None
            return SeasonDetail(catalog_id=catalog_id, season_number=season_number, name="Season 1")

        catalog.get_popular_shows = get_popular_shows
        catalog.get_trending_shows = get_trending_shows
        catalog.get_shows_by_genre = get_shows_by_genre
        catalog.get_season_detail = get_season_detail

        assert client.get("/shows/popular").json()["data"][0]["catalogId"] == 1
        assert client.get("/shows/trending/daily").json()["data"][0]["title"] == "Dark"
        assert client.get("/shows/genre/18").json()["pagination"]["totalResults"] == 1
        assert client.get("/shows/1/seasons/1").json()["data"]["name"] == "Season 1"
        assert client.get("/shows/1/seasons/2").status_code == 404


class TestDefaultCountry:
    @pytest.fixture
    def gb_client(self, catalog):
        settings = SearchSettings(tmdb_read_token="test-token", environment="test", default_country="GB")
        service = UniversalSearchService(catalog=catalog, settings=settings)
        app.dependency_overrides[get_search_service] = lambda: service
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_universal_search_without_country_uses_setting(self, gb_client, catalog):
        catalog.search_results = [show(1, "Dark", "2017")]

        gb_client.get("/shows/universal-search", params={"q": "Dark", "seasonMode": "none"})

        assert catalog.calls_of("providers") == [("providers", 1, "GB")]

    def test_explicit_country_wins(self, gb_client, catalog):
        catalog.search_results = [show(1, "Dark", "2017")]

        gb_client.get("/shows/universal-search", params={"q": "Dark", "country": "de", "seasonMode": "none"})

        assert catalog.calls_of("providers") == [("providers", 1, "DE")]

    def test_providers_endpoint_without_country_uses_setting(self, gb_client, catalog):
        gb_client.get("/shows/2316/providers")

        assert catalog.calls_of("providers") == [("providers", 2316, "GB")]
