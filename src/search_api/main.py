import os

import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from adapters.config import load_env
from contracts.errors import InvalidParameter, NotFound, SearchError
from contracts.models import UniversalSearchRequest
from core.provider_filter import parse_provider_ids
from services.availability_service import parse_season_mode
from services.search_service import UniversalSearchService, get_search_service
from utils.get_logger import get_logger

load_env()

logger = get_logger(__name__)

app = FastAPI(
    title="Watchlist Search API",
    description="Universal show search with availability enrichment and disambiguation",
    version="1.0.0",
)

# CORS - allow all origins; the web client and local dev both call this directly
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(SearchError)
async def search_error_handler(request: Request, exc: SearchError):
    if exc.status_code >= 500:
        logger.error(f"{request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'][1:])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"success": False, "error": details})


def _page_body(page) -> dict:
    return {
        "success": True,
        "data": [show.to_api_dict() for show in page.shows],
        "pagination": {
            "page": page.page,
            "totalPages": page.total_pages,
            "totalResults": page.total_results,
        },
    }


@app.get("/shows/universal-search")
async def universal_search_endpoint(
    q: str = Query(""),
    country: str | None = Query(None),
    providers: str = Query(""),
    subscription: str = Query("any"),
    page: int = Query(1),
    limit: int = Query(20),
    seasonMode: str = Query("compact"),
    service: UniversalSearchService = Depends(get_search_service),
):
    try:
        request = UniversalSearchRequest(
            query=q,
            country=country,
            providers=parse_provider_ids(providers),
            subscription=subscription,
            page=page,
            limit=limit,
            season_mode=parse_season_mode(seasonMode),
        )
    except ValidationError as e:
        raise InvalidParameter(f"Invalid search parameters: {e.error_count()} errors") from e

    response = await service.search(request)
    body = response.to_api_dict()
    return {
        "success": True,
        "data": body["results"],
        "pagination": body["pagination"],
        "searchInfo": body["searchInfo"],
    }


@app.get("/shows/search")
async def search_endpoint(
    q: str = Query(""),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: UniversalSearchService = Depends(get_search_service),
):
    return _page_body(await service.search_shows(q, page, limit))


@app.get("/shows/autocomplete")
async def autocomplete_endpoint(
    q: str = Query(""),
    service: UniversalSearchService = Depends(get_search_service),
):
    suggestions = await service.autocomplete(q)
    return {"success": True, "data": [s.to_api_dict() for s in suggestions]}


@app.get("/shows/popular")
async def popular_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: UniversalSearchService = Depends(get_search_service),
):
    return _page_body(await service.catalog.get_popular_shows(page, limit))


@app.get("/shows/trending/daily")
async def trending_endpoint(
    limit: int = Query(20, ge=1, le=100),
    service: UniversalSearchService = Depends(get_search_service),
):
    shows = await service.catalog.get_trending_shows(limit)
    return {"success": True, "data": [show.to_api_dict() for show in shows]}


@app.get("/shows/genre/{genre_id}")
async def genre_endpoint(
    genre_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: UniversalSearchService = Depends(get_search_service),
):
    return _page_body(await service.catalog.get_shows_by_genre(genre_id, page, limit))


@app.get("/shows/{catalog_id}")
async def show_detail_endpoint(
    catalog_id: int,
    service: UniversalSearchService = Depends(get_search_service),
):
    show = await service.catalog.get_show_detail(catalog_id)
    if show is None:
        raise NotFound(f"Show {catalog_id} not found")
    return {"success": True, "data": show.to_api_dict()}


@app.get("/shows/{catalog_id}/seasons/{season_number}")
async def season_detail_endpoint(
    catalog_id: int,
    season_number: int,
    service: UniversalSearchService = Depends(get_search_service),
):
    season = await service.catalog.get_season_detail(catalog_id, season_number)
    if season is None:
        raise NotFound(f"Season {season_number} of show {catalog_id} not found")
    return {"success": True, "data": season.to_api_dict()}


@app.get("/shows/{catalog_id}/providers")
async def providers_endpoint(
    catalog_id: int,
    country: str | None = Query(None),
    service: UniversalSearchService = Depends(get_search_service),
):
    availability = await service.catalog.get_providers(
        catalog_id, country or service.settings.default_country
    )
    return {
        "success": True,
        "data": {
            "providers": [p.to_api_dict() for p in availability.flattened()],
            "availability": availability.to_api_dict(),
        },
    }


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    port = int(os.getenv("PORT", "8080"))
    uvicorn.run("search_api.main:app", host="0.0.0.0", port=port)
