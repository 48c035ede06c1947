# happyhour/api/routes.py
# HTTP surface over the discovery core.

from fastapi import APIRouter, Request, HTTPException, status
import logging
from typing import List

from happyhour.core.config import settings
from happyhour.models.dto import (
    CATEGORIES,
    Coordinate,
    DiscoverRequest,
    ErrorResponse,
    LocationFix,
    MapRequest,
    NearbySearchRequest,
    NearbySearchResponse,
    PlaceDetails,
    ResolveLocationRequest,
    SearchParams,
    Venue,
    VenueResult,
)
from happyhour.services.discovery import filter_venues, with_distances
from happyhour.services.location import LocationProvider, StaticLocationBackend
from happyhour.services.places_service import PlacesService, SearchOutcome
from happyhour.services.region_catalog import RegionCatalog
from happyhour.utils.haversine import distance_km

router = APIRouter()
logger = logging.getLogger(__name__)


def _places(request: Request) -> PlacesService:
    return request.app.state.places_service


def _catalog(request: Request) -> RegionCatalog:
    return request.app.state.region_catalog


def _to_results(venues: List[Venue], origin: Coordinate) -> List[VenueResult]:
    return [
        VenueResult(
            venue=v,
            distance_km=round(distance_km(origin, v.location), 2),
            details=v.details_params(),
        )
        for v in venues
    ]


async def _search(request: Request, data: NearbySearchRequest) -> tuple[Coordinate, SearchOutcome]:
    origin = Coordinate(latitude=data.latitude, longitude=data.longitude)
    params = SearchParams(
        origin=origin,
        radius_m=data.radius_m or settings.DEFAULT_SEARCH_RADIUS_M,
        category=data.category,
        query=data.query,
    )
    outcome = await _places(request).search(params)
    return origin, outcome

# ----------------------------------------------------------------------
# Nearby search
# ----------------------------------------------------------------------
@router.post("/places/nearby", response_model=NearbySearchResponse)
async def search_nearby(request: Request, data: NearbySearchRequest):
    """Venues with an active discount near the given point, nearest first."""
    origin, outcome = await _search(request, data)
    region = _catalog(request).lookup(origin)
    return NearbySearchResponse(
        results=_to_results(outcome.venues, origin),
        origin=origin,
        region=region.name,
        fallback=outcome.fallback,
    )

# ----------------------------------------------------------------------
# Discover: nearby search + the list-view filter
# ----------------------------------------------------------------------
@router.post("/places/discover", response_model=NearbySearchResponse)
async def discover(request: Request, data: DiscoverRequest):
    origin, outcome = await _search(request, data)
    visible = filter_venues(outcome.venues, data.search_query, data.selected_category)
    region = _catalog(request).lookup(origin)
    return NearbySearchResponse(
        results=_to_results(visible, origin),
        origin=origin,
        region=region.name,
        fallback=outcome.fallback,
    )

# ----------------------------------------------------------------------
# Map view: wider radius, everything with an active deal
# ----------------------------------------------------------------------
@router.post("/places/map", response_model=NearbySearchResponse)
async def map_view(request: Request, data: MapRequest):
    origin = Coordinate(latitude=data.latitude, longitude=data.longitude)
    outcome = await _places(request).search(
        SearchParams(origin=origin, radius_m=settings.MAP_SEARCH_RADIUS_M)
    )
    results = [
        VenueResult(venue=v, distance_km=round(d, 2), details=v.details_params())
        for v, d in with_distances(outcome.venues, origin)
    ]
    return NearbySearchResponse(
        results=results,
        origin=origin,
        region=_catalog(request).lookup(origin).name,
        fallback=outcome.fallback,
    )

# ----------------------------------------------------------------------
# Place details
# ----------------------------------------------------------------------
@router.get("/places/{place_id}", response_model=PlaceDetails)
async def place_details(request: Request, place_id: str):
    if not place_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=ErrorResponse(
                error="INVALID_PLACE_ID",
                detail="A place id is required.",
            ).model_dump(),
        )
    return await _places(request).get_place_details(place_id)

# ----------------------------------------------------------------------
# Location
# ----------------------------------------------------------------------
@router.post(
    "/location/resolve",
    response_model=LocationFix,
    responses={503: {"model": ErrorResponse}},
)
async def resolve_location(request: Request, data: ResolveLocationRequest):
    """Turn a client-reported position into a fix with a best-effort place name."""
    backend = StaticLocationBackend(Coordinate(latitude=data.latitude, longitude=data.longitude))
    provider = LocationProvider(backend, request.app.state.geocoder)
    try:
        fix = await provider.acquire()
    finally:
        provider.close()

    if fix is None:
        error = provider.error
        logger.warning(f"Location resolution failed: {provider.error_message}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=ErrorResponse(
                error=error.kind.value if error else "LOCATION_UNAVAILABLE",
                detail=provider.error_message or "Unable to get your location",
            ).model_dump(),
        )
    return fix

# ----------------------------------------------------------------------
# Categories
# ----------------------------------------------------------------------
@router.get("/categories")
async def categories():
    return {"categories": CATEGORIES}
