# happyhour/services/discovery.py
# Final filter over fetched venues, plus the session that drives location -> search -> filter.

from typing import List, NamedTuple, Optional

import structlog

from happyhour.core.config import settings
from happyhour.models.dto import (
    ALL_CATEGORIES,
    Coordinate,
    SearchParams,
    Venue,
    normalize_category,
)
from happyhour.services.location import LocationProvider
from happyhour.services.places_service import PlacesService, matches_query
from happyhour.services.region_catalog import RegionCatalog
from happyhour.utils.haversine import distance_km

logger = structlog.get_logger(__name__)

# Shorter queries only filter locally
MIN_SERVER_QUERY_LENGTH = 3


def filter_venues(venues: List[Venue], search_query: str, selected_category: str) -> List[Venue]:
    """
    Venues matching the query (name or description, case-insensitive) and the
    selected category ("All" or exact match), restricted to active venues with an
    active discount. Upstream stages filter too; this check is never skipped.
    """
    return [
        v for v in venues
        if matches_query(v, search_query)
        and (selected_category == ALL_CATEGORIES or v.category == selected_category)
        and v.is_active
        and v.current_discount is not None
        and v.current_discount.is_active
    ]


class VenueWithDistance(NamedTuple):
    venue: Venue
    distance_km: float


def with_distances(venues: List[Venue], origin: Coordinate) -> List[VenueWithDistance]:
    """Active-discount venues with their distance from origin, nearest first (map view)."""
    pairs = [
        VenueWithDistance(v, distance_km(origin, v.location))
        for v in venues
        if v.is_discoverable
    ]
    pairs.sort(key=lambda p: p.distance_km)
    return pairs


class DiscoverySession:
    """Coordinates location, place search and the user's query/category.

    Requests already in flight are never cancelled. After `close()` their
    results are discarded instead of being applied.
    """

    def __init__(
        self,
        location: LocationProvider,
        places: PlacesService,
        catalog: RegionCatalog,
        radius_m: int = settings.DEFAULT_SEARCH_RADIUS_M,
    ):
        self.location = location
        self.places = places
        self.catalog = catalog
        self.radius_m = radius_m

        self.search_query = ""
        self.selected_category = ALL_CATEGORIES
        self.venues: List[Venue] = []
        self.loading_places = False
        self.used_fallback = False
        self._alive = True

    @property
    def visible_venues(self) -> List[Venue]:
        return filter_venues(self.venues, self.search_query, self.selected_category)

    @property
    def closed(self) -> bool:
        return not self._alive

    async def start(self) -> None:
        fix = await self.location.acquire()
        if fix is not None:
            await self.load_nearby()

    async def load_nearby(self, query: Optional[str] = None) -> None:
        fix = self.location.fix
        if fix is None or not self._alive:
            return

        self.loading_places = True
        params = SearchParams(
            origin=fix.coordinate,
            radius_m=self.radius_m,
            category=normalize_category(self.selected_category),
            query=query or None,
        )
        try:
            outcome = await self.places.search(params)
        finally:
            if self._alive:
                self.loading_places = False

        if not self._alive:
            logger.info("search_result_dropped", reason="session closed")
            return
        self.venues = outcome.venues
        self.used_fallback = outcome.fallback

    async def set_category(self, category: str) -> None:
        self.selected_category = category or ALL_CATEGORIES
        if self.location.fix is not None:
            await self.load_nearby()

    async def set_search_query(self, query: str) -> None:
        self.search_query = query
        if self.location.fix is not None and len(query) >= MIN_SERVER_QUERY_LENGTH:
            await self.load_nearby(query=query)

    async def refresh(self) -> None:
        if self.location.fix is not None:
            await self.load_nearby()
            return
        fix = await self.location.refresh()
        if fix is not None:
            await self.load_nearby()

    def location_label(self) -> str:
        fix = self.location.fix
        if fix is None:
            return "your area"
        if fix.city:
            return fix.city
        region = self.catalog.lookup(fix.coordinate)
        return "your area" if region.is_default else region.name

    def close(self) -> None:
        self._alive = False
        self.location.close()
