# happyhour/services/places_service.py
# Provider-agnostic nearby search with the static fallback set.

import json
import logging
import os
import random
from typing import Dict, List, NamedTuple, Optional, Protocol

import httpx

from happyhour.core.config import settings
from happyhour.core.errors import PlaceRetrievalFailed
from happyhour.models.dto import (
    BAR_AND_RESTAURANT,
    CAFE,
    MASSAGE_PARLOUR,
    RESTAURANT,
    SPA_AND_WELLNESS,
    STREET_FOOD,
    Coordinate,
    FallbackVenues,
    OpeningHours,
    PlaceDetails,
    SearchParams,
    Venue,
    VenueLocation,
    category_matches,
    normalize_category,
)
from happyhour.services.discounts import DiscountGenerator
from happyhour.services.place_synthesizer import DESCRIPTIONS, IMAGES, PlaceSynthesizer
from happyhour.services.region_catalog import RegionCatalog
from happyhour.utils.haversine import distance_km

logger = logging.getLogger(__name__)

FALLBACK_FILE = os.path.join(os.path.dirname(__file__), "..", "data", "fallback_venues.json")

NEARBY_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"

# Category -> Google Places `type`
GOOGLE_TYPES: Dict[str, str] = {
    RESTAURANT: "restaurant",
    BAR_AND_RESTAURANT: "bar",
    CAFE: "cafe",
    SPA_AND_WELLNESS: "spa",
    MASSAGE_PARLOUR: "spa",
    STREET_FOOD: "restaurant",
}

# Google `types` entry -> category, checked in order
_TYPE_CATEGORIES = [
    ("spa", SPA_AND_WELLNESS),
    ("bar", BAR_AND_RESTAURANT),
    ("cafe", CAFE),
    ("restaurant", RESTAURANT),
]


def matches_query(venue: Venue, query: Optional[str]) -> bool:
    """Case-insensitive substring match on name or description. Empty query matches all."""
    if not query:
        return True
    needle = query.lower()
    return needle in venue.name.lower() or needle in venue.description.lower()


def sort_by_distance(venues: List[Venue], origin: Coordinate) -> List[Venue]:
    return sorted(venues, key=lambda v: distance_km(origin, v.location))


class PlaceSource(Protocol):
    """A data source for venues near a point."""
    name: str

    async def fetch(self, params: SearchParams) -> List[Venue]: ...


class SyntheticPlaceSource:
    name = "synthetic"

    def __init__(self, synthesizer: PlaceSynthesizer):
        self.synthesizer = synthesizer

    async def fetch(self, params: SearchParams) -> List[Venue]:
        try:
            return self.synthesizer.synthesize(params.origin, params.radius_m, params.category)
        except Exception as e:
            raise PlaceRetrievalFailed(self.name, str(e)) from e


class GooglePlacesSource:
    """Google Places Nearby Search. Each place gets a generated discount."""
    name = "google"

    def __init__(
        self,
        api_key: str,
        discount_generator: Optional[DiscountGenerator] = None,
        rng: Optional[random.Random] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = settings.GOOGLE_PLACES_TIMEOUT,
    ):
        if not api_key:
            raise ValueError("GOOGLE_PLACES_API_KEY is not set in the environment")
        self.api_key = api_key
        self.rng = rng or random.Random()
        self.discounts = discount_generator or DiscountGenerator(rng=self.rng)
        self._client = client
        self.timeout = timeout

    async def fetch(self, params: SearchParams) -> List[Venue]:
        category = normalize_category(params.category)
        query = {
            "key": self.api_key,
            "location": f"{params.origin.latitude},{params.origin.longitude}",
            "radius": params.radius_m,
            "type": GOOGLE_TYPES.get(category, "establishment") if category else "establishment",
        }
        if params.query:
            query["keyword"] = params.query

        try:
            if self._client is not None:
                resp = await self._client.get(NEARBY_SEARCH_URL, params=query, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.get(NEARBY_SEARCH_URL, params=query)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            raise PlaceRetrievalFailed(self.name, f"http error: {e}") from e
        except ValueError as e:
            raise PlaceRetrievalFailed(self.name, f"invalid json: {e}") from e

        status = data.get("status", "")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            raise PlaceRetrievalFailed(self.name, f"status={status} {data.get('error_message', '')}".strip())

        venues = []
        for result in data.get("results", []):
            venue = self._to_venue(result, category)
            if venue is not None:
                venues.append(venue)
        return venues

    def _to_venue(self, result: dict, category: Optional[str]) -> Optional[Venue]:
        place_id = result.get("place_id")
        location = result.get("geometry", {}).get("location", {})
        if not place_id or "lat" not in location or "lng" not in location:
            return None

        discount = self.discounts.generate(place_id)
        if not discount.is_active:
            return None

        venue_category = category or self._category_from_types(result.get("types", []))
        opening_hours = result.get("opening_hours") or {}
        is_active = (
            result.get("business_status", "OPERATIONAL") == "OPERATIONAL"
            and opening_hours.get("open_now", True) is not False
        )
        rating = result.get("rating")

        return Venue(
            id=place_id,
            name=result.get("name", ""),
            description=self.rng.choice(
                DESCRIPTIONS.get(venue_category, DESCRIPTIONS[RESTAURANT])
            ).format(cuisine="local", city="regional"),
            image=self.rng.choice(IMAGES.get(venue_category, IMAGES[RESTAURANT])),
            location=VenueLocation(
                latitude=location["lat"],
                longitude=location["lng"],
                address=result.get("vicinity", ""),
            ),
            category=venue_category,
            rating=min(5.0, max(0.0, float(rating))) if rating is not None else None,
            current_discount=discount,
            is_active=is_active,
        )

    @staticmethod
    def _category_from_types(types: List[str]) -> str:
        for google_type, category in _TYPE_CATEGORIES:
            if google_type in types:
                return category
        return RESTAURANT


def load_fallback_venues(file_path: str = FALLBACK_FILE) -> List[Venue]:
    """Load the static fallback set, keeping only active venues with an active discount."""
    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    venues = FallbackVenues.model_validate(data).venues
    usable = [v for v in venues if v.is_discoverable]
    if not usable:
        raise ValueError(f"Fallback venue file has no active venues: {file_path}")
    return usable


class SearchOutcome(NamedTuple):
    venues: List[Venue]
    fallback: bool


class PlacesService:
    """Single query interface over a place source.

    - Applies the free-text query whatever the source.
    - Only venues that are active and carry an active discount are returned.
    - Any source failure is logged and answered with the static fallback set.
    """

    def __init__(self, source: PlaceSource, fallback_venues: List[Venue]):
        self.source = source
        self.fallback_venues: List[Venue] = [v for v in fallback_venues if v.is_discoverable]

    async def search(self, params: SearchParams) -> SearchOutcome:
        try:
            venues = await self.source.fetch(params)
        except Exception as e:
            logger.error(f"Place retrieval from '{self.source.name}' failed, serving fallback set: {e}")
            return SearchOutcome(self._fallback(params.origin), True)

        category = normalize_category(params.category)
        results = [
            v for v in venues
            if v.is_discoverable
            and category_matches(category, v.category)
            and matches_query(v, params.query)
        ]
        if not results:
            logger.info(
                f"No venues near {params.origin.latitude},{params.origin.longitude} "
                f"(source={self.source.name}, category={category}, query={params.query!r})"
            )
        return SearchOutcome(sort_by_distance(results, params.origin), False)

    async def search_nearby(self, params: SearchParams) -> List[Venue]:
        outcome = await self.search(params)
        return outcome.venues

    async def get_place_details(self, place_id: str) -> PlaceDetails:
        # Real details require a places backend; return a representative record.
        return PlaceDetails(
            place_id=place_id,
            formatted_phone_number="+66-38-123-456",
            website="https://example.com",
            opening_hours=OpeningHours(
                open_now=True,
                weekday_text=[
                    "Monday: 9:00 AM – 10:00 PM",
                    "Tuesday: 9:00 AM – 10:00 PM",
                    "Wednesday: 9:00 AM – 10:00 PM",
                    "Thursday: 9:00 AM – 10:00 PM",
                    "Friday: 9:00 AM – 11:00 PM",
                    "Saturday: 10:00 AM – 11:00 PM",
                    "Sunday: 10:00 AM – 9:00 PM",
                ],
            ),
        )

    def _fallback(self, origin: Coordinate) -> List[Venue]:
        # copies: callers own the venues they get back
        return sort_by_distance([v.model_copy(deep=True) for v in self.fallback_venues], origin)


def build_places_service(
    catalog: RegionCatalog,
    rng: Optional[random.Random] = None,
    api_key: Optional[str] = settings.GOOGLE_PLACES_API_KEY,
    fallback_venues: Optional[List[Venue]] = None,
) -> PlacesService:
    """Wire the configured source: Google when an API key is present, synthetic otherwise."""
    rng = rng or random.Random()
    discounts = DiscountGenerator(rng=rng)
    if api_key:
        source: PlaceSource = GooglePlacesSource(api_key, discount_generator=discounts, rng=rng)
    else:
        source = SyntheticPlaceSource(PlaceSynthesizer(catalog, discount_generator=discounts, rng=rng))
    logger.info(f"Places service using '{source.name}' source.")
    if fallback_venues is None:
        fallback_venues = load_fallback_venues()
    return PlacesService(source, fallback_venues)
