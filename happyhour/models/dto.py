# Data models for venues, discounts, locations and the public API.

import math
from datetime import datetime, time, timezone
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Optional, Tuple

# --- Categories ---

ALL_CATEGORIES = "All"
RESTAURANT = "Restaurant"
BAR_AND_RESTAURANT = "Bar & Restaurant"
CAFE = "Cafe"
SPA_AND_WELLNESS = "Spa & Wellness"
MASSAGE_PARLOUR = "Massage Parlour"
STREET_FOOD = "Street Food"

CATEGORIES: List[str] = [
    ALL_CATEGORIES,
    RESTAURANT,
    BAR_AND_RESTAURANT,
    CAFE,
    SPA_AND_WELLNESS,
    MASSAGE_PARLOUR,
    STREET_FOOD,
]

# Categories drawn at random when a search does not ask for one
BASE_CATEGORIES: List[str] = [RESTAURANT, BAR_AND_RESTAURANT, CAFE, SPA_AND_WELLNESS]

# Category -> venue-name pool in a region catalog
CATEGORY_POOLS: Dict[str, str] = {
    RESTAURANT: "restaurants",
    BAR_AND_RESTAURANT: "bars",
    CAFE: "cafes",
    SPA_AND_WELLNESS: "spas",
    MASSAGE_PARLOUR: "spas",
    STREET_FOOD: "restaurants",
}

_EQUIVALENT_CATEGORIES = {
    SPA_AND_WELLNESS: MASSAGE_PARLOUR,
    MASSAGE_PARLOUR: SPA_AND_WELLNESS,
}

def normalize_category(category: Optional[str]) -> Optional[str]:
    """Treat a missing, blank or "All" category as no category filter."""
    if not category or category == ALL_CATEGORIES:
        return None
    return category

def category_matches(filter_category: Optional[str], venue_category: str) -> bool:
    """Spa & Wellness and Massage Parlour match each other; everything else must be equal."""
    if normalize_category(filter_category) is None:
        return True
    if filter_category == venue_category:
        return True
    return _EQUIVALENT_CATEGORIES.get(filter_category) == venue_category

# --- Locations ---

class Coordinate(BaseModel):
    """A point on the globe in decimal degrees."""
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90.0, le=90.0, description="Latitude.")
    longitude: float = Field(..., ge=-180.0, le=180.0, description="Longitude.")

    @field_validator("latitude", "longitude")
    @classmethod
    def validate_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("coordinates must be finite numbers")
        return v

class LocationFix(Coordinate):
    """A single resolved location reading. Superseded by the next fix, never mutated."""
    address: Optional[str] = Field(None, description="Street address, best effort.")
    city: Optional[str] = Field(None, description="City, best effort.")
    country: Optional[str] = Field(None, description="Country, best effort.")
    acquired_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)

class GeocodeResult(BaseModel):
    """Reverse geocoding output. Empty means "place unknown", not an error."""
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.address or self.city or self.country)

# --- Regions ---

class Region(BaseModel):
    """A named bounding box with its own venue and street pools."""
    model_config = ConfigDict(frozen=True)

    name: str
    country: str
    timezone: str
    sub_region: Optional[str] = None
    lat_range: Tuple[float, float] = Field(..., description="[min_lat, max_lat]")
    lng_range: Tuple[float, float] = Field(..., description="[min_lng, max_lng]")
    cuisine: Optional[str] = None

    def contains(self, latitude: float, longitude: float) -> bool:
        min_lat, max_lat = self.lat_range
        min_lng, max_lng = self.lng_range
        return min_lat <= latitude <= max_lat and min_lng <= longitude <= max_lng

    @property
    def is_default(self) -> bool:
        return self.name == "default"

class PostalFormat(BaseModel):
    """Localized address format for a region (sub-district + postcode)."""
    district: str
    province: str
    sub_districts: List[str]
    postal_codes: List[str]

class RegionTable(BaseModel):
    """Root model for regions.json."""
    regions: List[Region]
    venue_catalogs: Dict[str, Dict[str, List[str]]]
    street_names: Dict[str, List[str]]
    postal_formats: Dict[str, PostalFormat] = Field(default_factory=dict)

# --- Discounts and venues ---

class Discount(BaseModel):
    """A time-boxed percentage offer attached to a venue."""
    id: str
    venue_id: str
    title: str
    description: str
    percentage: int = Field(..., ge=1, le=100, description="Percent off.")
    valid_from: str = Field(..., pattern=r"^\d{2}:\d{2}$", description="Window start, HH:MM.")
    valid_to: str = Field(..., pattern=r"^\d{2}:\d{2}$", description="Window end, HH:MM.")
    is_active: bool

    def is_window_open(self, at: time) -> bool:
        """
        Whether `at` falls inside [valid_from, valid_to). Informational only:
        `is_active` is decided when the discount is generated.
        """
        start = time.fromisoformat(self.valid_from)
        end = time.fromisoformat(self.valid_to)
        if start <= end:
            return start <= at < end
        # window wraps past midnight
        return at >= start or at < end

class VenueLocation(BaseModel):
    latitude: float
    longitude: float
    address: str

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)

class Venue(BaseModel):
    """A discoverable place of business ("Business" in the mobile client)."""
    id: str
    name: str
    description: str
    image: str
    location: VenueLocation
    category: str
    rating: Optional[float] = Field(None, ge=0.0, le=5.0, description="None when a real backend has no rating.")
    current_discount: Optional[Discount] = None
    is_active: bool

    @property
    def has_active_discount(self) -> bool:
        return self.current_discount is not None and self.current_discount.is_active

    @property
    def is_discoverable(self) -> bool:
        """Only active venues with an active discount may ever be shown."""
        return self.is_active and self.has_active_discount

    def details_params(self) -> "VenueDetailsParams":
        discount = self.current_discount
        return VenueDetailsParams(
            id=self.id,
            name=self.name,
            description=self.description,
            image=self.image,
            address=self.location.address,
            rating=str(self.rating) if self.rating is not None else "",
            category=self.category,
            discountTitle=discount.title if discount else "",
            discountPercentage=str(discount.percentage) if discount else "",
            discountDescription=discount.description if discount else "",
            validFrom=discount.valid_from if discount else "",
            validTo=discount.valid_to if discount else "",
            isDiscountActive="true" if discount and discount.is_active else "false",
        )

class VenueDetailsParams(BaseModel):
    """Flat string snapshot of a venue handed to the details view."""
    id: str
    name: str
    description: str
    image: str
    address: str
    rating: str
    category: str
    discountTitle: str
    discountPercentage: str
    discountDescription: str
    validFrom: str
    validTo: str
    isDiscountActive: str

class FallbackVenues(BaseModel):
    """Root model for fallback_venues.json."""
    venues: List[Venue]

class OpeningHours(BaseModel):
    open_now: bool
    weekday_text: List[str]

class PlaceDetails(BaseModel):
    place_id: str
    formatted_phone_number: str
    website: str
    opening_hours: OpeningHours

# --- Search ---

class SearchParams(BaseModel):
    """Provider-agnostic nearby search."""
    origin: Coordinate
    radius_m: int = Field(5000, gt=0, description="Search radius in meters.")
    category: Optional[str] = None
    query: Optional[str] = None

# --- API Request Models ---

class NearbySearchRequest(BaseModel):
    """Request model for POST /api/places/nearby."""
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    radius_m: Optional[int] = Field(None, gt=0, le=50000, description="Defaults to the list-view radius.")
    category: Optional[str] = Field(None, description="One of CATEGORIES; \"All\" means no filter.")
    query: Optional[str] = Field(None, max_length=100, description="Free-text name/description filter.")

class DiscoverRequest(NearbySearchRequest):
    """Request model for POST /api/places/discover."""
    search_query: str = Field("", max_length=100)
    selected_category: str = Field(ALL_CATEGORIES)

class CoordinateRequest(BaseModel):
    """A bare client-reported position."""
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

class ResolveLocationRequest(CoordinateRequest):
    """Request model for POST /api/location/resolve."""

class MapRequest(CoordinateRequest):
    """Request model for POST /api/places/map. The radius is fixed server-side."""

# --- Public Data Transfer Objects (DTOs) ---

class VenueResult(BaseModel):
    """Public DTO for a single venue with its distance from the search origin."""
    venue: Venue
    distance_km: float = Field(..., description="Distance from user in kilometers.")
    details: VenueDetailsParams

class NearbySearchResponse(BaseModel):
    results: List[VenueResult]
    origin: Coordinate
    region: str = Field(..., description="Region the origin falls in, or \"default\".")
    fallback: bool = Field(False, description="True when the static fallback set was served.")

# --- Error Response Model ---

class ErrorResponse(BaseModel):
    """Standardized error response model."""
    error: str = Field(..., description="A machine-readable error code.")
    detail: str = Field(..., description="A human-readable explanation.")
    retry_after_seconds: Optional[int] = Field(None, description="Time until retry is allowed.")
