# happyhour/services/place_synthesizer.py
# Mock venue generation: plausible, region-aware venues scattered around an origin.

import random
import time
from typing import Dict, List, Optional

import structlog

from happyhour.core.config import settings
from happyhour.models.dto import (
    BAR_AND_RESTAURANT,
    BASE_CATEGORIES,
    CAFE,
    MASSAGE_PARLOUR,
    RESTAURANT,
    SPA_AND_WELLNESS,
    STREET_FOOD,
    Coordinate,
    Region,
    Venue,
    VenueLocation,
    category_matches,
    normalize_category,
)
from happyhour.services.discounts import DiscountGenerator
from happyhour.services.region_catalog import RegionCatalog
from happyhour.utils.haversine import distance_km, meters_to_degrees

logger = structlog.get_logger(__name__)

MIN_BATCH = 12
MAX_BATCH = 20  # exclusive

MIN_RATING = 3.8
RATING_SPREAD = 1.2

STREET_NUMBERS = [123, 456, 789, 101, 234, 567, 890, 321, 654, 987]

# {cuisine} and {city} are filled from the region
DESCRIPTIONS: Dict[str, List[str]] = {
    RESTAURANT: [
        "Exceptional dining experience featuring {cuisine} cuisine with fresh, high-quality ingredients",
        "Award-winning restaurant showcasing the best of {city} culinary traditions",
        "Contemporary dining with innovative dishes and locally-sourced ingredients",
        "Fine dining establishment offering an unforgettable gastronomic journey",
    ],
    BAR_AND_RESTAURANT: [
        "Sophisticated bar and restaurant with craft cocktails and gourmet dining",
        "Vibrant atmosphere perfect for drinks and dining with friends",
        "Premium cocktail lounge with exceptional food and city views",
        "Trendy spot combining innovative mixology with delicious cuisine",
    ],
    CAFE: [
        "Artisanal coffee roasted daily with fresh pastries and light meals",
        "Cozy neighborhood cafe perfect for work or relaxation",
        "Specialty coffee house with locally-sourced beans and homemade treats",
        "Popular local spot for premium coffee and healthy breakfast options",
    ],
    SPA_AND_WELLNESS: [
        "Luxurious spa offering rejuvenating treatments and wellness services",
        "Tranquil wellness center with professional therapists and premium amenities",
        "Full-service spa combining traditional techniques with modern facilities",
        "Peaceful retreat for relaxation and therapeutic treatments",
    ],
    MASSAGE_PARLOUR: [
        "Professional massage therapy center with certified therapists",
        "Therapeutic massage studio specializing in wellness and relaxation",
        "Expert massage services in a clean, professional environment",
        "Healing touch massage center with various treatment options",
    ],
    STREET_FOOD: [
        "Authentic local street food with traditional recipes and fresh ingredients",
        "Popular food stall known for delicious, affordable local specialties",
        "Local favorite serving traditional dishes with modern presentation",
        "Vibrant food experience showcasing regional flavors and culture",
    ],
}

_PEXELS = "https://images.pexels.com/photos/{0}/pexels-photo-{0}.jpeg"

IMAGES: Dict[str, List[str]] = {
    RESTAURANT: [_PEXELS.format(n) for n in (1640777, 958545, 262978, 1581384)],
    BAR_AND_RESTAURANT: [_PEXELS.format(n) for n in (1581384, 274192, 1267320, 941861)],
    CAFE: [_PEXELS.format(n) for n in (302899, 1307698, 1833586, 1002543)],
    SPA_AND_WELLNESS: [_PEXELS.format(n) for n in (3757942, 3865711, 3865674, 3865678)],
    MASSAGE_PARLOUR: [_PEXELS.format(n) for n in (3865676, 3865675, 3865677, 3865679)],
    STREET_FOOD: [_PEXELS.format(n) for n in (1267320, 1640777, 958545, 1199957)],
}


class PlaceSynthesizer:
    """Stand-in for a real places backend.

    Every returned venue carries an active discount; draws whose discount came
    out inactive are dropped before they become venues. Offsets are drawn per
    axis from a square around the origin, so corners sit up to sqrt(2) * radius
    away and the spread is not uniform over the disk.
    """

    def __init__(
        self,
        catalog: RegionCatalog,
        discount_generator: Optional[DiscountGenerator] = None,
        rng: Optional[random.Random] = None,
        venue_active_probability: float = settings.VENUE_ACTIVE_PROBABILITY,
    ):
        self.catalog = catalog
        self.rng = rng or random.Random()
        self.discounts = discount_generator or DiscountGenerator(rng=self.rng)
        self.venue_active_probability = venue_active_probability

    def synthesize(
        self,
        origin: Coordinate,
        radius_m: float,
        category: Optional[str] = None,
    ) -> List[Venue]:
        category = normalize_category(category)
        region = self.catalog.lookup(origin)
        radius_deg = meters_to_degrees(radius_m)
        batch_size = self.rng.randrange(MIN_BATCH, MAX_BATCH)
        stamp = int(time.time() * 1000)

        venues: List[Venue] = []
        discarded = 0
        for i in range(batch_size):
            venue_category = category or self.rng.choice(BASE_CATEGORIES)
            if not category_matches(category, venue_category):
                continue

            latitude = origin.latitude + self.rng.uniform(-radius_deg, radius_deg)
            longitude = origin.longitude + self.rng.uniform(-radius_deg, radius_deg)
            # keep generated points on the globe near the poles and the antimeridian
            latitude = max(-90.0, min(90.0, latitude))
            longitude = ((longitude + 180.0) % 360.0) - 180.0

            venue_id = f"place_{i}_{stamp}"
            discount = self.discounts.generate(venue_id)
            if not discount.is_active:
                discarded += 1
                continue

            venues.append(
                Venue(
                    id=venue_id,
                    name=self.rng.choice(self.catalog.catalog_for(region, venue_category)),
                    description=self._describe(venue_category, region),
                    image=self.rng.choice(IMAGES.get(venue_category, IMAGES[RESTAURANT])),
                    location=VenueLocation(
                        latitude=latitude,
                        longitude=longitude,
                        address=self._address(region),
                    ),
                    category=venue_category,
                    rating=MIN_RATING + self.rng.random() * RATING_SPREAD,
                    current_discount=discount,
                    is_active=self.rng.random() < self.venue_active_probability,
                )
            )

        venues.sort(key=lambda v: distance_km(origin, v.location))
        logger.debug(
            "venues_synthesized",
            region=region.name,
            category=category,
            drawn=batch_size,
            kept=len(venues),
            discarded_inactive_discount=discarded,
        )
        return venues

    def _describe(self, category: str, region: Region) -> str:
        templates = DESCRIPTIONS.get(category, DESCRIPTIONS[RESTAURANT])
        template = self.rng.choice(templates)
        if region.is_default:
            return template.format(cuisine="local", city="regional")
        return template.format(cuisine=self.catalog.cuisine_for(region), city=region.name)

    def _address(self, region: Region) -> str:
        number = self.rng.choice(STREET_NUMBERS)
        street = self.rng.choice(self.catalog.streets_for(region))

        postal = self.catalog.postal_format_for(region)
        if postal is not None:
            sub_district = self.rng.choice(postal.sub_districts)
            postal_code = self.rng.choice(postal.postal_codes)
            return (
                f"{number} {street}, {sub_district}, {postal.district}, "
                f"{postal.province} {postal_code}, {region.country}"
            )

        city = self.catalog.display_name(region)
        country = "" if region.country == "Unknown" else f", {region.country}"
        return f"{number} {street}, {city}{country}"
