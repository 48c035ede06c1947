# happyhour/services/discounts.py
# Randomized but bounded discount records for venues.

import random
from typing import List, NamedTuple, Optional

from happyhour.core.config import settings
from happyhour.models.dto import Discount


class DiscountTemplate(NamedTuple):
    title: str
    percentage: int
    description: str


class TimeWindow(NamedTuple):
    valid_from: str
    valid_to: str


DISCOUNT_TEMPLATES: List[DiscountTemplate] = [
    DiscountTemplate("Happy Hour Special", 25, "Discounted drinks and appetizers"),
    DiscountTemplate("Lunch Deal", 20, "Special pricing on lunch menu"),
    DiscountTemplate("Early Bird Special", 30, "Morning discount for early customers"),
    DiscountTemplate("Weekend Promotion", 35, "Weekend-only special offers"),
    DiscountTemplate("Student Discount", 15, "Special rates for students with ID"),
    DiscountTemplate("Local Resident Deal", 40, "Exclusive discount for local residents"),
    DiscountTemplate("First-Time Visitor", 50, "Welcome offer for new customers"),
    DiscountTemplate("Spa Package Deal", 45, "Combo treatment discounts"),
    DiscountTemplate("Coffee & Pastry Combo", 20, "Save on coffee and food combinations"),
    DiscountTemplate("Sunset Special", 30, "Sunset hour promotions"),
    DiscountTemplate("After Work Special", 25, "Perfect for unwinding after work"),
    DiscountTemplate("Date Night Deal", 35, "Special pricing for couples"),
]

TIME_WINDOWS: List[TimeWindow] = [
    TimeWindow("09:00", "12:00"),
    TimeWindow("11:00", "15:00"),
    TimeWindow("14:00", "17:00"),
    TimeWindow("17:00", "20:00"),
    TimeWindow("18:00", "22:00"),
    TimeWindow("19:00", "23:00"),
    TimeWindow("16:00", "19:00"),  # classic happy hour
    TimeWindow("15:00", "18:00"),  # afternoon special
]


class DiscountGenerator:
    """Picks a template and a time window uniformly; `is_active` is a coin flip."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        active_probability: float = settings.DISCOUNT_ACTIVE_PROBABILITY,
    ):
        self.rng = rng or random.Random()
        self.active_probability = active_probability

    def generate(self, venue_id: str) -> Discount:
        template = self.rng.choice(DISCOUNT_TEMPLATES)
        window = self.rng.choice(TIME_WINDOWS)

        return Discount(
            id=f"discount_{venue_id}",
            venue_id=venue_id,
            title=template.title,
            description=template.description,
            percentage=template.percentage,
            valid_from=window.valid_from,
            valid_to=window.valid_to,
            is_active=self.rng.random() < self.active_probability,
        )
