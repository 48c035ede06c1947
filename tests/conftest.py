"""Pytest configuration and shared fixtures."""

import random
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from happyhour.models.dto import Coordinate, GeocodeResult
from happyhour.services.discounts import DiscountGenerator
from happyhour.services.place_synthesizer import PlaceSynthesizer
from happyhour.services.region_catalog import RegionCatalog


@pytest.fixture(scope="session")
def region_catalog():
    """Region table loaded from the packaged regions.json."""
    return RegionCatalog.from_file()


@pytest.fixture
def rng():
    """Seeded random source for deterministic synthesis."""
    return random.Random(1234)


@pytest.fixture
def synthesizer(region_catalog, rng):
    return PlaceSynthesizer(region_catalog, discount_generator=DiscountGenerator(rng=rng), rng=rng)


@pytest.fixture
def bangkok():
    return Coordinate(latitude=13.75, longitude=100.50)


class FakeGeocoder:
    """Reverse geocoder double returning a fixed result."""

    def __init__(self, result=None):
        self.result = result or GeocodeResult(address="Silom", city="Bangkok", country="Thailand")
        self.calls = []

    async def resolve(self, coord):
        self.calls.append(coord)
        return self.result


@pytest.fixture
def fake_geocoder():
    return FakeGeocoder()
