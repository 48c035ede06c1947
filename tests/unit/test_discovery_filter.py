"""Unit tests for the list-view filter and the map-view distance helper."""

import pytest

from happyhour.models.dto import Coordinate, Discount, Venue, VenueLocation
from happyhour.services.discovery import filter_venues, with_distances


def make_venue(vid, name="Venue", description="Somewhere nice", category="Cafe",
               active=True, discount_active=True, with_discount=True, lat=13.75, lng=100.5):
    discount = None
    if with_discount:
        discount = Discount(
            id=f"discount_{vid}",
            venue_id=vid,
            title="Happy Hour Special",
            description="Discounted drinks and appetizers",
            percentage=25,
            valid_from="16:00",
            valid_to="19:00",
            is_active=discount_active,
        )
    return Venue(
        id=vid,
        name=name,
        description=description,
        image="img",
        location=VenueLocation(latitude=lat, longitude=lng, address="addr"),
        category=category,
        rating=4.5,
        current_discount=discount,
        is_active=active,
    )


@pytest.fixture
def venues():
    return [
        make_venue("cafe", name="Casa Lapin", description="Specialty coffee house"),
        make_venue("bar", name="Above Eleven", description="Rooftop cocktails", category="Bar & Restaurant"),
        make_venue("spa", name="Let's Relax", description="Thai massage", category="Spa & Wellness"),
        make_venue("massage", name="Wat Pho", description="Thai massage school", category="Massage Parlour"),
        make_venue("closed", name="Closed Cafe", active=False),
        make_venue("expired", name="Expired Cafe", discount_active=False),
        make_venue("plain", name="Plain Cafe", with_discount=False),
    ]


class TestFilterVenues:
    def test_all_with_empty_query_keeps_only_discoverable(self, venues):
        result = filter_venues(venues, "", "All")
        assert [v.id for v in result] == ["cafe", "bar", "spa", "massage"]

    def test_search_is_case_insensitive_on_name_and_description(self, venues):
        assert [v.id for v in filter_venues(venues, "LAPIN", "All")] == ["cafe"]
        assert [v.id for v in filter_venues(venues, "thai massage", "All")] == ["spa", "massage"]

    def test_category_is_exact_match(self, venues):
        # the list view does not widen Spa & Wellness to Massage Parlour
        assert [v.id for v in filter_venues(venues, "", "Spa & Wellness")] == ["spa"]
        assert [v.id for v in filter_venues(venues, "", "Massage Parlour")] == ["massage"]

    def test_inactive_never_surface_even_when_searched(self, venues):
        assert filter_venues(venues, "Closed", "All") == []
        assert filter_venues(venues, "Expired", "Cafe") == []
        assert filter_venues(venues, "Plain", "Cafe") == []

    def test_no_match_query(self, venues):
        assert filter_venues(venues, "xyzzy-no-match", "All") == []

    def test_order_is_preserved(self, venues):
        reversed_input = list(reversed(venues))
        result = filter_venues(reversed_input, "", "All")
        assert [v.id for v in result] == ["massage", "spa", "bar", "cafe"]


def test_with_distances_sorts_and_filters():
    origin = Coordinate(latitude=13.75, longitude=100.50)
    venues = [
        make_venue("far", lat=13.80, lng=100.55),
        make_venue("near", lat=13.751, lng=100.501),
        make_venue("hidden", lat=13.7501, lng=100.5001, discount_active=False),
    ]
    pairs = with_distances(venues, origin)
    assert [p.venue.id for p in pairs] == ["near", "far"]
    assert pairs[0].distance_km < pairs[1].distance_km
