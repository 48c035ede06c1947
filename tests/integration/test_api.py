"""HTTP API tests using FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, Mock

from happyhour.core.errors import PlaceRetrievalFailed
from happyhour.main import app
from happyhour.models.dto import CATEGORIES, GeocodeResult
from happyhour.services.places_service import PlacesService, SyntheticPlaceSource, load_fallback_venues


class StubGeocoder:
    def __init__(self, result=None, error=None):
        self.result = result or GeocodeResult(address="Silom", city="Bangkok", country="Thailand")
        self.error = error

    async def resolve(self, coord):
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def client(synthesizer):
    with TestClient(app) as c:
        app.state.geocoder = StubGeocoder()
        app.state.places_service = PlacesService(SyntheticPlaceSource(synthesizer), load_fallback_venues())
        yield c


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["places_source"] == "synthetic"


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


def test_categories(client):
    response = client.get("/api/categories")
    assert response.status_code == 200
    assert response.json()["categories"] == CATEGORIES


def test_nearby_returns_sorted_active_deals(client):
    response = client.post("/api/places/nearby", json={"latitude": 13.75, "longitude": 100.50})
    assert response.status_code == 200
    body = response.json()

    assert body["region"] == "Bangkok"
    assert body["fallback"] is False
    distances = [r["distance_km"] for r in body["results"]]
    assert distances == sorted(distances)
    for result in body["results"]:
        assert result["venue"]["is_active"] is True
        assert result["venue"]["current_discount"]["is_active"] is True
        assert result["details"]["id"] == result["venue"]["id"]


def test_nearby_category_filter(client):
    response = client.post(
        "/api/places/nearby",
        json={"latitude": 13.75, "longitude": 100.50, "category": "Cafe", "radius_m": 2000},
    )
    assert response.status_code == 200
    assert all(r["venue"]["category"] == "Cafe" for r in response.json()["results"])


@pytest.mark.parametrize(
    "payload",
    [
        {"latitude": 91, "longitude": 0},
        {"latitude": 0, "longitude": -181},
        {"latitude": 0},
        {"latitude": 0, "longitude": 0, "radius_m": 0},
    ],
)
def test_nearby_rejects_bad_input(client, payload):
    assert client.post("/api/places/nearby", json=payload).status_code == 422


def test_nearby_serves_fallback_when_source_fails(client):
    source = Mock()
    source.name = "broken"
    source.fetch = AsyncMock(side_effect=PlaceRetrievalFailed("broken", "offline"))
    app.state.places_service = PlacesService(source, load_fallback_venues())

    response = client.post("/api/places/nearby", json={"latitude": 13.75, "longitude": 100.50})
    assert response.status_code == 200
    body = response.json()
    assert body["fallback"] is True
    assert body["results"]
    assert all(r["venue"]["id"].startswith("fallback_") for r in body["results"])


def test_discover_applies_list_filter(client):
    response = client.post(
        "/api/places/discover",
        json={
            "latitude": 13.75,
            "longitude": 100.50,
            "search_query": "xyzzy-no-match",
            "selected_category": "All",
        },
    )
    assert response.status_code == 200
    assert response.json()["results"] == []


def test_discover_exact_category(client):
    response = client.post(
        "/api/places/discover",
        json={"latitude": 13.75, "longitude": 100.50, "selected_category": "Massage Parlour"},
    )
    assert response.status_code == 200
    assert all(r["venue"]["category"] == "Massage Parlour" for r in response.json()["results"])


def test_place_details(client):
    response = client.get("/api/places/place_1")
    assert response.status_code == 200
    body = response.json()
    assert body["place_id"] == "place_1"
    assert len(body["opening_hours"]["weekday_text"]) == 7


def test_place_details_blank_id(client):
    response = client.get("/api/places/%20")
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "INVALID_PLACE_ID"


def test_resolve_location(client):
    response = client.post("/api/location/resolve", json={"latitude": 13.75, "longitude": 100.50})
    assert response.status_code == 200
    body = response.json()
    assert body["city"] == "Bangkok"
    assert body["country"] == "Thailand"
    assert body["latitude"] == 13.75


def test_resolve_location_geocoder_down(client):
    app.state.geocoder = StubGeocoder(error=RuntimeError("geocoder down"))
    response = client.post("/api/location/resolve", json={"latitude": 13.75, "longitude": 100.50})
    assert response.status_code == 200
    body = response.json()
    assert body["city"] is None
    assert body["longitude"] == 100.5


def test_resolve_location_rejects_bad_coordinates(client):
    response = client.post("/api/location/resolve", json={"latitude": -95, "longitude": 0})
    assert response.status_code == 422


def test_map_view_uses_wider_radius(client):
    service = app.state.places_service
    service.search = AsyncMock(wraps=service.search)

    response = client.post("/api/places/map", json={"latitude": 13.75, "longitude": 100.50})
    assert response.status_code == 200
    assert service.search.await_args.args[0].radius_m == 10000

    distances = [r["distance_km"] for r in response.json()["results"]]
    assert distances == sorted(distances)


def test_app_holds_no_shared_session(client):
    # per-user auth state is never kept on the shared application
    assert not hasattr(app.state, "session")


@pytest.mark.parametrize("payload", [{"latitude": 0, "longitude": 200}, {"longitude": 0}])
def test_map_view_rejects_bad_coordinates(client, payload):
    assert client.post("/api/places/map", json=payload).status_code == 422
