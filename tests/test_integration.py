import pytest
from fastapi.testclient import TestClient

from src.geodispatch.data.hub_repository import HubRepository
from src.geodispatch.main import create_app
from src.geodispatch.models.domain import Coordinate, Hub
from src.geodispatch.services.geocoding.cache import GeocodeCache
from src.geodispatch.services.geocoding.results import GeocodeErrorKind, GeocodeResult, ReverseResult
from src.geodispatch.services.geocoding.service import GeocodingService


class DummyProvider:
    def __init__(self):
        self.forward_calls = 0

    def forward(self, query, country_restricted=True, timeout=None, cancel=None, limit=1, address_details=False):
        self.forward_calls += 1
        if "Nguyen Trai" in query:
            return GeocodeResult.success(Coordinate(10.7547, 106.6772))
        return GeocodeResult.failure(GeocodeErrorKind.NO_RESULT, "No result")

    def reverse(self, lat, lng, timeout=None, cancel=None):
        return ReverseResult.success("123 Nguyễn Trãi, P. 2, Q.5, TP.HCM")


class DummyGate:
    min_interval_seconds = 0.95


@pytest.fixture
def provider() -> DummyProvider:
    return DummyProvider()


@pytest.fixture
def api_client(provider, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    from src.geodispatch.api.routes import geocoding as geocoding_routes
    from src.geodispatch.api.routes import health as health_routes
    from src.geodispatch.api.routes import hubs as hubs_routes
    from src.geodispatch.services.routing import service as routing_service

    provider.base_url = "https://geocoder.test"
    provider.gate = DummyGate()
    geocoder = GeocodingService(
        client=provider,
        cache=GeocodeCache(),
        country_suffix="Việt Nam",
        default_city="Hồ Chí Minh",
    )
    repository = HubRepository(
        ttl_seconds=300,
        loader=lambda source: (
            Hub(id="1", name="Kho Quận 5", address="1 Nguyen Trai", coordinate=Coordinate(10.755, 106.68)),
            Hub(id="2", name="Kho Thủ Đức", address="", coordinate=Coordinate(10.85, 106.77)),
        ),
    )

    for module in (geocoding_routes, health_routes, routing_service):
        monkeypatch.setattr(module, "get_geocoding_service", lambda: geocoder)
    for module in (hubs_routes, routing_service):
        monkeypatch.setattr(module, "get_hub_repository", lambda: repository)

    return TestClient(create_app())


def test_health(api_client: TestClient):
    assert api_client.get("/api/health").json() == {"status": "ok"}
    body = api_client.get("/api/health/geocoder").json()
    assert body["base_url"] == "https://geocoder.test"
    assert body["cache"] == {"positive": 0, "negative": 0, "reverse": 0}


def test_geocode_test_endpoint(api_client: TestClient, provider: DummyProvider):
    response = api_client.get("/api/geocode/test", params={"q": "123 Nguyen Trai, Q.5, TP.HCM"})

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["normalized"] == "123 Nguyen Trai, Quận 5, Hồ Chí Minh"
    assert body["candidates"][0] == "123 Nguyen Trai, Quận 5, Hồ Chí Minh, Việt Nam"
    assert (body["lat"], body["lng"]) == (10.7547, 106.6772)

    api_client.get("/api/geocode/test", params={"q": "123 Nguyen Trai, Quận 5, Hồ Chí Minh"})
    assert provider.forward_calls == 1


def test_geocode_failures_are_reported_in_the_body(api_client: TestClient):
    body = api_client.get("/api/geocode/test", params={"q": "Bình Thạnh"}).json()

    assert body["ok"] is False
    assert body["error_kind"] == "too_vague"
    assert body["lat"] is None


def test_geocode_resolve_with_hints(api_client: TestClient):
    response = api_client.post(
        "/api/geocode/resolve",
        json={"text": "123 Nguyen Trai (cổng sau)", "ward": "Phường 2", "district": "Quận 5", "province": "Hồ Chí Minh"},
    )

    body = response.json()
    assert body["ok"] is True
    assert body["normalized"] == "123 Nguyen Trai, Phường 2, Quận 5, Hồ Chí Minh"


def test_reverse_geocode(api_client: TestClient):
    body = api_client.get("/api/geocode/reverse", params={"lat": 10.7547, "lng": 106.6772}).json()

    assert body["ok"] is True
    assert body["display_name"] == "123 Nguyễn Trãi, Phường 2, Quận 5, Hồ Chí Minh"
    assert api_client.get("/api/geocode/reverse", params={"lat": 100, "lng": 0}).status_code == 422


def test_nearest_hub(api_client: TestClient):
    response = api_client.post("/api/hubs/nearest", json={"lat": 10.84, "lng": 106.76})

    assert response.status_code == 200
    assert response.json()["hub"]["id"] == "2"
    assert len(api_client.get("/api/hubs").json()) == 2


def test_plan_route(api_client: TestClient):
    response = api_client.post(
        "/api/routes/plan",
        json={
            "hub_id": "1",
            "stops": [
                {"id": "far", "lat": 10.80, "lng": 106.70},
                {"id": "near", "lat": 10.76, "lng": 106.68},
                {"id": "mid", "lat": 10.78, "lng": 106.69},
            ],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert [stop["id"] for stop in body["stops"]] == ["near", "mid", "far"]
    assert body["origin"]["hub_id"] == "1"
    assert body["directions_url"].startswith("https://www.google.com/maps/dir/?api=1")


def test_plan_route_errors(api_client: TestClient):
    unknown_hub = api_client.post("/api/routes/plan", json={"hub_id": "99", "stops": [{"id": "a", "address": "x"}]})
    assert unknown_hub.status_code == 400

    half_coordinate = api_client.post("/api/routes/plan", json={"stops": [{"id": "a", "lat": 10.0}]})
    assert half_coordinate.status_code == 422
