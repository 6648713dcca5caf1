# tests/test_api.py
import pytest
from fastapi.testclient import TestClient

from runroute.api.v1.dependencies import get_geocoder, get_orchestrator
from runroute.core.errors import GeocodingError
from runroute.main import app
from runroute.models.routing import GeocodeResult

from fakes import FakeDirections, FakeElevation, FakeGeocoder, no_route, transport_failure

client = TestClient(app)

OSLO = {"lat": 59.9139, "lon": 10.7522}


@pytest.fixture
def use_orchestrator():
    def _use(orchestrator):
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        return orchestrator

    yield _use
    app.dependency_overrides.clear()


@pytest.fixture
def use_geocoder():
    def _use(geocoder):
        app.dependency_overrides[get_geocoder] = lambda: geocoder
        return geocoder

    yield _use
    app.dependency_overrides.clear()


def test_generate_routes(use_orchestrator, make_orchestrator):
    use_orchestrator(make_orchestrator())

    response = client.post(
        "/routes/",
        json={"distance_km": 5, "pace_min_per_km": "5:00", "start_location": OSLO, "alternatives": 4},
    )

    assert response.status_code == 200
    data = response.json()
    assert len(data["candidates"]) == 4
    assert data["best_candidate_id"] == data["candidates"][0]["id"]
    assert data["used_external_scoring"] is False
    assert data["start"]["lat"] == pytest.approx(59.9139)
    scores = [c["score"] for c in data["candidates"]]
    assert scores == sorted(scores, reverse=True)


def test_generate_routes_rejects_bad_distance(use_orchestrator, make_orchestrator):
    directions = FakeDirections()
    use_orchestrator(make_orchestrator(directions))

    response = client.post("/routes/", json={"distance_km": 0.2, "start_location": OSLO})

    assert response.status_code == 400
    assert response.json()["detail"] == "Distance must be between 0.5 and 50 kilometers"
    assert directions.calls == []


def test_generate_routes_missing_fields_is_422():
    response = client.post("/routes/", json={"start_location": OSLO})
    assert response.status_code == 422


def test_generate_routes_without_any_route_is_404(use_orchestrator, make_orchestrator):
    use_orchestrator(make_orchestrator(FakeDirections(no_route)))

    response = client.post(
        "/routes/", json={"distance_km": 5, "start_location": OSLO, "alternatives": 2}
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "No routes could be generated for the given parameters"


def test_generate_routes_upstream_failure_is_502(use_orchestrator, make_orchestrator):
    use_orchestrator(make_orchestrator(FakeDirections(transport_failure), max_retries=2))

    response = client.post(
        "/routes/", json={"distance_km": 5, "start_location": OSLO, "alternatives": 2}
    )

    assert response.status_code == 502
    assert response.json()["detail"] == "Route generation failed after 2 attempts"


def test_generate_routes_unknown_place_is_404(use_orchestrator, make_orchestrator):
    use_orchestrator(make_orchestrator(geocoder=FakeGeocoder()))

    response = client.post("/routes/", json={"distance_km": 5, "start_location": "Atlantis"})

    assert response.status_code == 404


def test_enhance_route(use_orchestrator, make_orchestrator):
    orchestrator = use_orchestrator(
        make_orchestrator(FakeDirections(dimensions=2), elevation=FakeElevation())
    )
    generated = client.post(
        "/routes/", json={"distance_km": 5, "start_location": OSLO, "alternatives": 1}
    ).json()
    candidate = generated["candidates"][0]
    assert candidate["geometry_state"] == "geometry-only"

    response = client.post("/routes/enhance", json=candidate)

    assert response.status_code == 200
    enhanced = response.json()
    assert enhanced["id"] == candidate["id"]
    assert enhanced["geometry_state"] == "elevation-enriched"
    assert enhanced["elevation_profile"]["total_ascent_m"] > 0
    assert len(enhanced["colored_segments"]) == len(enhanced["coordinates"]) - 1
    assert enhanced["terrain"]["level"] in {"flat", "rolling", "hilly", "mountainous"}
    assert orchestrator.elevation.calls == 1


def test_decode_polyline():
    response = client.post(
        "/polyline/decode", json={"encoded": "_p~iF~ps|U_ulLnnqC_mqNvxq`@", "dimensions": 2}
    )

    assert response.status_code == 200
    points = response.json()
    assert [(p["lat"], p["lon"]) for p in points] == [
        (38.5, -120.2),
        (40.7, -120.95),
        (43.252, -126.453),
    ]


def test_decode_polyline_rejects_bad_dimensions():
    response = client.post("/polyline/decode", json={"encoded": "??", "dimensions": 4})
    assert response.status_code == 422


def test_geocode_search(use_geocoder):
    use_geocoder(FakeGeocoder([GeocodeResult(lat=59.91, lon=10.75, display_name="Oslo, Norge")]))

    response = client.get("/geocode/", params={"q": "Oslo"})

    assert response.status_code == 200
    assert response.json()[0]["display_name"] == "Oslo, Norge"


def test_geocode_search_not_found(use_geocoder):
    use_geocoder(FakeGeocoder())
    response = client.get("/geocode/", params={"q": "Atlantis"})
    assert response.status_code == 404


def test_geocode_upstream_failure_is_502(use_geocoder):
    class BrokenGeocoder(FakeGeocoder):
        async def search(self, text):
            raise GeocodingError("Geocoding failed (503)", status_code=503)

    use_geocoder(BrokenGeocoder())
    response = client.get("/geocode/", params={"q": "Oslo"})
    assert response.status_code == 502


def test_reverse_geocode(use_geocoder):
    use_geocoder(FakeGeocoder(address="Karl Johans gate, Oslo, Norge"))

    response = client.get("/geocode/reverse", params={"lat": 59.91, "lon": 10.75})

    assert response.status_code == 200
    assert response.json() == {"lat": 59.91, "lon": 10.75, "display_name": "Karl Johans gate, Oslo, Norge"}


def test_decode_polyline_with_overlong_varint_returns_partial():
    response = client.post(
        "/polyline/decode", json={"encoded": "??" + "_" * 300 + "@", "dimensions": 3}
    )

    assert response.status_code == 200
    assert response.json() == []


def test_orchestrators_share_one_elevation_client():
    first = get_orchestrator()
    second = get_orchestrator()

    assert first is not second
    assert first.corrections is not second.corrections
    assert first.elevation is second.elevation
