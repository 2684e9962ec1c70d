from starlette.testclient import TestClient

from navcore.api.app import app
from navcore.domain.models import Coordinate, NamedPlace, SearchResult
from navcore.ingestion.osrm_client import build_fallback_route


class _StubRouteProvider:
    async def fetch_route(self, origin, destination, mode):
        # Stay offline: the straight-line estimate is what an unreachable service yields.
        return build_fallback_route(origin, destination, mode)


class _StubGeocoder:
    async def search(self, text):
        if len(text) < 2:
            return []
        return [
            SearchResult(id="0", title="Shaniwar Wada", address="Shaniwar Wada, Pune",
                         coordinate=Coordinate(latitude=18.5195, longitude=73.8553)),
            SearchResult(id="1", title="Broken", address="Broken, Pune",
                         coordinate=Coordinate(latitude=float("nan"), longitude=73.8)),
        ]

    async def reverse_geocode(self, coordinate):
        return NamedPlace(name="Deccan", address="Deccan, Pune", coordinate=coordinate)

    async def search_nearby(self, center, category):
        return [
            SearchResult(id="0", title="ATM HDFC", address="ATM HDFC, FC Road, Pune", coordinate=center),
            SearchResult(id="1", title="Broken", address="Broken, Pune",
                         coordinate=Coordinate(latitude=float("nan"), longitude=73.8)),
        ]


def _patch_clients(monkeypatch):
    import navcore.api.routes as routes

    monkeypatch.setattr(routes, "_clients", lambda: (_StubRouteProvider(), _StubGeocoder()))


def test_api_route_returns_full_result(monkeypatch):
    _patch_clients(monkeypatch)
    params = {
        "origin_lat": 18.5204,
        "origin_lon": 73.8567,
        "dest_lat": 18.5314,
        "dest_lon": 73.8446,
        "mode": "walking",
    }
    with TestClient(app) as c:
        resp = c.get("/api/route", params=params)
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["coordinates"]) == 2
    assert data["coordinates"][0] == {"latitude": 18.5204, "longitude": 73.8567}
    assert data["summary"] == "Approximate walking route (fallback)"
    assert data["source"] == "fallback"
    assert 1.5 <= data["distance_km"] <= 1.8


def test_api_route_rejects_bad_input(monkeypatch):
    _patch_clients(monkeypatch)
    with TestClient(app) as c:
        bad_mode = c.get(
            "/api/route",
            params={"origin_lat": 1, "origin_lon": 1, "dest_lat": 2, "dest_lon": 2, "mode": "teleport"},
        )
        bad_lat = c.get("/api/route", params={"origin_lat": 91, "origin_lon": 1, "dest_lat": 2, "dest_lon": 2})
    assert bad_mode.status_code == 422
    assert bad_lat.status_code == 422


def test_api_search_drops_unusable_coordinates(monkeypatch):
    _patch_clients(monkeypatch)
    with TestClient(app) as c:
        resp = c.get("/api/search", params={"q": "shaniwar"})
        short = c.get("/api/search", params={"q": "s"})
    assert resp.status_code == 200
    assert [r["title"] for r in resp.json()["results"]] == ["Shaniwar Wada"]
    assert short.json() == {"results": []}


def test_api_reverse_and_health(monkeypatch):
    _patch_clients(monkeypatch)
    with TestClient(app) as c:
        reverse = c.get("/api/reverse", params={"lat": 18.5167, "lon": 73.8417})
        health = c.get("/api/health")
    assert reverse.json()["name"] == "Deccan"
    assert health.json()["status"] == "ok"


def test_api_nearby_lists_points_of_interest(monkeypatch):
    _patch_clients(monkeypatch)
    with TestClient(app) as c:
        resp = c.get("/api/nearby", params={"lat": 18.52, "lon": 73.84, "category": "atm"})
        bad = c.get("/api/nearby", params={"lat": 18.52, "lon": 73.84, "category": "museum"})
    assert resp.status_code == 200
    assert [r["title"] for r in resp.json()["results"]] == ["ATM HDFC"]
    assert bad.status_code == 422
