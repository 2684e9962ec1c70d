import asyncio
import logging

import httpx

from navcore.config.settings import get_settings
from navcore.domain.models import Coordinate, TransportMode
from navcore.ingestion.osrm_client import OsrmRouteProvider, build_fallback_route, decode_geometry

ORIGIN = Coordinate(latitude=18.5204, longitude=73.8567)
DESTINATION = Coordinate(latitude=18.5314, longitude=73.8446)


def _healthy_payload(points: list[list[float]], *, distance: float = 2400.0, summary: str = "FC Road"):
    return {
        "code": "Ok",
        "routes": [
            {
                "distance": distance,
                "duration": 300.0,
                "geometry": {"type": "LineString", "coordinates": points},
                "legs": [{"summary": summary, "distance": distance}],
            }
        ],
    }


def _patch_get_json(monkeypatch, fake):
    monkeypatch.setattr("navcore.ingestion.osrm_client.get_json", fake)


def test_fetch_route_decodes_service_geometry(monkeypatch):
    points = [[73.8567, 18.5204], [73.8520, 18.5250], [73.8480, 18.5290], [73.8446, 18.5314]]
    calls = []

    async def fake_get_json(url, *, params=None, headers=None, timeout_seconds=15, transport=None):  # noqa: ARG001
        calls.append((url, params))
        return _healthy_payload(points)

    _patch_get_json(monkeypatch, fake_get_json)
    provider = OsrmRouteProvider(get_settings())
    result = asyncio.run(provider.fetch_route(ORIGIN, DESTINATION, TransportMode.DRIVING))

    assert len(result.coordinates) == 4
    assert result.coordinates[1] == Coordinate(latitude=18.5250, longitude=73.8520)
    assert result.distance_km == 2.4
    # The service's own duration is ignored in favour of the speed-based estimate.
    assert result.duration_text == "4 min"
    assert result.summary == "FC Road"
    assert result.source == "service"

    url, params = calls[0]
    assert url.endswith("/route/v1/driving/73.8567,18.5204;73.8446,18.5314")
    assert params == {"overview": "full", "geometries": "geojson"}


def test_fetch_route_maps_modes_to_profiles(monkeypatch):
    urls = []

    async def fake_get_json(url, **_kwargs):
        urls.append(url)
        return _healthy_payload([[73.8567, 18.5204], [73.8446, 18.5314]])

    _patch_get_json(monkeypatch, fake_get_json)
    provider = OsrmRouteProvider(get_settings())
    for mode in TransportMode:
        asyncio.run(provider.fetch_route(ORIGIN, DESTINATION, mode))

    profiles = [u.split("/route/v1/")[1].split("/")[0] for u in urls]
    assert profiles == ["driving", "cycling", "walking", "driving"]


def test_fetch_route_empty_routes_falls_back(monkeypatch, caplog):
    async def fake_get_json(url, **_kwargs):
        return {"code": "NoRoute", "routes": []}

    _patch_get_json(monkeypatch, fake_get_json)
    provider = OsrmRouteProvider(get_settings())
    with caplog.at_level(logging.WARNING, logger="navcore.ingestion.osrm_client"):
        result = asyncio.run(provider.fetch_route(ORIGIN, DESTINATION, TransportMode.WALKING))

    assert result.coordinates == [ORIGIN, DESTINATION]
    assert "fallback" in result.summary
    assert result.is_fallback
    assert any("no routes" in r.getMessage() for r in caplog.records)


def test_fetch_route_unreachable_service_falls_back(monkeypatch):
    async def fake_get_json(url, **_kwargs):
        raise httpx.ConnectError("connection refused", request=httpx.Request("GET", url))

    _patch_get_json(monkeypatch, fake_get_json)
    provider = OsrmRouteProvider(get_settings())
    result = asyncio.run(provider.fetch_route(ORIGIN, DESTINATION, TransportMode.WALKING))

    assert 1.5 <= result.distance_km <= 1.8
    assert result.duration_text in {f"{m} min" for m in range(18, 23)}
    assert result.summary == "Approximate walking route (fallback)"


def test_fetch_route_non_2xx_falls_back_via_transport():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="upstream busy")

    provider = OsrmRouteProvider(get_settings(), transport=httpx.MockTransport(handler))
    result = asyncio.run(provider.fetch_route(ORIGIN, DESTINATION, TransportMode.BICYCLING))

    assert result.is_fallback
    assert result.summary == "Approximate bicycling route (fallback)"


def test_fetch_route_malformed_json_falls_back_via_transport():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>not json</html>")

    provider = OsrmRouteProvider(get_settings(), transport=httpx.MockTransport(handler))
    result = asyncio.run(provider.fetch_route(ORIGIN, DESTINATION, TransportMode.DRIVING))

    assert result.is_fallback


def test_fetch_route_schema_error_falls_back(monkeypatch):
    async def fake_get_json(url, **_kwargs):
        return {"routes": [{"distance": "far away"}]}

    _patch_get_json(monkeypatch, fake_get_json)
    provider = OsrmRouteProvider(get_settings())
    result = asyncio.run(provider.fetch_route(ORIGIN, DESTINATION, TransportMode.DRIVING))

    assert result.is_fallback


def test_fetch_route_bad_geometry_keeps_service_distance(monkeypatch):
    async def fake_get_json(url, **_kwargs):
        return {"routes": [{"distance": 5000, "geometry": "encoded-polyline", "legs": []}]}

    _patch_get_json(monkeypatch, fake_get_json)
    provider = OsrmRouteProvider(get_settings())
    result = asyncio.run(provider.fetch_route(ORIGIN, DESTINATION, TransportMode.TRANSIT))

    assert result.source == "service"
    assert result.coordinates == [ORIGIN, DESTINATION]
    assert result.distance_km == 5.0
    assert result.duration_text == "5 min"
    assert result.summary == "Route via driving"


def test_fetch_route_same_point_skips_network(monkeypatch):
    async def fake_get_json(url, **_kwargs):
        raise AssertionError("routing service must not be called")

    _patch_get_json(monkeypatch, fake_get_json)
    provider = OsrmRouteProvider(get_settings())
    result = asyncio.run(provider.fetch_route(ORIGIN, ORIGIN, TransportMode.DRIVING))

    assert result.distance_km == 0
    assert result.duration_text == "1 min"


def test_build_fallback_route_without_network():
    result = build_fallback_route(ORIGIN, DESTINATION, TransportMode.DRIVING)
    assert result.coordinates == [ORIGIN, DESTINATION]
    assert result.summary == "Approximate driving route (fallback)"
    assert result.duration_text == "3 min"


def test_decode_geometry_rejects_non_linestrings():
    assert decode_geometry(None) is None
    assert decode_geometry({"type": "Point", "coordinates": [1, 2]}) is None
    assert decode_geometry({"type": "LineString", "coordinates": [[1, 2], [3, 4]]}) == [
        Coordinate(latitude=2, longitude=1),
        Coordinate(latitude=4, longitude=3),
    ]


def test_fetch_route_non_finite_endpoint_skips_network(monkeypatch):
    async def fake_get_json(url, **_kwargs):
        raise AssertionError("routing service must not be called")

    _patch_get_json(monkeypatch, fake_get_json)
    provider = OsrmRouteProvider(get_settings())

    for bad in (float("nan"), float("inf")):
        broken = Coordinate(latitude=bad, longitude=73.8446)
        result = asyncio.run(provider.fetch_route(ORIGIN, broken, TransportMode.WALKING))
        assert result.is_fallback
        assert result.distance_km == 0
        assert result.duration_text == "1 min"
        assert result.summary == "Approximate walking route (fallback)"


def test_fetch_route_infinite_service_distance_falls_back(monkeypatch):
    async def fake_get_json(url, **_kwargs):
        return _healthy_payload([[73.8567, 18.5204], [73.8446, 18.5314]], distance=float("inf"))

    _patch_get_json(monkeypatch, fake_get_json)
    provider = OsrmRouteProvider(get_settings())
    result = asyncio.run(provider.fetch_route(ORIGIN, DESTINATION, TransportMode.DRIVING))

    assert result.is_fallback
    assert 1.5 <= result.distance_km <= 1.8
