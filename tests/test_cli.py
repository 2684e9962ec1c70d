import json

import pytest

from navcore import cli
from navcore.domain.models import Coordinate, PoiCategory, SearchResult, TransportMode


def test_route_offline_prints_fallback_json(capsys):
    code = cli.main(["route", "--from", "18.5204,73.8567", "--to", "18.5314,73.8446", "--mode", "walking", "--offline", "--json"])
    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["summary"] == "Approximate walking route (fallback)"
    assert len(data["coordinates"]) == 2


def test_parser_rejects_malformed_points():
    parser = cli.build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["route", "--from", "north", "--to", "1,2"])


def test_parser_accepts_modes():
    args = cli.build_parser().parse_args(["route", "--from", "1,2", "--to", "3,4", "--mode", "transit"])
    assert args.mode is TransportMode.TRANSIT
    assert args.origin.latitude == 1.0


def test_search_prints_no_results(monkeypatch, capsys):
    async def fake_search(self, text):
        return []

    monkeypatch.setattr("navcore.ingestion.nominatim_client.NominatimClient.search", fake_search)
    assert cli.main(["search", "zzzz"]) == 0
    assert "No results." in capsys.readouterr().out


def test_nearby_prints_points_of_interest(monkeypatch, capsys):
    seen = {}

    async def fake_search_nearby(self, center, category):
        seen.update(center=center, category=category)
        return [SearchResult(id="0", title="Cafe Goodluck", address="Cafe Goodluck, FC Road, Pune", coordinate=center)]

    monkeypatch.setattr("navcore.ingestion.nominatim_client.NominatimClient.search_nearby", fake_search_nearby)
    assert cli.main(["nearby", "18.5167,73.8417", "--category", "cafe"]) == 0
    out = capsys.readouterr().out
    assert "Cafe Goodluck" in out
    assert seen["category"] is PoiCategory.CAFE
    assert seen["center"] == Coordinate(latitude=18.5167, longitude=73.8417)
