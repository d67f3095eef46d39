from __future__ import annotations

import json

import pytest

import cli
from app import create_app
from client.map_view import MapClient

from conftest import FakeDatabase, FakeRow
from test_map_view import POINTS, FakeHTTP, FakeResponse


@pytest.fixture
def runner():
    def make(handler=None):
        db = FakeDatabase(handler)
        return create_app(db).test_cli_runner(), db

    return make


def test_check_db_prints_versions(runner) -> None:
    def handler(q):
        if "PostGIS_version" in str(q):
            return [FakeRow(postgis_version="3.4 USE_GEOS=1")]
        return [FakeRow(version="PostgreSQL 16.2")]

    cli_runner, _ = runner(handler)
    result = cli_runner.invoke(args=["check-db"])

    assert result.exit_code == 0, result.output
    assert "PostgreSQL: PostgreSQL 16.2" in result.output
    assert "PostGIS: 3.4 USE_GEOS=1" in result.output


def test_load_facilities_command(runner, tmp_path) -> None:
    path = tmp_path / "facilities.geojson"
    path.write_text(json.dumps(POINTS), encoding="utf-8")

    cli_runner, db = runner()
    result = cli_runner.invoke(args=["load-facilities", str(path)])

    assert result.exit_code == 0, result.output
    assert "inserted 3 facilities" in result.output
    assert len(db.sessions[0].added) == 3


def test_render_map_command(runner, tmp_path, monkeypatch) -> None:
    class StubClient(MapClient):
        def __init__(self, base_url):
            super().__init__(base_url, session=FakeHTTP(FakeResponse(POINTS)))

    monkeypatch.setattr(cli, "MapClient", StubClient)
    out = tmp_path / "map.html"

    cli_runner, _ = runner()
    result = cli_runner.invoke(
        args=["render-map", str(out), "--type", "hospital", "--near", "-13.96", "33.77"]
    )

    assert result.exit_code == 0, result.output
    assert "nearest: Kamuzu Central Hospital" in result.output
    assert "Kamuzu Central Hospital" in out.read_text(encoding="utf-8")


def test_render_map_command_reports_fetch_failure(runner, tmp_path, monkeypatch) -> None:
    class Unreachable(MapClient):
        def __init__(self, base_url):
            super().__init__(base_url, session=FakeHTTP(FakeResponse({}, status_code=503)))

    monkeypatch.setattr(cli, "MapClient", Unreachable)
    cli_runner, _ = runner()
    result = cli_runner.invoke(args=["render-map", str(tmp_path / "map.html")])

    assert result.exit_code != 0
    assert "Failed to fetch facilities" in result.output
