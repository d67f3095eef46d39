from __future__ import annotations

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError

from services.geojson import Feature, FeatureCollection, Geometry, point
from geoalchemy2 import Geometry as GeometryType
from sqlalchemy.schema import CreateTable

from models import Base, HealthFacility
from services.loader import facility_from_feature, init_schema, load_facilities

from conftest import FakeSession


def _osm_feature(**props) -> Feature:
    base = {
        "name": "Bwaila Hospital",
        "name:en": "Bwaila Hospital",
        "amenity": "hospital",
        "operator:type": "government",
        "capacity:persons": "120",
        "addr:city": "Lilongwe",
        "osm_id": 123456,
        "osm_type": "node",
    }
    base.update(props)
    return Feature(geometry=point(33.77, -13.98), properties=base)


def test_facility_from_point_feature() -> None:
    row = facility_from_feature(_osm_feature())
    assert row.name == "Bwaila Hospital"
    assert row.name_en == "Bwaila Hospital"
    assert row.operator_type == "government"
    assert row.capacity_persons == 120
    assert row.osm_id == 123456
    geometry = row.geometry.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True})
    assert str(geometry) == "ST_SetSRID(ST_MakePoint(33.77, -13.98), 4326)"


@pytest.mark.parametrize("capacity", ["about 50", None, True])
def test_unusable_capacity_is_dropped(capacity) -> None:
    assert facility_from_feature(_osm_feature(**{"capacity:persons": capacity})).capacity_persons is None


def test_polygon_features_are_not_loaded() -> None:
    polygon = Feature(geometry=Geometry(type="Polygon", coordinates=[[[33.0, -13.0], [33.1, -13.0], [33.0, -13.0]]]))
    assert facility_from_feature(polygon) is None
    assert facility_from_feature(Feature(geometry=None)) is None


def test_load_facilities_truncates_then_inserts() -> None:
    session = FakeSession(lambda _q: [])
    polygon = Feature(geometry=Geometry(type="Polygon", coordinates=[[[33.0, -13.0], [33.1, -13.0], [33.0, -13.0]]]))
    fc = FeatureCollection(features=[_osm_feature(), polygon, _osm_feature(name="Likuni")])

    assert load_facilities(session, fc) == 2
    assert "TRUNCATE TABLE health_facilities" in str(session.statements[0])
    assert [r.name for r in session.added] == ["Bwaila Hospital", "Likuni"]
    assert session.commits == 1


def test_load_facilities_rolls_back_on_failure() -> None:
    class Failing(FakeSession):
        def commit(self):
            raise IntegrityError("INSERT", {}, Exception("duplicate"))

    session = Failing(lambda _q: [])
    with pytest.raises(IntegrityError):
        load_facilities(session, FeatureCollection(features=[_osm_feature()]))
    assert session.rollbacks == 1


def test_geometry_column_is_a_postgis_point() -> None:
    column = HealthFacility.__table__.c.geometry
    assert isinstance(column.type, GeometryType)
    assert column.type.geometry_type == "POINT"
    assert column.type.srid == 4326
    assert not column.nullable

    ddl = str(CreateTable(HealthFacility.__table__).compile(dialect=postgresql.dialect())).lower()
    assert "geometry(point,4326) not null" in ddl


def test_filter_columns_are_indexed() -> None:
    names = {index.name for index in HealthFacility.__table__.indexes}
    assert {
        "idx_health_facilities_amenity",
        "idx_health_facilities_healthcare",
        "idx_health_facilities_operator",
    } <= names


def test_init_schema_enables_postgis_then_creates_tables(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(Base.metadata, "create_all", lambda bind: calls.append(bind))

    class Bound(FakeSession):
        def get_bind(self):
            return "engine"

    session = Bound(lambda _q: [])
    init_schema(session)

    assert [str(s) for s in session.statements] == ["CREATE EXTENSION IF NOT EXISTS postgis"]
    assert session.commits == 1
    assert calls == ["engine"]
