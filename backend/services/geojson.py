# backend/services/geojson.py
"""GeoJSON Feature / FeatureCollection types (RFC 7946, no crs member).

Shared by the query service (row -> Feature) and the map client
(dict -> Feature), so both sides agree on one shape.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# 對外契約：資料表欄位 -> GeoJSON properties key
PROPERTY_KEYS = {
    "name": "name",
    "name_en": "name:en",
    "name_ny": "name:ny",
    "amenity": "amenity",
    "building": "building",
    "healthcare": "healthcare",
    "healthcare_speciality": "healthcare:speciality",
    "operator_type": "operator:type",
    "capacity_persons": "capacity:persons",
    "addr_full": "addr:full",
    "addr_city": "addr:city",
    "source": "source",
    "osm_id": "osm_id",
    "osm_type": "osm_type",
}


@dataclass
class Geometry:
    type: str
    coordinates: Any  # [lng, lat] for Point, [[[lng, lat], ...], ...] for Polygon

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "coordinates": self.coordinates}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Geometry":
        return cls(type=data["type"], coordinates=data["coordinates"])


@dataclass
class Feature:
    geometry: Optional[Geometry]
    properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "Feature",
            "geometry": self.geometry.to_dict() if self.geometry else None,
            "properties": self.properties,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Feature":
        geom = data.get("geometry")
        return cls(
            geometry=Geometry.from_dict(geom) if geom else None,
            properties=dict(data.get("properties") or {}),
        )


@dataclass
class FeatureCollection:
    features: List[Feature] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self):
        return iter(self.features)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "FeatureCollection", "features": [f.to_dict() for f in self.features]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeatureCollection":
        if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
            raise ValueError("not a GeoJSON FeatureCollection")
        return cls(features=[Feature.from_dict(f) for f in data.get("features") or []])


def point(lng: float, lat: float) -> Geometry:
    return Geometry(type="Point", coordinates=[lng, lat])


def properties_from_row(row: Any) -> Dict[str, Any]:
    """Copy facility columns off a result row into the external property keys."""
    return {key: getattr(row, column) for column, key in PROPERTY_KEYS.items()}
