# backend/client/nearest.py
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from services.geojson import Feature

EARTH_RADIUS_METERS = 6_371_000

LatLng = Tuple[float, float]


@dataclass(frozen=True)
class NearestResult:
    feature: Feature
    distance_m: float


def haversine_distance_meters(start: LatLng, end: LatLng) -> float:
    start_lat = math.radians(start[0])
    end_lat = math.radians(end[0])
    delta_lat = math.radians(end[0] - start[0])
    delta_lng = math.radians(end[1] - start[1])

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(start_lat) * math.cos(end_lat) * math.sin(delta_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def anchor_point(feature: Feature) -> Optional[LatLng]:
    """(lat, lng) used to stand in for a feature when measuring distance.

    Polygons use the first vertex of their outer ring, not the nearest
    edge or the centroid, so a large footprint can rank slightly off.
    """
    geom = feature.geometry
    if geom is None:
        return None
    if geom.type == "Point":
        lng, lat = geom.coordinates[:2]
        return lat, lng
    if geom.type == "Polygon" and geom.coordinates and geom.coordinates[0]:
        lng, lat = geom.coordinates[0][0][:2]
        return lat, lng
    return None


def find_nearest(candidates: Iterable[Feature], reference: LatLng) -> Optional[NearestResult]:
    best: Optional[NearestResult] = None
    for feature in candidates:
        anchor = anchor_point(feature)
        if anchor is None:
            continue
        dist = haversine_distance_meters(reference, anchor)
        # strict < keeps the first of equally distant candidates
        if best is None or dist < best.distance_m:
            best = NearestResult(feature=feature, distance_m=dist)
    return best
