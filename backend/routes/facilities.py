# backend/routes/facilities.py
import json
import math

from flask import Blueprint, Response, current_app, jsonify, request
from werkzeug.exceptions import BadRequest

from services.facility_service import (
    DEFAULT_RADIUS_KM,
    FacilityFilters,
    facility_stats,
    list_facilities,
    nearby_facilities,
)

bp = Blueprint("facilities", __name__)


def _database():
    return current_app.extensions["database"]


def _geojson(fc) -> Response:
    return Response(json.dumps(fc.to_dict(), ensure_ascii=False), mimetype="application/geo+json")


@bp.get("/facilities")
def get_facilities():
    """所有設施，可依 amenity / operator_type / healthcare 篩選 (GeoJSON)"""
    filters = FacilityFilters(
        amenity=request.args.get("amenity") or None,
        operator_type=request.args.get("operator_type") or None,
        healthcare=request.args.get("healthcare") or None,
    )
    with _database().session() as s:
        fc = list_facilities(s, filters)
    return _geojson(fc)


@bp.get("/facilities/nearby")
def get_nearby_facilities():
    # 0 視同未提供：(0, 0) 不是有效的查詢點
    try:
        lat = float(request.args.get("lat", 0))
        lng = float(request.args.get("lng", 0))
    except ValueError:
        raise BadRequest("Latitude and longitude are required")
    if not lat or not lng or not (math.isfinite(lat) and math.isfinite(lng)):
        raise BadRequest("Latitude and longitude are required")

    try:
        radius_km = float(request.args.get("radius", DEFAULT_RADIUS_KM))
        if not math.isfinite(radius_km) or radius_km <= 0:
            raise ValueError()
    except ValueError:
        raise BadRequest("invalid radius (km)")

    with _database().session() as s:
        fc = nearby_facilities(s, lat=lat, lng=lng, radius_km=radius_km)
    return _geojson(fc)


@bp.get("/facilities/stats")
def get_facility_stats():
    return jsonify(facility_stats(_database())), 200
