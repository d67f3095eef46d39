# backend/services/facility_service.py
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import Select, case, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import HealthFacility
from services.geojson import Feature, FeatureCollection, point, properties_from_row

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_KM = 10.0
KNOWN_CATEGORIES = {
    "hospitals": "hospital",
    "clinics": "clinic",
    "pharmacies": "pharmacy",
    "dentists": "dentist",
}

_COLUMNS = (
    HealthFacility.id,
    HealthFacility.osm_id,
    HealthFacility.osm_type,
    HealthFacility.name,
    HealthFacility.name_en,
    HealthFacility.name_ny,
    HealthFacility.amenity,
    HealthFacility.building,
    HealthFacility.healthcare,
    HealthFacility.healthcare_speciality,
    HealthFacility.operator_type,
    HealthFacility.capacity_persons,
    HealthFacility.addr_full,
    HealthFacility.addr_city,
    HealthFacility.source,
    func.ST_X(HealthFacility.geometry).label("longitude"),
    func.ST_Y(HealthFacility.geometry).label("latitude"),
)


class FacilityRetrievalError(Exception):
    """Store-level failure; ``message`` is safe to show to API callers."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class FacilityFilters:
    amenity: Optional[str] = None
    operator_type: Optional[str] = None
    healthcare: Optional[str] = None

    def apply(self, q: Select) -> Select:
        # 依序附加 AND 條件；參數由 SQLAlchemy 綁定
        for column, value in (
            (HealthFacility.amenity, self.amenity),
            (HealthFacility.operator_type, self.operator_type),
            (HealthFacility.healthcare, self.healthcare),
        ):
            if value:
                q = q.where(column == value)
        return q


def _row_to_feature(row, include_distance: bool = False) -> Feature:
    props = properties_from_row(row)
    if include_distance:
        props["distance_km"] = round(float(row.distance_m) / 1000, 2)
    return Feature(geometry=point(row.longitude, row.latitude), properties=props)


def build_list_query(filters: FacilityFilters) -> Select:
    q = select(*_COLUMNS)
    return filters.apply(q).order_by(HealthFacility.name.asc())


def build_nearby_query(lat: float, lng: float, radius_km: float) -> Select:
    pt = func.Geography(func.ST_SetSRID(func.ST_MakePoint(lng, lat), 4326))
    geog = func.Geography(HealthFacility.geometry)
    # DWithin 與 Distance 用同一組 geography 表示式，邊界才一致
    distance_m = func.ST_Distance(geog, pt)
    return (
        select(*_COLUMNS, distance_m.label("distance_m"))
        .where(func.ST_DWithin(geog, pt, radius_km * 1000))
        .order_by(distance_m)
    )


def list_facilities(session: Session, filters: Optional[FacilityFilters] = None) -> FeatureCollection:
    q = build_list_query(filters or FacilityFilters())
    try:
        rows = session.execute(q).all()
    except SQLAlchemyError as e:
        logger.exception("listing facilities failed")
        raise FacilityRetrievalError("Failed to fetch facilities") from e
    return FeatureCollection(features=[_row_to_feature(r) for r in rows])


def nearby_facilities(
    session: Session, lat: float, lng: float, radius_km: float = DEFAULT_RADIUS_KM
) -> FeatureCollection:
    """Facilities within ``radius_km`` of (lat, lng), nearest first.

    Distances are geodesic (PostGIS geography), each feature carries
    ``distance_km`` rounded to two decimals.
    """
    q = build_nearby_query(lat, lng, radius_km)
    try:
        rows = session.execute(q).all()
    except SQLAlchemyError as e:
        logger.exception("nearby query failed lat=%s lng=%s radius_km=%s", lat, lng, radius_km)
        raise FacilityRetrievalError("Failed to fetch nearby facilities") from e
    return FeatureCollection(features=[_row_to_feature(r, include_distance=True) for r in rows])


def _summary(session: Session) -> Dict[str, int]:
    q = select(
        func.count().label("total_facilities"),
        func.count(HealthFacility.amenity.distinct()).label("amenity_types"),
        *[
            func.count(case((HealthFacility.amenity == amenity, 1))).label(key)
            for key, amenity in KNOWN_CATEGORIES.items()
        ],
    ).select_from(HealthFacility)
    row = session.execute(q).one()
    return {k: int(v) for k, v in row._mapping.items()}


def _breakdown(session: Session, column) -> List[Dict[str, Any]]:
    count = func.count().label("count")
    q = (
        select(column, count)
        .where(column.isnot(None))
        .group_by(column)
        .order_by(desc(count))
    )
    return [{column.key: value, "count": int(n)} for value, n in session.execute(q).all()]


def _in_session(database, fn, *args):
    with database.session() as s:
        return fn(s, *args)


def facility_stats(database) -> Dict[str, Any]:
    """Summary counts plus per-amenity and per-operator breakdowns.

    The three aggregations are independent reads, so each runs on its own
    session; they are not required to see the same snapshot.
    """
    try:
        with ThreadPoolExecutor(max_workers=3) as pool:
            summary = pool.submit(_in_session, database, _summary)
            by_amenity = pool.submit(_in_session, database, _breakdown, HealthFacility.amenity)
            by_operator = pool.submit(_in_session, database, _breakdown, HealthFacility.operator_type)
            return {
                "summary": summary.result(),
                "by_amenity": by_amenity.result(),
                "by_operator": by_operator.result(),
            }
    except SQLAlchemyError as e:
        logger.exception("facility statistics failed")
        raise FacilityRetrievalError("Failed to fetch statistics") from e
