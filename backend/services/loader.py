# backend/services/loader.py
"""Schema setup and one-shot bulk load of OSM health facilities from GeoJSON."""
import logging
from typing import Any, Optional

from sqlalchemy import func, text
from sqlalchemy.orm import Session

from models import Base, HealthFacility
from services.geojson import PROPERTY_KEYS, FeatureCollection

logger = logging.getLogger(__name__)

POSTGIS_EXTENSION_SQL = "CREATE EXTENSION IF NOT EXISTS postgis"


def _to_int(value: Any) -> Optional[int]:
    # OSM tags are strings; "50" is usable, "approx. 50" is not
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def init_schema(session: Session) -> None:
    """Enable PostGIS, then create the mapped tables and their indexes."""
    session.execute(text(POSTGIS_EXTENSION_SQL))
    session.commit()
    Base.metadata.create_all(bind=session.get_bind())


def facility_from_feature(feature) -> Optional[HealthFacility]:
    if feature.geometry is None or feature.geometry.type != "Point":
        return None
    lng, lat = feature.geometry.coordinates[:2]
    props = feature.properties
    values = {column: props.get(key) for column, key in PROPERTY_KEYS.items()}
    values["osm_id"] = _to_int(values["osm_id"])
    values["capacity_persons"] = _to_int(values["capacity_persons"])
    return HealthFacility(geometry=func.ST_SetSRID(func.ST_MakePoint(lng, lat), 4326), **values)


def load_facilities(session: Session, fc: FeatureCollection) -> int:
    """Replace the table contents with the Point features of ``fc``."""
    rows = []
    for feature in fc:
        row = facility_from_feature(feature)
        if row is None:
            logger.debug("skipping non-point feature %s", feature.properties.get("osm_id"))
            continue
        rows.append(row)

    try:
        session.execute(text("TRUNCATE TABLE health_facilities RESTART IDENTITY CASCADE"))
        session.add_all(rows)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("loaded %d of %d features", len(rows), len(fc))
    return len(rows)
