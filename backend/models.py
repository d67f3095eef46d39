from __future__ import annotations

from typing import Any, Optional
from datetime import datetime

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import BigInteger, DateTime, Index, Integer, String, Text
from sqlalchemy.sql import func
from geoalchemy2 import Geometry

class Base(DeclarativeBase):
    pass

class HealthFacility(Base):
    """One OSM health facility. The GiST index on ``geometry`` comes from GeoAlchemy2."""

    __tablename__ = "health_facilities"
    __table_args__ = (
        Index("idx_health_facilities_amenity", "amenity"),
        Index("idx_health_facilities_healthcare", "healthcare"),
        Index("idx_health_facilities_operator", "operator_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    osm_id: Mapped[Optional[int]] = mapped_column(BigInteger)                    # OSM element id
    osm_type: Mapped[Optional[str]] = mapped_column(String(50))                  # node / way / relation
    name: Mapped[Optional[str]] = mapped_column(String(255))
    name_en: Mapped[Optional[str]] = mapped_column(String(255))
    name_ny: Mapped[Optional[str]] = mapped_column(String(255))                  # Chichewa
    amenity: Mapped[Optional[str]] = mapped_column(String(100))
    building: Mapped[Optional[str]] = mapped_column(String(100))
    healthcare: Mapped[Optional[str]] = mapped_column(String(100))
    healthcare_speciality: Mapped[Optional[str]] = mapped_column(String(255))
    operator_type: Mapped[Optional[str]] = mapped_column(String(100))            # public / private / ...
    capacity_persons: Mapped[Optional[int]] = mapped_column(Integer)
    addr_full: Mapped[Optional[str]] = mapped_column(Text)
    addr_city: Mapped[Optional[str]] = mapped_column(String(100))
    source: Mapped[Optional[str]] = mapped_column(String(100))
    geometry: Mapped[Any] = mapped_column(Geometry(geometry_type="POINT", srid=4326), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
