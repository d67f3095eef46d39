# backend/client/map_view.py
import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import requests

from client.filters import FilterCriteria, apply_filters
from client.nearest import LatLng, NearestResult, find_nearest
from services.geojson import Feature, FeatureCollection

logger = logging.getLogger(__name__)

FACILITY_API_URL = os.getenv("FACILITY_API_URL", "http://localhost:5000")
FETCH_TIMEOUT = 10
LOCATE_TIMEOUT = 10.0

Locator = Callable[[], LatLng]


def _has(feature: Feature, value: str) -> bool:
    p = feature.properties
    return p.get("amenity") == value or p.get("healthcare") == value


class MapClient:
    """In-memory view over the facility FeatureCollection.

    The collection is fetched once; filtering, search and nearest lookup
    all run locally against ``criteria``.
    """

    def __init__(self, base_url: str = FACILITY_API_URL, session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = session or requests.Session()
        self.points = FeatureCollection()
        self.polygons = FeatureCollection()
        self.criteria = FilterCriteria()
        self.loading = False
        self.error: Optional[str] = None
        self.selected: Optional[Feature] = None
        self.distance_to_user_km: Optional[float] = None
        self.user_location: Optional[LatLng] = None

    def load(self) -> bool:
        self.loading = True
        self.error = None
        try:
            r = self.http.get(f"{self.base_url}/facilities", timeout=FETCH_TIMEOUT)
            r.raise_for_status()
            self.points = FeatureCollection.from_dict(r.json())
        except (requests.RequestException, ValueError) as e:
            logger.error("loading facilities failed: %s", e)
            self.error = "Failed to fetch facilities from database"
            return False
        finally:
            self.loading = False
        logger.info("loaded %d facilities", len(self.points))
        return True

    def load_polygons(self, source: Union[str, Path, Dict[str, Any]]) -> None:
        """Building footprints from a GeoJSON file (or an already parsed dict)."""
        if isinstance(source, dict):
            data = source
        else:
            with open(source, "r", encoding="utf-8") as f:
                data = json.load(f)
        self.polygons = FeatureCollection.from_dict(data)

    def all_features(self) -> List[Feature]:
        return [*self.points, *self.polygons]

    def visible_features(self) -> List[Feature]:
        return apply_filters(self.all_features(), self.criteria)

    def visible_points(self) -> List[Feature]:
        return apply_filters(self.points, self.criteria)

    def visible_polygons(self) -> List[Feature]:
        return apply_filters(self.polygons, self.criteria)

    def facility_types(self) -> List[str]:
        values = set()
        for f in self.all_features():
            for key in ("amenity", "healthcare"):
                if f.properties.get(key):
                    values.add(f.properties[key])
        return sorted(values)

    def districts(self) -> List[str]:
        return sorted({f.properties["addr:city"] for f in self.all_features() if f.properties.get("addr:city")})

    def stats(self) -> Dict[str, int]:
        features = self.all_features()
        return {
            "total": len(features),
            "hospitals": sum(1 for f in features if _has(f, "hospital")),
            "clinics": sum(1 for f in features if _has(f, "clinic")),
            "pharmacies": sum(1 for f in features if _has(f, "pharmacy")),
        }

    def select(self, feature: Feature) -> None:
        self.selected = feature
        self.distance_to_user_km = None

    def locate(self, locator: Locator, timeout: float = LOCATE_TIMEOUT) -> Optional[LatLng]:
        pool = ThreadPoolExecutor(max_workers=1)
        future = pool.submit(locator)
        try:
            return future.result(timeout=timeout)
        except FutureTimeout:
            logger.warning("geolocation timed out after %.1fs", timeout)
            return None
        except Exception as e:
            logger.warning("geolocation failed: %s", e)
            return None
        finally:
            # 逾時的定位結果直接丟棄，不等待
            pool.shutdown(wait=False)

    def find_nearest(self, locator: Locator, timeout: float = LOCATE_TIMEOUT) -> Optional[NearestResult]:
        location = self.locate(locator, timeout)
        if location is None:
            return None
        result = find_nearest(self.visible_features(), location)
        if result is None:
            return None
        self.user_location = location
        self.selected = result.feature
        self.distance_to_user_km = result.distance_m / 1000
        return result
