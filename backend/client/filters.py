# backend/client/filters.py
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from services.geojson import Feature

ALL = "all"


@dataclass
class FilterCriteria:
    facility_type: str = ALL
    operator: str = ALL      # all / public / private
    district: str = ALL
    search: str = ""
    show_coverage: bool = False


def _contains(value: Any, term: str) -> bool:
    return isinstance(value, str) and term in value.lower()


def matches(props: Dict[str, Any], criteria: FilterCriteria) -> bool:
    """True when a feature's properties pass every active selector.

    Anything that is not explicitly ``private`` counts as public, including
    a missing ``operator:type``.
    """
    c = criteria
    type_ok = c.facility_type == ALL or c.facility_type in (props.get("amenity"), props.get("healthcare"))

    operator_type = props.get("operator:type")
    operator_ok = (
        c.operator == ALL
        or (c.operator == "public" and operator_type != "private")
        or (c.operator == "private" and operator_type == "private")
    )

    district_ok = c.district == ALL or props.get("addr:city") == c.district

    term = c.search.lower()
    search_ok = not term or _contains(props.get("name"), term) or _contains(props.get("addr:city"), term)

    return type_ok and operator_ok and district_ok and search_ok


def apply_filters(features: Iterable[Feature], criteria: FilterCriteria) -> List[Feature]:
    return [f for f in features if matches(f.properties, criteria)]
