# backend/client/render.py
import html

import folium
from folium.plugins import MarkerCluster

from client.map_view import MapClient

MALAWI_CENTER = [-13.9626, 33.7741]
COVERAGE_RADIUS_M = 5000

BASE_MAPS = {
    "standard": {
        "tiles": "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
        "attr": "&copy; OpenStreetMap contributors",
    },
    "satellite": {
        "tiles": "https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}",
        "attr": "Tiles &copy; Esri",
    },
    "dark": {
        "tiles": "https://{s}.basemaps.cartocdn.com/dark_all/{z}/{x}/{y}{r}.png",
        "attr": "&copy; OpenStreetMap &copy; CARTO",
        "subdomains": "abcd",
    },
}

CATEGORY_COLORS = (
    ("hospital", "#dc2626"),
    ("clinic", "#2563eb"),
    ("pharmacy", "#16a34a"),
    ("dentist", "#9333ea"),
)
DEFAULT_COLOR = "#6b7280"


def icon_color(amenity, healthcare) -> str:
    for category, color in CATEGORY_COLORS:
        if amenity == category or healthcare == category:
            return color
    return DEFAULT_COLOR


def _marker_icon(color: str) -> folium.DivIcon:
    return folium.DivIcon(
        class_name="custom-marker",
        html=(
            f'<div style="background-color: {color}; width: 24px; height: 24px; border-radius: 50%; '
            'border: 2px solid white; box-shadow: 0 2px 4px rgba(0,0,0,0.3);"></div>'
        ),
        icon_size=(24, 24),
        icon_anchor=(12, 12),
    )


def _coverage(location, color: str) -> folium.Circle:
    return folium.Circle(
        location=location,
        radius=COVERAGE_RADIUS_M,
        color=color,
        weight=1,
        fill=True,
        fill_opacity=0.1,
        interactive=False,
    )


def _popup(name, kind) -> str:
    # OSM tags are free text
    return f"<b>{html.escape(name or 'Unnamed')}</b><br>{html.escape(str(kind or ''))}"


def render_map(client: MapClient, base_map: str = "standard") -> folium.Map:
    if base_map not in BASE_MAPS:
        raise ValueError(f"unknown base map {base_map!r}; expected one of {sorted(BASE_MAPS)}")

    m = folium.Map(location=MALAWI_CENTER, zoom_start=7, tiles=None, zoom_control="topright")
    folium.TileLayer(name=base_map, max_zoom=19, **BASE_MAPS[base_map]).add_to(m)

    show_coverage = client.criteria.show_coverage
    cluster = MarkerCluster().add_to(m)
    for f in client.visible_points():
        p = f.properties
        lng, lat = f.geometry.coordinates[:2]
        color = icon_color(p.get("amenity"), p.get("healthcare"))
        folium.Marker(
            location=[lat, lng],
            icon=_marker_icon(color),
            popup=_popup(p.get("name"), p.get("amenity") or p.get("healthcare")),
        ).add_to(cluster)
        if show_coverage:
            _coverage([lat, lng], color).add_to(cluster)

    for f in client.visible_polygons():
        if f.geometry is None or f.geometry.type != "Polygon" or not f.geometry.coordinates:
            continue
        p = f.properties
        color = icon_color(p.get("amenity"), p.get("healthcare"))
        ring = [[c[1], c[0]] for c in f.geometry.coordinates[0]]
        polygon = folium.Polygon(
            locations=ring,
            color=color,
            fill=True,
            fill_color=color,
            fill_opacity=0.4,
            weight=2,
            popup=_popup(p.get("name"), "Building Footprint"),
        ).add_to(m)
        if show_coverage:
            bounds = polygon.get_bounds()
            center = [(bounds[0][0] + bounds[1][0]) / 2, (bounds[0][1] + bounds[1][1]) / 2]
            _coverage(center, color).add_to(m)

    if client.user_location is not None:
        folium.Marker(
            location=list(client.user_location),
            icon=folium.DivIcon(
                class_name="user-loc",
                html='<div style="background:blue;width:12px;height:12px;border-radius:50%;border:2px solid white;"></div>',
            ),
            popup="You",
        ).add_to(m)

    return m
