from __future__ import annotations

import json
from typing import Any

import geopandas as gpd
import pandas as pd
from shapely.geometry import box

STATUS_COLORS = {
    "Approved": "#32C8A2",
    "Refused": "#FF3B30",
    "Pending": "#007AFF",
    "Withdrawn": "#999999",
}
DEFAULT_COLOR = "#999999"

MARKER_COLUMNS = [
    "id",
    "reference",
    "name",
    "address",
    "architect",
    "developer",
    "borough",
    "status",
    "materials",
    "received_date",
    "decision_date",
]


def to_markers(frame: pd.DataFrame) -> gpd.GeoDataFrame:
    """Point features for the map, one per located application, coloured by status."""
    located = frame.dropna(subset=["latitude", "longitude"])
    markers = gpd.GeoDataFrame(
        located[MARKER_COLUMNS].copy(),
        geometry=gpd.points_from_xy(located["longitude"], located["latitude"]),
        crs="EPSG:4326",
    )
    markers["marker_color"] = markers["status"].map(STATUS_COLORS).fillna(DEFAULT_COLOR)
    return markers


def filter_bbox(
    markers: gpd.GeoDataFrame,
    min_lng: float | None,
    min_lat: float | None,
    max_lng: float | None,
    max_lat: float | None,
) -> gpd.GeoDataFrame:
    if None in {min_lng, min_lat, max_lng, max_lat}:
        return markers
    bbox_geom = box(min_lng, min_lat, max_lng, max_lat)
    return markers.loc[markers.geometry.intersects(bbox_geom)]


def to_geojson(markers: gpd.GeoDataFrame) -> dict[str, Any]:
    out = markers.copy()
    out["materials"] = out["materials"].map(list)
    out["received_date"] = out["received_date"].dt.strftime("%Y-%m-%d")
    out["decision_date"] = out["decision_date"].dt.strftime("%Y-%m-%d")
    return json.loads(out.to_json())
