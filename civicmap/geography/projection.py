"""Web-Mercator (EPSG:3857) pixel math for the map surface.

Pixel coordinates follow the 256 px tile convention used by Leaflet: at zoom
z the world is 256 * 2**z pixels wide, origin at the north-west corner.
"""

import math
from typing import Tuple

import numpy as np

from civicmap.geography.bounds import LatLngBounds

TILE_SIZE = 256
MAX_LATITUDE = 85.0511287798
EARTH_HALF_CIRCUMFERENCE_M = 20037508.342789244


def world_size(zoom: float) -> float:
    return TILE_SIZE * (2.0 ** zoom)


def latlng_to_pixel(lat: float, lng: float, zoom: float) -> Tuple[float, float]:
    lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
    size = world_size(zoom)
    x = (lng + 180.0) / 360.0 * size
    sin_lat = math.sin(math.radians(lat))
    y = (0.5 - math.log((1 + sin_lat) / (1 - sin_lat)) / (4 * math.pi)) * size
    return x, y


def pixel_to_latlng(x: float, y: float, zoom: float) -> Tuple[float, float]:
    size = world_size(zoom)
    lng = x / size * 360.0 - 180.0
    n = math.pi - 2.0 * math.pi * y / size
    lat = math.degrees(math.atan(math.sinh(n)))
    return lat, lng


def meters_to_pixels(xy_m: np.ndarray, zoom: float) -> np.ndarray:
    """Convert EPSG:3857 metres (n, 2) to world pixel coordinates at ``zoom``."""
    size = world_size(zoom)
    scale = size / (2 * EARTH_HALF_CIRCUMFERENCE_M)
    px = (xy_m[:, 0] + EARTH_HALF_CIRCUMFERENCE_M) * scale
    py = (EARTH_HALF_CIRCUMFERENCE_M - xy_m[:, 1]) * scale
    return np.column_stack([px, py])


def view_bounds(center: Tuple[float, float], zoom: float, width_px: int, height_px: int) -> LatLngBounds:
    """Geographic bounds visible in a viewport of the given pixel size."""
    cx, cy = latlng_to_pixel(center[0], center[1], zoom)
    north, west = pixel_to_latlng(cx - width_px / 2.0, cy - height_px / 2.0, zoom)
    south, east = pixel_to_latlng(cx + width_px / 2.0, cy + height_px / 2.0, zoom)
    return LatLngBounds(south=south, west=west, north=north, east=east)


def zoom_for_bounds(
    bounds: LatLngBounds,
    width_px: int,
    height_px: int,
    padding: Tuple[int, int] = (0, 0),
    min_zoom: int = 0,
    max_zoom: int = 18,
) -> int:
    """Largest integer zoom at which ``bounds`` fits inside the padded viewport."""
    avail_w = max(1, width_px - 2 * padding[0])
    avail_h = max(1, height_px - 2 * padding[1])
    for zoom in range(max_zoom, min_zoom - 1, -1):
        x1, y1 = latlng_to_pixel(bounds.north, bounds.west, zoom)
        x2, y2 = latlng_to_pixel(bounds.south, bounds.east, zoom)
        if abs(x2 - x1) <= avail_w and abs(y2 - y1) <= avail_h:
            return zoom
    return min_zoom
