"""Rectangular geographic bounds and polygon bounding boxes."""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from shapely.geometry import shape


@dataclass(frozen=True)
class LatLngBounds:
    """Axis-aligned bounds in decimal degrees (south-west / north-east corners)."""

    south: float
    west: float
    north: float
    east: float

    @classmethod
    def from_corners(cls, sw: Sequence[float], ne: Sequence[float]) -> "LatLngBounds":
        """Build bounds from Leaflet-style ``[[lat, lng], [lat, lng]]`` corners."""
        return cls(south=float(sw[0]), west=float(sw[1]), north=float(ne[0]), east=float(ne[1]))

    @classmethod
    def from_points(cls, points: Iterable[Tuple[float, float]]) -> Optional["LatLngBounds"]:
        """Smallest bounds containing every (lat, lng) point, or None if empty."""
        lats: List[float] = []
        lngs: List[float] = []
        for lat, lng in points:
            lats.append(lat)
            lngs.append(lng)
        if not lats:
            return None
        return cls(min(lats), min(lngs), max(lats), max(lngs))

    def contains(self, lat: float, lng: float) -> bool:
        """True if (lat, lng) lies inside or on the edge of the bounds."""
        if lat is None or lng is None or math.isnan(lat) or math.isnan(lng):
            return False
        return self.south <= lat <= self.north and self.west <= lng <= self.east

    def intersects(self, other: "LatLngBounds") -> bool:
        return not (
            other.west > self.east or other.east < self.west
            or other.south > self.north or other.north < self.south
        )

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.south + self.north) / 2.0, (self.west + self.east) / 2.0)

    def as_corners(self) -> List[List[float]]:
        return [[self.south, self.west], [self.north, self.east]]

    def to_filter_params(self) -> Dict[str, float]:
        """Query parameters scoping a complaint request to these bounds."""
        return {
            "sw_lat": self.south,
            "sw_lng": self.west,
            "ne_lat": self.north,
            "ne_lng": self.east,
        }


def _ring_bounds(ring: Sequence[Sequence[float]]) -> Optional[LatLngBounds]:
    points = [(float(c[1]), float(c[0])) for c in ring if isinstance(c, (list, tuple)) and len(c) >= 2]
    return LatLngBounds.from_points(points)


def first_ring_bounds(geometry: Optional[Mapping[str, Any]]) -> Optional[LatLngBounds]:
    """Bounds of the first linear ring of a Polygon or MultiPolygon.

    Holes, further rings and further polygons are ignored, so the box can be
    smaller than the shape. Use geometry_bounds() for the full extent.

    Args:
        geometry: GeoJSON geometry mapping.

    Returns:
        LatLngBounds, or None if the geometry has no usable ring.
    """
    if not geometry:
        return None
    coords = geometry.get("coordinates")
    if not coords:
        return None
    if geometry.get("type") == "MultiPolygon":
        coords = coords[0] if coords else None
        if not coords:
            return None
    return _ring_bounds(coords[0])


def geometry_bounds(geometry: Optional[Mapping[str, Any]]) -> Optional[LatLngBounds]:
    """Bounds over every ring of every polygon of a GeoJSON geometry."""
    if not geometry or not geometry.get("coordinates"):
        return None
    try:
        geom = shape(geometry)
    except (ValueError, TypeError, AttributeError, IndexError):
        return None
    if geom.is_empty:
        return None
    minx, miny, maxx, maxy = geom.bounds
    return LatLngBounds(south=miny, west=minx, north=maxy, east=maxx)


def bounds_of_complaints(complaints) -> Optional[LatLngBounds]:
    """Bounds containing every complaint with valid coordinates."""
    return LatLngBounds.from_points(c.latlng for c in complaints if c.has_valid_coordinates)
