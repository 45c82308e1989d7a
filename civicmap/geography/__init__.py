"""Geography helpers for the complaint map.

Modules:
    bounds: Rectangular bounds and polygon bounding boxes
    projection: Web-Mercator pixel math for viewports and clustering
    regions: Point-in-territory lookup
"""

from .bounds import (
    LatLngBounds,
    bounds_of_complaints,
    first_ring_bounds,
    geometry_bounds,
)

from .projection import (
    latlng_to_pixel,
    meters_to_pixels,
    pixel_to_latlng,
    view_bounds,
    zoom_for_bounds,
)

from .regions import get_territory_from_coordinates

__all__ = [
    'LatLngBounds',
    'bounds_of_complaints',
    'first_ring_bounds',
    'geometry_bounds',
    'latlng_to_pixel',
    'meters_to_pixels',
    'pixel_to_latlng',
    'view_bounds',
    'zoom_for_bounds',
    'get_territory_from_coordinates',
]
