"""
Territory lookup for coordinates.

Point-in-polygon classification of a location against the UC or Town
boundary features held by the territory store.
"""

from typing import Iterable, Optional

from shapely.geometry import Point, shape

from civicmap.geography.bounds import geometry_bounds
from civicmap.models import TerritoryFeature


def get_territory_from_coordinates(
    lat: float, lng: float, features: Iterable[TerritoryFeature]
) -> Optional[TerritoryFeature]:
    """
    Determine which territory a location falls into.

    Args:
        lat (float): Latitude of the location in decimal degrees
        lng (float): Longitude of the location in decimal degrees
        features (Iterable[TerritoryFeature]): Boundary features to test

    Returns:
        Optional[TerritoryFeature]: The first feature containing the point
        (boundary included), or None

    Algorithm:
        1. Skip features whose bounding box does not contain the point
        2. Test the remaining polygons with shapely ``covers``
        3. Return the first match

    Note:
        Linear in the number of features. Fine for a city's few hundred UCs;
        there is no spatial index.
    """
    point = Point(lng, lat)
    for feature in features:
        if not feature.has_geometry:
            continue
        box = geometry_bounds(feature.geometry)
        if box is None or not box.contains(lat, lng):
            continue
        try:
            polygon = shape(feature.geometry)
        except (ValueError, TypeError, AttributeError, IndexError):
            continue
        if polygon.covers(point):
            return feature
    return None
