"""Marker clustering for the complaint map.

Provides a consistent interface for the greedy grid and DBSCAN algorithms,
both working in Web-Mercator pixel space at the current zoom.
"""

from civicmap.clustering.base import Cluster, Clusterer
from civicmap.clustering.dbscan import DBSCANClustering
from civicmap.clustering.greedy import GreedyClustering
from civicmap.clustering.utils import (
    to_pixel_space,
    validate_coordinates,
)


def make_clusterer(name: str, **kwargs) -> Clusterer:
    """Factory function to create clusterer instances.

    Args:
        name: Algorithm name ("greedy" or "dbscan").
        **kwargs: Algorithm-specific parameters.

    Returns:
        Clusterer instance.

    Raises:
        ValueError: If algorithm name is unknown.

    Examples:
        >>> clusterer = make_clusterer("greedy", radius_px=60)
        >>> clusterer = make_clusterer("dbscan", radius_px=80, min_samples=2)
    """
    if name == "greedy":
        return GreedyClustering(**kwargs)
    elif name == "dbscan":
        return DBSCANClustering(**kwargs)
    else:
        raise ValueError(f"Unknown algorithm: {name}. Must be one of: greedy, dbscan")


__all__ = [
    "Cluster",
    "Clusterer",
    "GreedyClustering",
    "DBSCANClustering",
    "make_clusterer",
    "to_pixel_space",
    "validate_coordinates",
]
