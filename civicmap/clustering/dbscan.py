"""DBSCAN marker clustering.

Runs scikit-learn DBSCAN on pixel coordinates with ``eps`` equal to the
cluster radius. With ``min_samples=1`` every point belongs to a cluster, so
isolated points come out as clusters of one.
"""

from typing import Optional

import numpy as np
from sklearn.cluster import DBSCAN

from civicmap.clustering.base import Clusterer


class DBSCANClustering(Clusterer):
    """DBSCAN clustering in pixel space.

    Args:
        radius_px: DBSCAN ``eps`` in pixels (default: 60).
        min_samples: Minimum neighbourhood size for a core point (default: 1).
            Points left as noise are given clusters of their own.
    """

    def __init__(self, radius_px: float = 60.0, min_samples: int = 1, **kwargs):
        super().__init__(radius_px=radius_px, min_samples=min_samples, **kwargs)
        self.min_samples = min_samples
        self.method = "dbscan"
        self.model: Optional[DBSCAN] = None

    def _fit_pixels(self, pixels: np.ndarray) -> np.ndarray:
        self.model = DBSCAN(eps=self.radius_px, min_samples=self.min_samples, metric="euclidean")
        labels = self.model.fit_predict(pixels)
        noise = labels < 0
        if noise.any():
            start = labels.max() + 1 if (~noise).any() else 0
            labels[noise] = np.arange(start, start + noise.sum())
        return labels
