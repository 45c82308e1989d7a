"""Greedy grid clustering in the style of Leaflet.markercluster.

Points are visited in input order. Each point joins the nearest existing
cluster whose anchor lies within the radius, otherwise it anchors a new
cluster. A grid with cell size equal to the radius limits the search to the
3x3 neighbourhood of the point's cell.
"""

from typing import Dict, List, Tuple

import numpy as np

from civicmap.clustering.base import Clusterer


class GreedyClustering(Clusterer):
    """Anchor-based greedy clustering.

    Args:
        radius_px: Maximum pixel distance from a point to its cluster anchor.
    """

    def __init__(self, radius_px: float = 60.0, **kwargs):
        super().__init__(radius_px=radius_px, **kwargs)
        self.method = "greedy"

    def _fit_pixels(self, pixels: np.ndarray) -> np.ndarray:
        radius = self.radius_px
        radius_sq = radius * radius
        grid: Dict[Tuple[int, int], List[int]] = {}
        anchors: List[Tuple[float, float]] = []
        labels = np.empty(len(pixels), dtype=int)

        for i, (x, y) in enumerate(pixels):
            cx, cy = int(np.floor(x / radius)), int(np.floor(y / radius))
            best, best_dist = -1, radius_sq
            for gx in (cx - 1, cx, cx + 1):
                for gy in (cy - 1, cy, cy + 1):
                    for label in grid.get((gx, gy), ()):
                        ax, ay = anchors[label]
                        dist = (ax - x) ** 2 + (ay - y) ** 2
                        if dist < best_dist or (best < 0 and dist == best_dist):
                            best, best_dist = label, dist
            if best < 0:
                best = len(anchors)
                anchors.append((x, y))
                grid.setdefault((cx, cy), []).append(best)
            labels[i] = best
        return labels
