"""Base clustering interface for map markers.

Defines the abstract base class Clusterer that the marker clustering
algorithms implement. Clustering runs in Web-Mercator pixel space at a
given zoom, so the same radius in pixels groups more points as the map
zooms out.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from civicmap.clustering.utils import (
    to_pixel_space,
    validate_coordinates,
)


@dataclass(frozen=True)
class Cluster:
    """A group of markers shown as one cluster icon.

    Attributes:
        lat: Mean latitude of the members.
        lng: Mean longitude of the members.
        members: Index labels of the member rows in the fitted DataFrame.
    """

    lat: float
    lng: float
    members: Tuple[Any, ...]

    @property
    def count(self) -> int:
        return len(self.members)


class Clusterer(ABC):
    """Abstract base class for marker clustering algorithms.

    Attributes:
        radius_px: Maximum pixel distance between a point and its cluster.
        params: Dictionary of algorithm-specific parameters.
        labels_: Cluster label per fitted row (populated by fit()).
        zoom: Zoom level of the last fit.
        n_samples: Number of rows kept after coordinate validation.
    """

    def __init__(self, radius_px: float = 60.0, **params):
        self.radius_px = float(radius_px)
        self.params = dict(params, radius_px=self.radius_px)
        self.labels_: Optional[np.ndarray] = None
        self.zoom: Optional[float] = None
        self.n_samples: Optional[int] = None
        self.method: Optional[str] = None
        self._df: Optional[pd.DataFrame] = None

    def fit(
        self,
        df: pd.DataFrame,
        zoom: float,
        x_col: str = "lng",
        y_col: str = "lat"
    ) -> "Clusterer":
        """Cluster the rows of ``df`` at ``zoom`` and populate self.labels_.

        Rows with missing or out-of-range coordinates are dropped first.

        Args:
            df: DataFrame with coordinate columns.
            zoom: Map zoom level used for pixel projection.
            x_col: Name of longitude column (default: "lng").
            y_col: Name of latitude column (default: "lat").

        Returns:
            self for method chaining.
        """
        df = validate_coordinates(df, x_col, y_col)
        self.zoom = zoom
        self._df = df.rename(columns={x_col: "lng", y_col: "lat"})
        pixels = to_pixel_space(df, zoom, x_col, y_col)
        self.labels_ = self._fit_pixels(pixels) if len(pixels) else np.empty(0, dtype=int)
        self.n_samples = len(self.labels_)
        return self

    @abstractmethod
    def _fit_pixels(self, pixels: np.ndarray) -> np.ndarray:
        """Return one non-negative cluster label per pixel row."""

    def labels(self) -> np.ndarray:
        """Return stored cluster labels.

        Raises:
            RuntimeError: If model has not been fitted.
        """
        if self.labels_ is None:
            raise RuntimeError("Model not fitted. Run .fit() first.")
        return self.labels_

    def clusters(self) -> List[Cluster]:
        """Group the fitted rows by label, in order of first appearance.

        Raises:
            RuntimeError: If model has not been fitted.
        """
        labels = self.labels()
        groups: Dict[int, List[Any]] = {}
        for index, label in zip(self._df.index, labels):
            groups.setdefault(int(label), []).append(index)
        result = []
        for members in groups.values():
            rows = self._df.loc[members]
            result.append(Cluster(
                lat=float(rows["lat"].mean()),
                lng=float(rows["lng"].mean()),
                members=tuple(members),
            ))
        return result
