"""Complaint marker renderer with zoom-aware clustering."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from civicmap.clustering import make_clusterer
from civicmap.models import Complaint
from civicmap.render.styles import cluster_icon, marker_icon
from civicmap.render.surface import MapSurface, Overlay

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkerSpec:
    complaint: Complaint
    icon: Dict[str, Any]
    selected: bool = False

    @property
    def location(self) -> Tuple[float, float]:
        return (self.complaint.lat, self.complaint.lng)


@dataclass(frozen=True)
class ClusterSpec:
    lat: float
    lng: float
    complaints: Tuple[Complaint, ...]
    icon: Dict[str, Any]

    @property
    def count(self) -> int:
        return len(self.complaints)


@dataclass(frozen=True)
class MarkerLayer:
    """Payload of the marker overlay.

    Attributes:
        complaints: Every drawable complaint, in input order.
        markers: Individually drawn markers.
        clusters: Cluster icons (empty when clustering is inactive).
        clustered: Whether clustering was applied.
    """

    complaints: Tuple[Complaint, ...]
    markers: Tuple[MarkerSpec, ...]
    clusters: Tuple[ClusterSpec, ...]
    clustered: bool


class MarkerRenderer:
    """Draws complaints as category pins, grouped into clusters when crowded.

    Clustering applies when it is enabled, more than ``min_points`` complaints
    are drawable and the zoom is below ``disable_at_zoom``.

    Args:
        surface: Target map surface.
        method: Clustering algorithm name (``greedy`` or ``dbscan``).
        radius_px: Cluster radius in pixels.
        min_points: Largest marker count drawn without clustering.
        disable_at_zoom: Zoom from which markers are never clustered.
        on_select: Called with the complaint when a marker is clicked.
    """

    def __init__(
        self,
        surface: MapSurface,
        method: str = "greedy",
        radius_px: float = 60,
        min_points: int = 10,
        disable_at_zoom: int = 16,
        on_select: Optional[Callable[[Complaint], None]] = None,
    ):
        self.surface = surface
        self.method = method
        self.radius_px = radius_px
        self.min_points = min_points
        self.disable_at_zoom = disable_at_zoom
        self.on_select = on_select
        self.selected_id: Optional[str] = None
        self._complaints: Tuple[Complaint, ...] = ()
        self._visible = True
        self._clustering = True
        self._handle: Optional[Overlay] = None

    @classmethod
    def from_config(cls, surface: MapSurface, config: Dict[str, Any], on_select=None) -> "MarkerRenderer":
        c = config.get("clustering", {})
        return cls(
            surface,
            method=c.get("method", "greedy"),
            radius_px=c.get("radius_px", 60),
            min_points=c.get("min_points", 10),
            disable_at_zoom=c.get("disable_at_zoom", 16),
            on_select=on_select,
        )

    @property
    def overlay(self) -> Optional[Overlay]:
        return self._handle

    @property
    def layer(self) -> Optional[MarkerLayer]:
        return self._handle.data if self._handle is not None else None

    def render(
        self,
        complaints: Sequence[Complaint],
        visible: bool = True,
        clustering: bool = True,
        selected_id: Optional[str] = None,
    ) -> None:
        self._complaints = tuple(complaints)
        self._visible = visible
        self._clustering = clustering
        self.selected_id = selected_id
        self.redraw()

    def set_visible(self, visible: bool) -> None:
        if visible != self._visible:
            self._visible = visible
            self.redraw()

    def redraw(self) -> None:
        """Replace the overlay from the current complaints, flags and zoom."""
        self.clear()
        if not self._visible:
            return
        drawable = tuple(c for c in self._complaints if c.has_valid_coordinates)
        if not drawable:
            return
        if self.should_cluster(len(drawable)):
            layer = self._clustered_layer(drawable)
        else:
            layer = MarkerLayer(drawable, tuple(self._marker(c) for c in drawable), (), False)
        self._handle = self.surface.add_overlay(
            "markers",
            layer,
            name="Complaints",
            options={
                "maxClusterRadius": self.radius_px,
                "disableClusteringAtZoom": self.disable_at_zoom,
                "clustered": layer.clustered,
            },
        )

    def should_cluster(self, count: int) -> bool:
        return (
            self._clustering
            and count > self.min_points
            and self.surface.zoom < self.disable_at_zoom
        )

    def _marker(self, complaint: Complaint) -> MarkerSpec:
        selected = self.selected_id is not None and complaint.matches_id(self.selected_id)
        return MarkerSpec(complaint, marker_icon(complaint.category, "large" if selected else "medium"), selected)

    def _clustered_layer(self, drawable: Tuple[Complaint, ...]) -> MarkerLayer:
        clusterer = make_clusterer(self.method, radius_px=self.radius_px)
        frame = _frame(drawable)
        clusterer.fit(frame, self.surface.zoom)
        markers: List[MarkerSpec] = []
        clusters: List[ClusterSpec] = []
        for cluster in clusterer.clusters():
            members = tuple(drawable[i] for i in cluster.members)
            if cluster.count == 1:
                markers.append(self._marker(members[0]))
            else:
                clusters.append(ClusterSpec(cluster.lat, cluster.lng, members, cluster_icon(cluster.count)))
        logger.debug(
            "Clustered %d markers into %d clusters at zoom %d",
            len(drawable), len(clusters), self.surface.zoom,
        )
        return MarkerLayer(drawable, tuple(markers), tuple(clusters), True)

    def click(self, complaint_id: str) -> Optional[Complaint]:
        """Select the complaint with ``complaint_id`` and fire on_select."""
        complaint = next((c for c in self._complaints if c.matches_id(complaint_id)), None)
        if complaint is None:
            return None
        self.selected_id = complaint.id
        self.redraw()
        if self.on_select is not None:
            self.on_select(complaint)
        return complaint

    def clear(self) -> None:
        self.surface.remove_overlay(self._handle)
        self._handle = None


def _frame(complaints: Sequence[Complaint]) -> pd.DataFrame:
    return pd.DataFrame(
        {"lat": [c.lat for c in complaints], "lng": [c.lng for c in complaints]}
    )
