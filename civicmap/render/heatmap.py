"""Heatmap renderer."""

import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from civicmap.models import HeatPoint
from civicmap.render.surface import MapSurface, Overlay

logger = logging.getLogger(__name__)

DEFAULT_OPTIONS = {
    "radius": 25,
    "blur": 15,
    "max_zoom": 17,
    "max": 1.0,
    "min_opacity": 0.4,
    "gradient": {
        "0.2": "#22C55E",
        "0.4": "#86EFAC",
        "0.6": "#F59E0B",
        "0.8": "#F97316",
        "1.0": "#EF4444",
    },
}

_OPTION_KEYS = tuple(DEFAULT_OPTIONS)


class HeatmapRenderer:
    """Density overlay built from (lat, lng, intensity) weights.

    The overlay is only built while the layer is visible. A different weight
    list destroys the current overlay and builds a new one; the same list
    leaves it alone.

    Args:
        surface: Target map surface.
        options: Overrides for DEFAULT_OPTIONS.
    """

    def __init__(self, surface: MapSurface, options: Optional[Dict[str, Any]] = None):
        self.surface = surface
        self.options = dict(DEFAULT_OPTIONS)
        self.options.update({k: v for k, v in (options or {}).items() if k in _OPTION_KEYS})
        self._points: Tuple[HeatPoint, ...] = ()
        self._visible = True
        self._handle: Optional[Overlay] = None

    @property
    def overlay(self) -> Optional[Overlay]:
        return self._handle

    @property
    def points(self) -> Tuple[HeatPoint, ...]:
        return self._points

    def render(self, points: Iterable[HeatPoint], visible: bool = True) -> None:
        points = tuple(HeatPoint(*p) for p in points)
        if points != self._points:
            self._points = points
            self.clear()
        self.set_visible(visible)

    def set_visible(self, visible: bool) -> None:
        self._visible = visible
        if not visible:
            self.clear()
            return
        if self._handle is not None or not self._points:
            return
        self._handle = self.surface.add_overlay(
            "heatmap", self._points, name="Complaint Density", options=self.options
        )
        logger.debug("Built heatmap from %d points", len(self._points))

    def clear(self) -> None:
        self.surface.remove_overlay(self._handle)
        self._handle = None
