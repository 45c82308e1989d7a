"""In-memory map surface.

MapSurface stands in for the interactive map widget: it holds the overlay
registry and the viewport, and publishes ``zoomend`` / ``moveend`` events
when the view changes. Renderers draw onto it; render.export turns it into
a folium map.
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from civicmap.geography.bounds import LatLngBounds
from civicmap.geography.projection import view_bounds, zoom_for_bounds

logger = logging.getLogger(__name__)

EVENTS = ("moveend", "zoomend")

Handler = Callable[["MapSurface"], None]


@dataclass
class Overlay:
    """One drawn layer.

    Attributes:
        id: Surface-unique handle id.
        kind: ``markers``, ``heatmap`` or ``boundaries``.
        name: Layer name shown in layer controls.
        data: Renderer payload.
        options: Drawing options (heatmap radius, cluster radius, ...).
    """

    id: int
    kind: str
    name: str
    data: Any
    options: Dict[str, Any] = field(default_factory=dict)


class MapSurface:
    """Overlay registry, viewport and view-change events.

    Args:
        center: Initial (lat, lng).
        zoom: Initial zoom.
        width_px: Viewport width in pixels.
        height_px: Viewport height in pixels.
        min_zoom: Lowest allowed zoom.
        max_zoom: Highest allowed zoom.
    """

    def __init__(
        self,
        center: Sequence[float] = (24.8607, 67.0011),
        zoom: int = 12,
        width_px: int = 1024,
        height_px: int = 768,
        min_zoom: int = 10,
        max_zoom: int = 18,
    ):
        self.width_px = width_px
        self.height_px = height_px
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self._center: Tuple[float, float] = (float(center[0]), float(center[1]))
        self._zoom = self._clamp_zoom(zoom)
        self._overlays: Dict[int, Overlay] = {}
        self._ids = itertools.count(1)
        self._handlers: Dict[str, List[Handler]] = {name: [] for name in EVENTS}

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "MapSurface":
        m = config.get("map", {})
        return cls(
            center=m.get("center", (24.8607, 67.0011)),
            zoom=m.get("zoom", 12),
            width_px=m.get("width_px", 1024),
            height_px=m.get("height_px", 768),
            min_zoom=m.get("min_zoom", 10),
            max_zoom=m.get("max_zoom", 18),
        )

    def _clamp_zoom(self, zoom: float) -> int:
        return int(max(self.min_zoom, min(self.max_zoom, zoom)))

    # Viewport

    @property
    def center(self) -> Tuple[float, float]:
        return self._center

    @property
    def zoom(self) -> int:
        return self._zoom

    @property
    def bounds(self) -> LatLngBounds:
        return view_bounds(self._center, self._zoom, self.width_px, self.height_px)

    def set_view(self, center: Sequence[float], zoom: Optional[float] = None) -> None:
        """Move the view. Fires ``zoomend`` if the zoom changed, then ``moveend``."""
        new_zoom = self._zoom if zoom is None else self._clamp_zoom(zoom)
        zoom_changed = new_zoom != self._zoom
        self._center = (float(center[0]), float(center[1]))
        self._zoom = new_zoom
        if zoom_changed:
            self.emit("zoomend")
        self.emit("moveend")

    def set_zoom(self, zoom: float) -> None:
        self.set_view(self._center, zoom)

    def pan_to(self, center: Sequence[float]) -> None:
        self.set_view(center, self._zoom)

    def fit_bounds(self, bounds: LatLngBounds, padding: Sequence[int] = (0, 0)) -> None:
        """Center on ``bounds`` at the largest zoom that shows all of it."""
        zoom = zoom_for_bounds(
            bounds, self.width_px, self.height_px, tuple(padding), self.min_zoom, self.max_zoom
        )
        self.set_view(bounds.center, zoom)

    # Events

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        """Subscribe to a view event; returns a callable that unsubscribes."""
        if event not in self._handlers:
            raise ValueError(f"Unknown event: {event}. Must be one of: {', '.join(EVENTS)}")
        self._handlers[event].append(handler)
        return lambda: self.off(event, handler)

    def off(self, event: str, handler: Handler) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def handler_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    def emit(self, event: str) -> None:
        for handler in list(self._handlers[event]):
            handler(self)

    # Overlays

    @property
    def overlays(self) -> Tuple[Overlay, ...]:
        return tuple(self._overlays.values())

    def overlays_of(self, kind: str) -> List[Overlay]:
        return [o for o in self._overlays.values() if o.kind == kind]

    def add_overlay(self, kind: str, data: Any, name: str = "", options: Optional[Dict[str, Any]] = None) -> Overlay:
        overlay = Overlay(id=next(self._ids), kind=kind, name=name or kind, data=data, options=dict(options or {}))
        self._overlays[overlay.id] = overlay
        logger.debug("Added %s overlay %d", kind, overlay.id)
        return overlay

    def remove_overlay(self, overlay: Optional[Overlay]) -> bool:
        if overlay is None:
            return False
        return self._overlays.pop(overlay.id, None) is not None

    def has_overlay(self, overlay: Optional[Overlay]) -> bool:
        return overlay is not None and overlay.id in self._overlays

    def clear(self) -> None:
        self._overlays.clear()
