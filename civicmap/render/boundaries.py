"""Territory boundary renderer with hover and selection styling."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from civicmap.geography.bounds import geometry_bounds
from civicmap.models import TerritoryFeature, TerritoryLevel
from civicmap.render.styles import coarse_boundary_style, fine_boundary_style
from civicmap.render.surface import MapSurface, Overlay

logger = logging.getLogger(__name__)

StyleFunction = Callable[[TerritoryFeature, bool, bool], Dict[str, Any]]


@dataclass
class BoundaryShape:
    """A drawn territory polygon and its current style."""

    key: str
    feature: TerritoryFeature
    style: Dict[str, Any]


def feature_key(feature: TerritoryFeature, index: int) -> str:
    return feature.id or feature.name or f"feature-{index}"


class BoundaryRenderer:
    """Draws the polygons of one territory level.

    Styling comes from ``style_fn(feature, is_hovered, is_selected)``.
    Hovering restyles only the hovered shape; clicking fires ``on_select``
    with ``{"type": level, **properties}`` and fits the view to the shape.

    Args:
        surface: Target map surface.
        level: Territory level drawn by this renderer.
        style_fn: Style function; defaults to the level's built-in style.
        on_select: Selection callback.
        fit_padding: Padding in pixels used when fitting to a clicked shape.
    """

    def __init__(
        self,
        surface: MapSurface,
        level: TerritoryLevel,
        style_fn: Optional[StyleFunction] = None,
        on_select: Optional[Callable[[Dict[str, Any]], None]] = None,
        fit_padding: Sequence[int] = (50, 50),
    ):
        self.surface = surface
        self.level = TerritoryLevel(level)
        if style_fn is None:
            style_fn = fine_boundary_style if self.level is TerritoryLevel.FINE else coarse_boundary_style
        self.style_fn = style_fn
        self.on_select = on_select
        self.fit_padding = tuple(fit_padding)
        self.selected_key: Optional[str] = None
        self.hovered_key: Optional[str] = None
        self._features: List[TerritoryFeature] = []
        self._visible = False
        self._handle: Optional[Overlay] = None

    @property
    def name(self) -> str:
        return "Union Councils" if self.level is TerritoryLevel.FINE else "Towns"

    @property
    def overlay(self) -> Optional[Overlay]:
        return self._handle

    @property
    def shapes(self) -> Dict[str, BoundaryShape]:
        return self._handle.data if self._handle is not None else {}

    def render(
        self,
        features: Iterable[TerritoryFeature],
        visible: bool = True,
        selected_key: Optional[str] = None,
    ) -> None:
        self._features = [f for f in features if f.has_geometry]
        self._visible = visible
        self.selected_key = selected_key
        self.redraw()

    def set_visible(self, visible: bool) -> None:
        if visible != self._visible:
            self._visible = visible
            self.redraw()

    def set_selected(self, selected_key: Optional[str]) -> None:
        if selected_key != self.selected_key:
            self.selected_key = selected_key
            for shape in self.shapes.values():
                shape.style = self._style(shape)

    def redraw(self) -> None:
        self.clear()
        self.hovered_key = None
        if not self._visible or not self._features:
            return
        shapes: Dict[str, BoundaryShape] = {}
        for index, feature in enumerate(self._features):
            key = feature_key(feature, index)
            shape = BoundaryShape(key, feature, {})
            shape.style = self._style(shape)
            shapes[key] = shape
        self._handle = self.surface.add_overlay(
            "boundaries", shapes, name=self.name, options={"level": self.level.value}
        )

    def _style(self, shape: BoundaryShape, hovered: bool = False) -> Dict[str, Any]:
        return self.style_fn(shape.feature, hovered, shape.key == self.selected_key)

    def style_of(self, key: str) -> Optional[Dict[str, Any]]:
        shape = self.shapes.get(key)
        return dict(shape.style) if shape is not None else None

    def hover(self, key: str) -> None:
        shape = self.shapes.get(key)
        if shape is None:
            return
        if self.hovered_key is not None and self.hovered_key != key:
            self.unhover(self.hovered_key)
        shape.style = self._style(shape, hovered=True)
        self.hovered_key = key

    def unhover(self, key: str) -> None:
        shape = self.shapes.get(key)
        if shape is None:
            return
        shape.style = self._style(shape)
        if self.hovered_key == key:
            self.hovered_key = None

    def click(self, key: str) -> Optional[TerritoryFeature]:
        """Fire the selection callback for ``key`` and fit the view to its shape."""
        shape = self.shapes.get(key)
        if shape is None:
            return None
        feature = shape.feature
        if self.on_select is not None:
            self.on_select({"type": self.level.value, **dict(feature.properties)})
        bounds = geometry_bounds(feature.geometry)
        if bounds is not None:
            self.surface.fit_bounds(bounds, self.fit_padding)
        return feature

    def clear(self) -> None:
        self.surface.remove_overlay(self._handle)
        self._handle = None
