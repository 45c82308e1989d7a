"""Geospatial render engine.

Modules:
    surface: In-memory map surface with overlays, viewport and events
    markers: Complaint markers with zoom-aware clustering
    heatmap: Density overlay
    boundaries: UC and Town polygons with hover and selection styling
    styles: Colors, glyphs and style functions
    legend: Legend model
    export: folium HTML export
"""

from .boundaries import BoundaryRenderer, BoundaryShape
from .export import save_html, to_folium
from .heatmap import HeatmapRenderer
from .legend import build_legend
from .markers import ClusterSpec, MarkerLayer, MarkerRenderer, MarkerSpec
from .surface import MapSurface, Overlay

__all__ = [
    'BoundaryRenderer',
    'BoundaryShape',
    'HeatmapRenderer',
    'MarkerRenderer',
    'MarkerLayer',
    'MarkerSpec',
    'ClusterSpec',
    'MapSurface',
    'Overlay',
    'build_legend',
    'save_html',
    'to_folium',
]
