"""Export a map surface to a standalone folium (Leaflet) HTML page."""

import html
import logging
import os
from typing import Any, Dict, Optional

import folium
from folium import plugins

from civicmap.models import Complaint
from civicmap.render.styles import (
    TILE_PROVIDERS,
    category_color,
    category_glyph,
    marker_icon,
    severity_color,
    status_color,
    status_label,
)
from civicmap.render.surface import MapSurface, Overlay

logger = logging.getLogger(__name__)


def _truncate(text: Optional[str], max_length: int) -> str:
    if not text or len(text) <= max_length:
        return text or ""
    return text[:max_length].strip() + "..."


def popup_html(complaint: Complaint) -> str:
    """Popup body: category header, text, status and severity badges, place."""
    color = category_color(complaint.category)
    severity = complaint.effective_severity
    parts = [
        f'<div class="complaint-popup">'
        f'<div class="popup-header" style="border-left: 4px solid {color};">'
        f'{category_glyph(complaint.category)} '
        f'<b style="color: {color};">{html.escape(complaint.category)}</b></div>',
        f'<p class="complaint-text">{html.escape(_truncate(complaint.description, 150))}</p>',
        f'<span class="badge" style="background-color: {status_color(complaint.status)};">'
        f'{html.escape(status_label(complaint.status))}</span> '
        f'<span class="badge" style="background-color: {severity_color(severity)};">'
        f'Severity: {severity}/10</span>',
    ]
    if complaint.address:
        parts.append(f'<div class="popup-location">{html.escape(_truncate(complaint.address, 60))}</div>')
    territory = [t for t in (complaint.region_id, complaint.region_name) if t]
    if territory:
        parts.append(f'<div class="popup-territory">{html.escape(" / ".join(territory))}</div>')
    if complaint.reference:
        parts.append(f'<div class="popup-id">{html.escape(complaint.reference)}</div>')
    parts.append("</div>")
    return "".join(parts)


def _marker(complaint: Complaint, icon: Dict[str, Any]) -> folium.Marker:
    return folium.Marker(
        location=[complaint.lat, complaint.lng],
        icon=folium.DivIcon(
            html=icon["html"],
            icon_size=icon["icon_size"],
            icon_anchor=icon["icon_anchor"],
            class_name=icon.get("class_name", "empty"),
        ),
        popup=folium.Popup(popup_html(complaint), max_width=320),
        tooltip=complaint.category,
    )


def _add_markers(m: folium.Map, overlay: Overlay) -> None:
    layer = overlay.data
    icons = {spec.complaint.id: spec.icon for spec in layer.markers}
    if layer.clustered:
        group = plugins.MarkerCluster(
            name=overlay.name,
            options={
                "maxClusterRadius": overlay.options.get("maxClusterRadius", 60),
                "disableClusteringAtZoom": overlay.options.get("disableClusteringAtZoom", 16),
                "spiderfyOnMaxZoom": True,
                "showCoverageOnHover": False,
                "zoomToBoundsOnClick": True,
            },
        )
    else:
        group = folium.FeatureGroup(name=overlay.name, show=True)
    for complaint in layer.complaints:
        _marker(complaint, icons.get(complaint.id) or marker_icon(complaint.category)).add_to(group)
    group.add_to(m)


def _add_heatmap(m: folium.Map, overlay: Overlay) -> None:
    options = overlay.options
    plugins.HeatMap(
        [[p.lat, p.lng, p.intensity] for p in overlay.data],
        name=overlay.name,
        radius=options.get("radius", 25),
        blur=options.get("blur", 15),
        max_zoom=options.get("max_zoom", 17),
        min_opacity=options.get("min_opacity", 0.4),
        gradient={float(k): v for k, v in options.get("gradient", {}).items()} or None,
    ).add_to(m)


def _boundary_style(styles: Dict[str, Dict[str, Any]]):
    """Return a function compatible with folium GeoJson style_function."""

    def fn(feature: Dict[str, Any]) -> Dict[str, Any]:
        style = styles.get(feature["properties"]["_key"], {})
        return {k: v for k, v in style.items() if v is not None}

    return fn


def _add_boundaries(m: folium.Map, overlay: Overlay) -> None:
    features = []
    styles = {}
    for key, shape in overlay.data.items():
        geojson = shape.feature.to_geojson()
        geojson["properties"]["_key"] = key
        geojson["properties"]["name"] = shape.feature.name or key
        features.append(geojson)
        styles[key] = shape.style
    if not features:
        return
    folium.GeoJson(
        {"type": "FeatureCollection", "features": features},
        name=overlay.name,
        style_function=_boundary_style(styles),
        tooltip=folium.GeoJsonTooltip(fields=["name"], labels=False),
    ).add_to(m)


_EXPORTERS = {
    "markers": _add_markers,
    "heatmap": _add_heatmap,
    "boundaries": _add_boundaries,
}


def to_folium(surface: MapSurface, tile_provider: str = "cartoDB") -> folium.Map:
    """Translate the surface's viewport and overlays into a folium map.

    Args:
        surface: Map surface to export.
        tile_provider: Key of TILE_PROVIDERS.

    Returns:
        folium.Map with one layer per overlay and a layer control.

    Raises:
        ValueError: If tile_provider is unknown.
    """
    if tile_provider not in TILE_PROVIDERS:
        raise ValueError(
            f"Unknown tile provider: {tile_provider}. Must be one of: {', '.join(TILE_PROVIDERS)}"
        )
    tiles = TILE_PROVIDERS[tile_provider]
    m = folium.Map(
        location=list(surface.center),
        zoom_start=surface.zoom,
        min_zoom=surface.min_zoom,
        max_zoom=surface.max_zoom,
        tiles=None,
        control_scale=True,
    )
    folium.TileLayer(tiles=tiles["url"], attr=tiles["attribution"], name=tile_provider).add_to(m)
    # Boundaries first so markers stay clickable above them.
    order = {"boundaries": 0, "heatmap": 1, "markers": 2}
    for overlay in sorted(surface.overlays, key=lambda o: order.get(o.kind, 3)):
        exporter = _EXPORTERS.get(overlay.kind)
        if exporter is None:
            logger.warning("No folium export for overlay kind %s", overlay.kind)
            continue
        exporter(m, overlay)
    folium.LayerControl(collapsed=False).add_to(m)
    return m


def save_html(surface: MapSurface, path: str, tile_provider: str = "cartoDB") -> str:
    """Write the surface as a standalone HTML page and return the path."""
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    to_folium(surface, tile_provider).save(path)
    logger.info("Saved map to %s", path)
    return path
