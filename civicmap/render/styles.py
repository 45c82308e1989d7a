"""Colors, glyphs, icon geometry and boundary styles for the map."""

from typing import Any, Dict, Mapping, Optional, Tuple

CATEGORY_COLORS = {
    "Water": "#3B82F6",
    "Electricity": "#F59E0B",
    "Roads": "#92400E",
    "Sanitation": "#10B981",
    "Sewerage": "#8B5CF6",
    "Street Lights": "#F97316",
    "Garbage": "#84CC16",
    "Other": "#EF4444",
    "default": "#6B7280",
}

CATEGORY_ICONS = {
    "Water": "\U0001F4A7",
    "Electricity": "⚡",
    "Roads": "\U0001F6E3️",
    "Sanitation": "\U0001F6BF",
    "Sewerage": "\U0001F6B0",
    "Street Lights": "\U0001F4A1",
    "Garbage": "\U0001F5D1️",
    "Other": "\U0001F4CB",
}
FALLBACK_ICON = "\U0001F4CD"

STATUS_COLORS = {
    "reported": "#EF4444",
    "pending": "#F59E0B",
    "in_progress": "#3B82F6",
    "resolved": "#10B981",
    "closed": "#6B7280",
}

STATUS_LABELS = {
    "reported": "Reported",
    "pending": "Pending",
    "in_progress": "In Progress",
    "resolved": "Resolved",
    "closed": "Closed",
}

# (icon_size, icon_anchor) in pixels
ICON_SIZES = {
    "small": ((20, 32), (10, 32)),
    "medium": ((25, 41), (12, 41)),
    "large": ((32, 52), (16, 52)),
}

DISTRICT_COLORS = {
    "Central": "#3B82F6",
    "East": "#10B981",
    "West": "#F59E0B",
    "Malir": "#8B5CF6",
    "Korangi": "#EF4444",
    "South": "#EC4899",
    "Keamari": "#06B6D4",
    "default": "#166534",
}

TILE_PROVIDERS = {
    "openStreetMap": {
        "url": "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
        "attribution": '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors',
    },
    "cartoDB": {
        "url": "https://{s}.basemaps.cartocdn.com/light_all/{z}/{x}/{y}{r}.png",
        "attribution": '&copy; <a href="https://carto.com/attributions">CARTO</a>',
    },
    "cartoDBDark": {
        "url": "https://{s}.basemaps.cartocdn.com/dark_all/{z}/{x}/{y}{r}.png",
        "attribution": '&copy; <a href="https://carto.com/attributions">CARTO</a>',
    },
}


def category_color(category: Optional[str]) -> str:
    return CATEGORY_COLORS.get(category, CATEGORY_COLORS["default"])


def category_glyph(category: Optional[str]) -> str:
    return CATEGORY_ICONS.get(category, FALLBACK_ICON)


def status_color(status: Optional[str]) -> str:
    return STATUS_COLORS.get(status, STATUS_COLORS["reported"])


def status_label(status: Optional[str]) -> str:
    return STATUS_LABELS.get(status, status or "")


def severity_color(severity: int) -> str:
    """Green up to 3, amber up to 6, orange up to 8, red above."""
    if severity <= 3:
        return "#10B981"
    if severity <= 6:
        return "#F59E0B"
    if severity <= 8:
        return "#F97316"
    return "#EF4444"


def marker_icon(category: Optional[str], size: str = "medium") -> Dict[str, Any]:
    """DivIcon description for a complaint marker.

    Args:
        category: Complaint category; unknown categories get the gray pin.
        size: ``small``, ``medium`` or ``large``; anything else is medium.

    Returns:
        Dict with ``html``, ``icon_size``, ``icon_anchor``, ``popup_anchor``,
        ``color`` and ``glyph``.
    """
    icon_size, anchor = ICON_SIZES.get(size, ICON_SIZES["medium"])
    color = category_color(category)
    glyph = category_glyph(category)
    return {
        "html": (
            f'<div class="marker-pin" style="background-color: {color};">'
            f'<span class="marker-icon">{glyph}</span></div>'
        ),
        "class_name": "custom-marker-icon",
        "icon_size": icon_size,
        "icon_anchor": anchor,
        "popup_anchor": (0, -anchor[1]),
        "color": color,
        "glyph": glyph,
    }


def cluster_size_class(count: int) -> Tuple[str, int]:
    """Size class and diameter (px) of a cluster icon."""
    if count >= 100:
        return "large", 60
    if count >= 10:
        return "medium", 50
    return "small", 40


def cluster_icon(count: int) -> Dict[str, Any]:
    size, diameter = cluster_size_class(count)
    return {
        "html": f'<div class="cluster-icon cluster-{size}"><span>{count}</span></div>',
        "class_name": "custom-cluster-icon",
        "size": size,
        "icon_size": (diameter, diameter),
    }


def fine_boundary_style(feature, is_hovered: bool = False, is_selected: bool = False) -> Dict[str, Any]:
    """UC outline: dashed green, solid dark green when selected."""
    color = "#166534" if is_selected else "#22C55E"
    return {
        "color": color,
        "weight": 3 if is_selected else 2 if is_hovered else 1,
        "opacity": 1 if is_selected else 0.9 if is_hovered else 0.6,
        "fillColor": color,
        "fillOpacity": 0.2 if is_selected else 0.15 if is_hovered else 0.05,
        "dashArray": None if is_selected else "5, 5",
    }


def _district(feature) -> Optional[str]:
    properties: Mapping[str, Any] = getattr(feature, "properties", None) or {}
    if not properties and isinstance(feature, Mapping):
        properties = feature.get("properties") or {}
    metadata = properties.get("metadata") if isinstance(properties.get("metadata"), Mapping) else {}
    return metadata.get("district") or properties.get("district")


def coarse_boundary_style(feature, is_hovered: bool = False, is_selected: bool = False) -> Dict[str, Any]:
    """Town outline: bold solid line in the district color."""
    district_color = DISTRICT_COLORS.get(_district(feature), DISTRICT_COLORS["default"])
    return {
        "color": "#052E16" if is_selected else district_color,
        "weight": 6 if is_selected else 5 if is_hovered else 4,
        "opacity": 1 if is_selected or is_hovered else 0.85,
        "fillColor": district_color,
        "fillOpacity": 0.25 if is_selected else 0.18 if is_hovered else 0.08,
        "dashArray": None,
        "lineCap": "round",
        "lineJoin": "round",
    }
