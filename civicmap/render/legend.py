"""Legend model for the map."""

from typing import Any, Dict, List, Mapping, Optional

from civicmap.models import CATEGORIES, STATUSES
from civicmap.render.heatmap import DEFAULT_OPTIONS
from civicmap.render.styles import (
    category_color,
    category_glyph,
    coarse_boundary_style,
    fine_boundary_style,
    status_color,
    status_label,
)


def build_legend(
    complaints_in_view: int = 0,
    show_categories: bool = True,
    show_status: bool = True,
    show_heatmap: bool = False,
    show_boundaries: bool = False,
    gradient: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Describe the legend as plain data.

    Args:
        complaints_in_view: Count shown at the top of the legend.
        show_categories: Include the category section.
        show_status: Include the status section.
        show_heatmap: Include the density gradient.
        show_boundaries: Include the UC and Town line samples.
        gradient: Heatmap gradient stops; defaults to the built-in one.

    Returns:
        Dict with ``title``, ``complaints_in_view`` and an ordered list of
        ``sections`` (each a title and its items).
    """
    sections: List[Dict[str, Any]] = []
    if show_categories:
        sections.append({
            "title": "Categories",
            "items": [
                {"label": c, "color": category_color(c), "glyph": category_glyph(c)}
                for c in CATEGORIES
            ],
        })
    if show_status:
        sections.append({
            "title": "Status",
            "items": [{"label": status_label(s), "color": status_color(s)} for s in STATUSES],
        })
    if show_heatmap:
        stops = gradient or DEFAULT_OPTIONS["gradient"]
        sections.append({
            "title": "Complaint Density",
            "gradient": [stops[k] for k in sorted(stops, key=float)],
            "labels": ["Low", "High"],
        })
    if show_boundaries:
        sections.append({
            "title": "Boundaries",
            "items": [
                {"label": "Union Council (UC)", "line": fine_boundary_style(None)},
                {"label": "Town", "line": coarse_boundary_style(None)},
            ],
        })
    return {
        "title": "Legend",
        "complaints_in_view": complaints_in_view,
        "sections": sections,
    }
