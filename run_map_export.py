#!/usr/bin/env python3
"""Export the complaint map as a standalone HTML page.

Fetches complaints and territory boundaries from the backend, applies the
given filters, renders markers, heatmap and boundaries, and saves the result
as a folium (Leaflet) page.

Usage:
    # Run with defaults (backend at http://localhost:3000/api/v1)
    python run_map_export.py

    # Or with filters and layers
    python run_map_export.py --category Water --status pending --uc-boundaries --out out/map.html
"""

import argparse
import asyncio
import sys

from civicmap.config import configure_logging, load_config
from civicmap.errors import ConfigError
from civicmap.orchestrator import MapOrchestrator


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Export the complaint map as a standalone HTML page"
    )
    parser.add_argument("--config", default=None, help="Path to configuration JSON (default: built-in defaults)")
    parser.add_argument("--out", default="map_out/complaints_map.html", help="Output HTML path (default: map_out/complaints_map.html)")
    parser.add_argument("--category", action="append", default=[], help="Category to include (repeatable)")
    parser.add_argument("--status", action="append", default=[], help="Status to include (repeatable)")
    parser.add_argument("--severity-min", type=int, default=1, help="Minimum severity (default: 1)")
    parser.add_argument("--severity-max", type=int, default=10, help="Maximum severity (default: 10)")
    parser.add_argument("--uc", default=None, help="Restrict to one Union Council id")
    parser.add_argument("--town", default=None, help="Restrict to one Town")
    parser.add_argument("--search", default="", help="Search text matched against description and address")
    parser.add_argument("--no-heatmap", action="store_true", help="Hide the heatmap layer")
    parser.add_argument("--no-clusters", action="store_true", help="Draw every marker individually")
    parser.add_argument("--uc-boundaries", action="store_true", help="Show Union Council boundaries")
    parser.add_argument("--town-boundaries", action="store_true", help="Show Town boundaries")
    parser.add_argument("--fit-selection", action="store_true", help="Fit the view to the selected UC or Town")
    return parser


def initial_filters(args: argparse.Namespace) -> dict:
    filters = {
        "categories": args.category,
        "statuses": args.status,
        "severity": (args.severity_min, args.severity_max),
        "search_query": args.search,
    }
    if args.uc:
        filters["region_fine"] = args.uc
    elif args.town:
        filters["region_coarse"] = args.town
    return filters


async def export_map(args: argparse.Namespace, config: dict, transport=None) -> int:
    orchestrator = MapOrchestrator(
        config=config,
        transport=transport,
        initial_filters=initial_filters(args),
        initial_layers={
            "heatmap": not args.no_heatmap,
            "clusters": not args.no_clusters,
            "fine_boundaries": args.uc_boundaries,
            "coarse_boundaries": args.town_boundaries,
        },
    )
    async with orchestrator:
        if orchestrator.error:
            print(f"[ERROR] {orchestrator.error}")
        print(f"[INFO] Loaded {len(orchestrator.complaints.complaints)} complaints, "
              f"{len(orchestrator.refined_complaints)} after refinement")
        print(f"[INFO] Boundaries: {len(orchestrator.territories.fine)} UCs, "
              f"{len(orchestrator.territories.coarse)} towns")
        if args.fit_selection and orchestrator.fit_to_selection() is None:
            print("[INFO] No selected territory to fit")
        orchestrator.report_viewport()
        print(f"[INFO] {orchestrator.complaints_in_view} complaints in view at zoom {orchestrator.surface.zoom}")

        for category, count in sorted(orchestrator.complaints.stats.by_category.items()):
            print(f"  {category}: {count}")

        path = orchestrator.export_html(args.out)
        print(f"[OK] Saved map to {path}")
    return 1 if orchestrator.complaints.error else 0


def main() -> None:
    """Parse arguments, load configuration and export the map.

    Raises:
        SystemExit: With status 1 if configuration is invalid or the
            complaint fetch failed.
    """
    args = build_parser().parse_args()
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"[ERROR] {e}")
        sys.exit(1)
    configure_logging(config)

    print(f"[INFO] Fetching from {config['api']['base_url']}...")
    status = asyncio.run(export_map(args, config))
    if status == 0:
        print("[DONE] Map export complete.")
    sys.exit(status)


if __name__ == "__main__":
    main()
