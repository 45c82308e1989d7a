"""Map Orchestrator.

Composes the filter manager, the two stores and the renderers around one
MapSurface. Filter changes re-render at once from the refined current list
and schedule a debounced refetch; zoom changes re-cluster; layer toggles
touch only the affected renderer. The region selection lives only in the
filter state; the territory store and boundary renderers read it from there.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Set

from civicmap.api.client import CivicLensClient
from civicmap.config import load_config
from civicmap.filters.manager import FilterStateManager
from civicmap.filters.state import LayerVisibility
from civicmap.geography.bounds import LatLngBounds
from civicmap.models import Complaint, HeatPoint, TerritoryLevel
from civicmap.render.boundaries import BoundaryRenderer
from civicmap.render.export import save_html
from civicmap.render.heatmap import HeatmapRenderer
from civicmap.render.legend import build_legend
from civicmap.render.markers import MarkerRenderer
from civicmap.render.surface import MapSurface
from civicmap.stores.complaints import ComplaintStore
from civicmap.stores.debounce import Debouncer
from civicmap.stores.territories import TerritoryStore

logger = logging.getLogger(__name__)


class MapOrchestrator:
    """The complaint map: state, data, rendering and selection callbacks.

    Args:
        client: API client. Built from ``config`` (and owned) when omitted.
        config: Engine configuration; load_config() defaults when omitted.
        initial_filters: Filter defaults merged over the built-in ones.
        initial_layers: Layer visibility overrides.
        show_filter_panel: Whether filter_panel() returns a snapshot.
        show_legend: Whether legend() returns a legend.
        on_complaint_select: Called with the Complaint when a marker is clicked.
        on_territory_select: Called with ``{"type": "UC"|"Town", **properties}``
            when a boundary is clicked.
        surface: Map surface; built from ``config`` when omitted.
        transport: httpx transport for an internally built client.
    """

    def __init__(
        self,
        client: Optional[CivicLensClient] = None,
        config: Optional[Dict[str, Any]] = None,
        initial_filters: Optional[Mapping[str, Any]] = None,
        initial_layers: Optional[Mapping[str, bool]] = None,
        show_filter_panel: bool = True,
        show_legend: bool = True,
        on_complaint_select: Optional[Callable[[Complaint], None]] = None,
        on_territory_select: Optional[Callable[[Dict[str, Any]], None]] = None,
        surface: Optional[MapSurface] = None,
        transport=None,
    ):
        self.config = config if config is not None else load_config()
        self.show_filter_panel = show_filter_panel
        self.show_legend = show_legend
        self.on_complaint_select = on_complaint_select
        self.on_territory_select = on_territory_select

        self._owns_client = client is None
        self.client = client or CivicLensClient.from_config(self.config, transport=transport)

        self.filters = FilterStateManager(initial_filters, initial_layers)
        self.surface = surface or MapSurface.from_config(self.config)
        self.complaints = ComplaintStore(
            self.client, debounce_ms=self.config["fetch"]["debounce_ms"]
        )
        self.territories = TerritoryStore(
            self.client,
            city=self.config["api"].get("city"),
            selection_bounds=self.config["boundaries"]["selection_bounds"],
            selection_getter=lambda: self.filters.state.region,
            selection_setter=self.filters.set_region,
        )

        fit_padding = self.config["boundaries"]["fit_padding"]
        self.markers = MarkerRenderer.from_config(self.surface, self.config, on_select=self._on_marker_select)
        self.heatmap = HeatmapRenderer(self.surface, self.config["heatmap"])
        self.fine_boundaries = BoundaryRenderer(
            self.surface, TerritoryLevel.FINE, on_select=self._on_territory_click, fit_padding=fit_padding
        )
        self.coarse_boundaries = BoundaryRenderer(
            self.surface, TerritoryLevel.COARSE, on_select=self._on_territory_click, fit_padding=fit_padding
        )

        self.selected_complaint: Optional[Complaint] = None
        self._heat_points: Sequence[HeatPoint] = ()
        self._viewport: Optional[LatLngBounds] = None
        self._layers: LayerVisibility = self.filters.layers
        self._unsubscribers: List[Callable[[], None]] = []
        self._pending: Set[asyncio.Future] = set()
        self._refetch_debouncer = Debouncer(self.config["fetch"]["debounce_ms"] / 1000.0)
        self._api_params: Optional[Dict[str, Any]] = None
        self._started = False

    # Lifecycle

    async def start(self) -> None:
        """Subscribe to state and view events, load data and draw the first frame."""
        if self._started:
            return
        self._started = True
        self._unsubscribers = [
            self.filters.subscribe(self._on_state_change),
            self.surface.on("zoomend", self._on_zoom),
            self.surface.on("moveend", self._on_move),
        ]
        self._api_params = self.filters.to_api_params()
        params = self._query_params()
        await asyncio.gather(
            self.complaints.fetch_now(params),
            self.territories.fetch_all(),
        )
        await self._update_heat_points(params)
        self.render()
        logger.info(
            "Map started with %d complaints, %d UCs, %d towns",
            len(self.complaints.complaints), len(self.territories.fine), len(self.territories.coarse),
        )

    async def close(self) -> None:
        """Remove overlays and subscriptions, cancel pending work, close an owned client."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.complaints.close()
        self._refetch_debouncer.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._pending.clear()
        for renderer in (self.markers, self.heatmap, self.fine_boundaries, self.coarse_boundaries):
            renderer.clear()
        if self._owns_client:
            await self.client.aclose()
        self._started = False

    async def __aenter__(self) -> "MapOrchestrator":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    # Derived views

    @property
    def refined_complaints(self) -> List[Complaint]:
        return self.filters.predicate.refine(self.complaints.complaints)

    @property
    def complaints_in_view(self) -> int:
        if self._viewport is None:
            return 0
        return len(self.complaints.get_in_bounds(self._viewport))

    @property
    def viewport(self) -> Optional[LatLngBounds]:
        return self._viewport

    @property
    def heat_points(self) -> Sequence[HeatPoint]:
        return self._heat_points

    @property
    def error(self) -> Optional[str]:
        errors = [e for e in (self.complaints.error, self.territories.error) if e]
        return "; ".join(errors) or None

    @property
    def loading(self) -> bool:
        return self.complaints.loading or self.territories.loading

    def legend(self) -> Optional[Dict[str, Any]]:
        if not self.show_legend:
            return None
        layers = self.filters.layers
        return build_legend(
            complaints_in_view=self.complaints_in_view,
            show_heatmap=layers.heatmap,
            show_boundaries=layers.fine_boundaries or layers.coarse_boundaries,
            gradient=self.config["heatmap"].get("gradient"),
        )

    def filter_panel(self) -> Optional[Dict[str, Any]]:
        """Snapshot of everything a filter panel shows, or None when hidden."""
        if not self.show_filter_panel:
            return None
        return {
            "filters": self.filters.state,
            "layers": self.filters.layers,
            "available_categories": self.filters.available_categories,
            "available_statuses": self.filters.available_statuses,
            "fine_list": self.territories.fine_list,
            "coarse_list": self.territories.coarse_list,
            "stats": self.complaints.stats,
            "has_active_filters": self.filters.has_active_filters,
            "active_filter_count": self.filters.active_filter_count,
            "loading": self.loading,
            "error": self.error,
        }

    # Rendering

    def render(self) -> None:
        """Redraw every renderer from the current state."""
        self._layers = self.filters.layers
        self._render_markers()
        self.heatmap.render(self._heat_points, visible=self._layers.heatmap)
        self._render_boundaries()

    def _render_markers(self) -> None:
        layers = self.filters.layers
        self.markers.render(
            self.refined_complaints,
            visible=layers.markers,
            clustering=layers.clusters,
            selected_id=self.markers.selected_id,
        )

    def _render_boundaries(self) -> None:
        region = self.filters.state.region
        layers = self.filters.layers
        self.fine_boundaries.render(self.territories.fine, layers.fine_boundaries, region.fine_id)
        self.coarse_boundaries.render(self.territories.coarse, layers.coarse_boundaries, region.coarse_name)

    def _on_state_change(self, kind: str, manager: FilterStateManager) -> None:
        if kind == "layers":
            self._apply_layers(manager.layers)
            return
        region = manager.state.region
        self.fine_boundaries.set_selected(region.fine_id)
        self.coarse_boundaries.set_selected(region.coarse_name)
        self._render_markers()
        # Search is refined locally and never reaches the query string.
        api_params = manager.to_api_params()
        if api_params != self._api_params:
            self._api_params = api_params
            self._schedule_fetch()

    def _apply_layers(self, layers: LayerVisibility) -> None:
        old, self._layers = self._layers, layers
        if (old.markers, old.clusters) != (layers.markers, layers.clusters):
            self._render_markers()
        if old.heatmap != layers.heatmap:
            self.heatmap.set_visible(layers.heatmap)
        if old.fine_boundaries != layers.fine_boundaries:
            self.fine_boundaries.set_visible(layers.fine_boundaries)
        if old.coarse_boundaries != layers.coarse_boundaries:
            self.coarse_boundaries.set_visible(layers.coarse_boundaries)

    # Data

    def _query_params(self) -> Dict[str, Any]:
        params = self.filters.to_api_params()
        if self.config["fetch"].get("viewport_params") and self._viewport is not None:
            params.update(self._viewport.to_filter_params())
        return params

    def _schedule_fetch(self) -> None:
        """Restart the refetch timer; a burst of changes runs one trailing refetch."""
        if not self._started:
            return
        waiter = self._refetch_debouncer.call(self._refetch)
        self._pending.add(waiter)
        waiter.add_done_callback(self._pending.discard)

    async def _refetch(self) -> None:
        params = self._query_params()
        await self.complaints.fetch_now(params)
        await self._update_heat_points(params)
        self._render_markers()
        self.heatmap.render(self._heat_points, visible=self.filters.layers.heatmap)

    async def _update_heat_points(self, params: Mapping[str, Any]) -> None:
        if self.config["heatmap"].get("source") == "server":
            self._heat_points = tuple(await self.complaints.fetch_heatmap(params))
        else:
            self._heat_points = self.complaints.heat_points

    async def retry(self) -> None:
        """Re-issue the last complaint request and any failed territory level."""
        params = self._query_params()
        await asyncio.gather(self.complaints.fetch_now(params), self.territories.fetch_all())
        await self._update_heat_points(params)
        self.render()

    async def wait_idle(self) -> None:
        """Wait for scheduled refetches to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # View

    def _on_zoom(self, surface: MapSurface) -> None:
        self.markers.redraw()

    def _on_move(self, surface: MapSurface) -> None:
        self._viewport = surface.bounds
        if self.config["fetch"].get("viewport_params"):
            self._schedule_fetch()

    def report_viewport(self) -> LatLngBounds:
        """Record the current surface bounds as the reported viewport."""
        self._viewport = self.surface.bounds
        return self._viewport

    def set_view(self, center: Sequence[float], zoom: Optional[int] = None) -> None:
        self.surface.set_view(center, zoom)

    def reset_view(self) -> None:
        m = self.config["map"]
        self.surface.set_view(m["center"], m["zoom"])

    def fit_to_selection(self) -> Optional[LatLngBounds]:
        """Fit the view to the selected territory, if any."""
        bounds = self.territories.get_bounds_of_selection()
        if bounds is not None:
            self.surface.fit_bounds(bounds, self.config["boundaries"]["fit_padding"])
        return bounds

    def export_html(self, path: str) -> str:
        return save_html(self.surface, path, self.config["map"].get("tile_provider", "cartoDB"))

    # Selection

    def select_complaint(self, complaint_id: str) -> Optional[Complaint]:
        return self.markers.click(complaint_id)

    def _on_marker_select(self, complaint: Complaint) -> None:
        self.selected_complaint = complaint
        if self.on_complaint_select is not None:
            self.on_complaint_select(complaint)

    def _on_territory_click(self, properties: Dict[str, Any]) -> None:
        if properties.get("type") == TerritoryLevel.FINE.value:
            uc_id = properties.get("uc_id")
            self.territories.select_fine(str(uc_id) if uc_id is not None else None)
        else:
            self.territories.select_coarse(properties.get("town_name") or properties.get("town"))
        if self.on_territory_select is not None:
            self.on_territory_select(properties)
