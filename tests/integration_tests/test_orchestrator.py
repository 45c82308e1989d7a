"""Integration tests for MapOrchestrator against the mock backend.

Covers the full loop: filter change -> immediate re-render from the refined
list -> debounced refetch -> re-render, plus territory selection, layer
toggles and lifecycle.
"""

import pytest
import pytest_asyncio

from civicmap.models import HeatPoint
from civicmap.orchestrator import MapOrchestrator

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def orchestrator(client, config):
    orch = MapOrchestrator(client=client, config=config)
    await orch.start()
    yield orch
    await orch.close()


def marker_ids(orch):
    layer = orch.markers.layer
    if layer is None:
        return []
    return [c.id for c in layer.complaints]


class TestStart:
    """First load and first frame."""

    async def test_initial_frame(self, orchestrator, backend):
        assert len(orchestrator.complaints.complaints) == 5
        assert len(orchestrator.territories.fine) == 3
        assert len(orchestrator.territories.coarse) == 2
        assert marker_ids(orchestrator) == ["c1", "c2", "c3", "c4"]
        assert len(orchestrator.heatmap.overlay.data) == 4
        assert orchestrator.fine_boundaries.overlay is None
        assert orchestrator.coarse_boundaries.overlay is None
        assert len(backend.requests_to("complaints")) == 1
        assert not orchestrator.loading
        assert orchestrator.error is None

    async def test_initial_filters_sent(self, client, config, backend):
        async with MapOrchestrator(
            client=client, config=config, initial_filters={"categories": ["Water"], "ucId": "UC-1"}
        ) as orch:
            assert marker_ids(orch) == ["c1", "c4"]
        params = backend.requests_to("complaints")[0].url.params
        assert params["category"] == "Water"
        assert params["uc_id"] == "UC-1"

    async def test_server_heatmap_source(self, client, config):
        config["heatmap"]["source"] = "server"
        async with MapOrchestrator(client=client, config=config) as orch:
            assert list(orch.heat_points) == [HeatPoint(24.86, 67.01, 0.8)]

    async def test_partial_territory_failure_and_retry(self, client, config, backend):
        backend.failures.add("territories:Town")
        async with MapOrchestrator(client=client, config=config) as orch:
            assert "Town boundaries" in orch.error
            assert len(orch.territories.fine) == 3
            backend.failures.clear()
            await orch.retry()
            assert orch.error is None
            assert len(orch.territories.coarse) == 2


class TestFilterChanges:
    """Refined re-render first, then one debounced refetch."""

    async def test_category_toggle(self, orchestrator, backend):
        orchestrator.filters.toggle_category("Water")
        assert marker_ids(orchestrator) == ["c1", "c4"]

        await orchestrator.wait_idle()
        requests = backend.requests_to("complaints")
        assert len(requests) == 2
        assert requests[-1].url.params["category"] == "Water"
        assert marker_ids(orchestrator) == ["c1", "c4"]

    async def test_burst_coalesced(self, orchestrator, backend):
        for category in ("Water", "Roads", "Electricity"):
            orchestrator.filters.toggle_category(category)
        orchestrator.filters.toggle_category("Water")
        await orchestrator.wait_idle()

        requests = backend.requests_to("complaints")
        assert len(requests) == 2
        assert requests[-1].url.params["categories"] == "Roads,Electricity"
        assert marker_ids(orchestrator) == ["c2", "c3"]

    async def test_search_is_client_only(self, orchestrator, backend):
        orchestrator.filters.set_search_query("PIPE")
        assert marker_ids(orchestrator) == ["c4"]
        await orchestrator.wait_idle()
        requests = backend.requests_to("complaints")
        assert len(requests) == 1
        assert "search" not in requests[-1].url.params

    async def test_burst_fetches_server_heatmap_once(self, client, config, backend):
        config["heatmap"]["source"] = "server"
        async with MapOrchestrator(client=client, config=config) as orch:
            for low in range(2, 7):
                orch.filters.set_severity_range(low, 10)
            await orch.wait_idle()
            assert len(backend.requests_to("complaints")) == 2
            assert len(backend.requests_to("complaints/heatmap")) == 2
            assert backend.requests_to("complaints/heatmap")[-1].url.params["severity_min"] == "6"

    async def test_severity_refines_with_default(self, orchestrator):
        orchestrator.filters.set_severity_range(5, 7)
        assert marker_ids(orchestrator) == ["c3", "c4"]
        await orchestrator.wait_idle()

    async def test_failed_refetch_keeps_collection(self, orchestrator, backend):
        backend.failures.add("complaints")
        orchestrator.filters.toggle_status("pending")
        await orchestrator.wait_idle()

        assert len(orchestrator.complaints.complaints) == 5
        assert "HTTP 500" in orchestrator.error
        assert marker_ids(orchestrator) == ["c1"]
        assert orchestrator.filter_panel()["error"] == orchestrator.error

        backend.failures.clear()
        await orchestrator.retry()
        assert orchestrator.error is None
        assert backend.requests_to("complaints")[-1].url.params["status"] == "pending"

    async def test_reset_filters(self, orchestrator):
        orchestrator.filters.toggle_category("Roads")
        orchestrator.filters.reset_filters()
        assert marker_ids(orchestrator) == ["c1", "c2", "c3", "c4"]
        assert not orchestrator.filters.has_active_filters
        await orchestrator.wait_idle()


class TestLayers:
    """Toggles touch only the affected renderer."""

    async def test_heatmap_toggle_leaves_markers(self, orchestrator):
        markers = orchestrator.markers.overlay
        orchestrator.filters.toggle_layer("heatmap")
        assert orchestrator.heatmap.overlay is None
        assert orchestrator.surface.overlays_of("heatmap") == []
        assert orchestrator.markers.overlay is markers

        orchestrator.filters.toggle_layer("heatmap")
        orchestrator.filters.set_layer_visible("heatmap", True)
        assert len(orchestrator.surface.overlays_of("heatmap")) == 1

    async def test_boundaries_toggle(self, orchestrator):
        orchestrator.filters.toggle_layer("ucBoundaries")
        assert list(orchestrator.fine_boundaries.shapes) == ["UC-1", "UC-2", "UC-3"]
        assert orchestrator.coarse_boundaries.overlay is None
        orchestrator.filters.toggle_layer("townBoundaries")
        assert list(orchestrator.coarse_boundaries.shapes) == ["Saddar", "Gulshan"]
        assert len(orchestrator.surface.overlays_of("boundaries")) == 2

    async def test_markers_hidden(self, orchestrator):
        orchestrator.filters.toggle_layer("markers")
        assert orchestrator.surface.overlays_of("markers") == []


class TestSelection:
    """Territory clicks and marker clicks."""

    async def test_territory_click_sets_region(self, client, config, backend):
        selected = []
        async with MapOrchestrator(
            client=client, config=config,
            initial_layers={"fine_boundaries": True},
            on_territory_select=selected.append,
        ) as orch:
            orch.fine_boundaries.click("UC-1")

            assert orch.filters.state.region_fine == "UC-1"
            assert orch.territories.selected_fine.id == "UC-1"
            assert selected[0]["type"] == "UC"
            assert selected[0]["uc_id"] == "UC-1"
            assert orch.fine_boundaries.style_of("UC-1")["weight"] == 3
            assert orch.surface.zoom == 15

            await orch.wait_idle()
            assert backend.requests_to("complaints")[-1].url.params["uc_id"] == "UC-1"

    async def test_numeric_uc_ids(self, client, config, backend, uc_records):
        """The backend sends uc_id as a number; selection still matches the drawn shape."""
        backend.territories["UC"] = {"data": [dict(r, uc_id=i) for i, r in enumerate(uc_records, start=1)]}
        selected = []
        async with MapOrchestrator(
            client=client, config=config,
            initial_layers={"fine_boundaries": True},
            on_territory_select=selected.append,
        ) as orch:
            assert list(orch.fine_boundaries.shapes) == ["1", "2", "3"]
            orch.fine_boundaries.click("1")

            assert orch.filters.state.region_fine == "1"
            assert selected[0]["uc_id"] == "1"
            assert orch.territories.selected_fine.id == "1"
            assert orch.territories.get_bounds_of_selection() is not None
            assert orch.fit_to_selection() is not None
            assert orch.fine_boundaries.style_of("1")["weight"] == 3
            await orch.wait_idle()
            assert backend.requests_to("complaints")[-1].url.params["uc_id"] == "1"

    async def test_town_click_replaces_uc(self, client, config):
        async with MapOrchestrator(
            client=client, config=config,
            initial_filters={"ucId": "UC-1"},
            initial_layers={"fine_boundaries": True, "coarse_boundaries": True},
        ) as orch:
            assert orch.fine_boundaries.style_of("UC-1")["weight"] == 3
            orch.coarse_boundaries.click("Gulshan")
            assert orch.filters.state.region_fine is None
            assert orch.filters.state.region_coarse == "Gulshan"
            assert orch.fine_boundaries.style_of("UC-1")["weight"] == 1
            assert orch.coarse_boundaries.style_of("Gulshan")["weight"] == 6
            await orch.wait_idle()

    async def test_fit_to_selection(self, orchestrator):
        assert orchestrator.fit_to_selection() is None
        orchestrator.filters.set_region_fine("UC-3")
        bounds = orchestrator.fit_to_selection()
        assert (bounds.north, bounds.east) == pytest.approx((24.95, 67.10))
        assert orchestrator.surface.center == pytest.approx(bounds.center)
        await orchestrator.wait_idle()

    async def test_marker_click(self, client, config):
        chosen = []
        async with MapOrchestrator(client=client, config=config, on_complaint_select=chosen.append) as orch:
            assert orch.select_complaint("c2").id == "c2"
            assert orch.selected_complaint.id == "c2"
            assert [c.id for c in chosen] == ["c2"]


class TestView:
    """Zoom re-clustering, viewport counts and export."""

    async def test_zoom_reclusters(self, client, config, backend, make_record):
        backend.complaints = {"data": [
            make_record(f"p{i}", 24.86 + 0.001 * (i % 4), 67.01 + 0.001 * (i // 4)) for i in range(12)
        ]}
        async with MapOrchestrator(client=client, config=config) as orch:
            assert orch.markers.layer.clustered
            orch.set_view((24.86, 67.01), 16)
            assert not orch.markers.layer.clustered
            assert len(orch.markers.layer.markers) == 12
            orch.reset_view()
            assert orch.surface.zoom == 12
            assert orch.markers.layer.clustered

    async def test_complaints_in_view(self, orchestrator):
        assert orchestrator.complaints_in_view == 0
        assert orchestrator.legend()["complaints_in_view"] == 0
        orchestrator.report_viewport()
        assert orchestrator.complaints_in_view == 4
        orchestrator.set_view((24.0, 66.0), 14)
        assert orchestrator.complaints_in_view == 0

    async def test_viewport_params(self, client, config, backend):
        config["fetch"]["viewport_params"] = True
        async with MapOrchestrator(client=client, config=config) as orch:
            orch.set_view((24.9, 67.05), 13)
            await orch.wait_idle()
            params = backend.requests_to("complaints")[-1].url.params
            assert float(params["sw_lat"]) < 24.9 < float(params["ne_lat"])

    async def test_legend_and_panel(self, orchestrator):
        legend = orchestrator.legend()
        assert [s["title"] for s in legend["sections"]] == ["Categories", "Status", "Complaint Density"]
        orchestrator.filters.toggle_layer("fine_boundaries")
        assert orchestrator.legend()["sections"][-1]["title"] == "Boundaries"

        panel = orchestrator.filter_panel()
        assert panel["stats"].total == 5
        assert panel["fine_list"][0]["id"] == "UC-1"
        assert panel["active_filter_count"] == 0

    async def test_hidden_panels(self, client, config):
        async with MapOrchestrator(
            client=client, config=config, show_legend=False, show_filter_panel=False
        ) as orch:
            assert orch.legend() is None
            assert orch.filter_panel() is None

    async def test_export_html(self, orchestrator, tmp_path):
        path = orchestrator.export_html(str(tmp_path / "map.html"))
        assert (tmp_path / "map.html").exists()
        assert path.endswith("map.html")


class TestLifecycle:
    async def test_close_detaches(self, client, config, backend):
        orch = MapOrchestrator(client=client, config=config)
        await orch.start()
        await orch.start()
        assert orch.surface.handler_count("moveend") == 1
        await orch.close()

        assert orch.surface.overlays == ()
        assert orch.surface.handler_count("zoomend") == 0
        count = len(backend.requests)
        orch.filters.toggle_category("Water")
        assert len(backend.requests) == count
        assert not client._http.is_closed

    async def test_owned_client_closed(self, config, backend):
        orch = MapOrchestrator(config=config, transport=backend.transport())
        async with orch:
            assert len(orch.complaints.complaints) == 5
        assert orch.client._http.is_closed
