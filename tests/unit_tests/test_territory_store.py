"""Unit tests for civicmap.stores.territories."""

import pytest

from civicmap.filters import FilterStateManager
from civicmap.models import TerritoryLevel
from civicmap.stores import TerritoryStore

pytestmark = pytest.mark.asyncio


class TestFetchAll:
    """Concurrent loading and caching of both levels."""

    async def test_loads_both_levels(self, client, backend):
        store = TerritoryStore(client)
        await store.fetch_all()
        assert [f.id for f in store.fine] == ["UC-1", "UC-2", "UC-3"]
        assert [f.id for f in store.coarse] == ["Saddar", "Gulshan"]
        assert store.is_loaded(TerritoryLevel.FINE)
        assert store.error is None
        assert not store.loading
        assert {r.url.params["city"] for r in backend.requests} == {"Karachi"}

    async def test_cached(self, client, backend):
        store = TerritoryStore(client)
        await store.fetch_all()
        await store.fetch_all()
        assert len(backend.requests) == 2
        await store.fetch_all(refresh=True)
        assert len(backend.requests) == 4

    async def test_partial_failure(self, client, backend):
        backend.failures.add("territories:Town")
        store = TerritoryStore(client)
        await store.fetch_all()
        assert len(store.fine) == 3
        assert store.coarse == ()
        assert not store.is_loaded(TerritoryLevel.COARSE)
        assert store.error.startswith("Town boundaries")

        backend.failures.clear()
        await store.fetch_all()
        assert len(store.coarse) == 2
        assert store.error is None
        assert len(backend.requests_to("territories")) == 3


class TestLookups:
    """Lookups and exports over loaded features."""

    async def test_lists(self, client):
        store = TerritoryStore(client)
        await store.fetch_all()
        assert store.fine_list[0] == {"id": "UC-1", "name": "Saddar UC-1", "town": "Saddar"}
        assert store.coarse_list[1] == {"id": "Gulshan", "name": "Gulshan"}
        assert [f.id for f in store.get_fine_in_coarse("Saddar")] == ["UC-1", "UC-2"]
        assert store.get_fine_by_id(None) is None
        assert store.get_coarse_by_name("Nowhere") is None
        assert store.find_territory(24.86, 67.03).id == "UC-2"
        assert store.find_territory(24.86, 67.03, TerritoryLevel.COARSE).id == "Saddar"

    async def test_exports(self, client):
        store = TerritoryStore(client)
        await store.fetch_all()
        collection = store.feature_collection(TerritoryLevel.FINE)
        assert collection["type"] == "FeatureCollection"
        assert len(collection["features"]) == 3
        gdf = store.to_geodataframe(TerritoryLevel.COARSE)
        assert list(gdf["name"]) == ["Saddar", "Gulshan"]
        assert gdf.crs.to_string() == "EPSG:4326"


class TestSelection:
    """Selection lives in the filter state and is reached through callables."""

    async def test_selection_through_manager(self, client):
        manager = FilterStateManager()
        store = TerritoryStore(
            client,
            selection_getter=lambda: manager.state.region,
            selection_setter=manager.set_region,
        )
        await store.fetch_all()

        store.select_fine("UC-1")
        assert manager.state.region_fine == "UC-1"
        assert store.selected_feature.id == "UC-1"

        manager.set_region_coarse("Gulshan")
        assert store.selected_fine is None
        assert store.selected_coarse.name == "Gulshan"

        store.clear_selection()
        assert manager.state.region.is_empty
        assert store.get_bounds_of_selection() is None

    async def test_private_selection(self, client):
        store = TerritoryStore(client)
        await store.fetch_all()
        store.select_coarse("Saddar")
        b = store.get_bounds_of_selection()
        assert (b.south, b.west, b.north, b.east) == pytest.approx((24.85, 67.00, 24.87, 67.04))

    async def test_bounds_modes(self, client):
        """all_rings spans both polygons of UC-3; first_ring only the first."""
        full = TerritoryStore(client)
        await full.fetch_all()
        full.select_fine("UC-3")
        b = full.get_bounds_of_selection()
        assert (b.north, b.east) == pytest.approx((24.95, 67.10))

        first = TerritoryStore(client, selection_bounds="first_ring")
        await first.fetch_all()
        first.select_fine("UC-3")
        b = first.get_bounds_of_selection()
        assert (b.north, b.east) == pytest.approx((24.91, 67.06))

    async def test_unknown_selection_not_found(self, client):
        store = TerritoryStore(client)
        await store.fetch_all()
        store.select_fine("UC-99")
        assert store.selected_feature is None
        assert store.get_bounds_of_selection() is None

    async def test_bad_bounds_mode(self, client):
        with pytest.raises(ValueError):
            TerritoryStore(client, selection_bounds="hull")
