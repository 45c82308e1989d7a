"""Territory Store: UC and Town boundary collections and the selection view."""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import geopandas as gpd
from shapely.geometry import shape

from civicmap.api.client import CivicLensClient
from civicmap.errors import FetchError
from civicmap.filters.state import RegionSelection
from civicmap.geography.bounds import LatLngBounds, first_ring_bounds, geometry_bounds
from civicmap.geography.regions import get_territory_from_coordinates
from civicmap.io import territories_from_payload
from civicmap.models import TerritoryFeature, TerritoryLevel, territory_list

logger = logging.getLogger(__name__)

SelectionGetter = Callable[[], RegionSelection]
SelectionSetter = Callable[[RegionSelection], None]


class TerritoryStore:
    """Boundary features per level, fetched once and cached.

    The store does not own the region selection. It reads and writes it
    through ``selection_getter`` / ``selection_setter``; without them it keeps
    a private slot.

    Args:
        client: API client.
        city: City passed to the territories endpoint.
        selection_bounds: ``"all_rings"`` to bound every ring of the selected
            geometry, ``"first_ring"`` to bound the outer ring of the first
            polygon only.
        selection_getter: Returns the current RegionSelection.
        selection_setter: Stores a new RegionSelection.
    """

    def __init__(
        self,
        client: CivicLensClient,
        city: Optional[str] = "Karachi",
        selection_bounds: str = "all_rings",
        selection_getter: Optional[SelectionGetter] = None,
        selection_setter: Optional[SelectionSetter] = None,
    ):
        if selection_bounds not in ("all_rings", "first_ring"):
            raise ValueError(f"Unknown selection_bounds mode: {selection_bounds}")
        self.client = client
        self.city = city
        self.selection_bounds = selection_bounds
        self._features: Dict[TerritoryLevel, Tuple[TerritoryFeature, ...]] = {
            TerritoryLevel.FINE: (),
            TerritoryLevel.COARSE: (),
        }
        self._loaded = set()
        self._errors: Dict[TerritoryLevel, str] = {}
        self.loading = False
        self._own_selection = RegionSelection()
        self._get_selection = selection_getter or (lambda: self._own_selection)
        self._set_selection = selection_setter or self._store_own_selection

    def _store_own_selection(self, selection: RegionSelection) -> None:
        self._own_selection = selection

    # Fetching

    async def fetch_all(self, refresh: bool = False) -> None:
        """Fetch both levels concurrently.

        Levels already loaded are skipped unless ``refresh`` is set. A level
        whose request fails keeps its previous features and is retried on the
        next call.
        """
        levels = [
            level for level in (TerritoryLevel.FINE, TerritoryLevel.COARSE)
            if refresh or level not in self._loaded
        ]
        if not levels:
            return
        self.loading = True
        try:
            await asyncio.gather(*(self._fetch_level(level) for level in levels))
        finally:
            self.loading = False

    async def _fetch_level(self, level: TerritoryLevel) -> None:
        try:
            payload = await self.client.get_territories(level, self.city)
        except FetchError as e:
            self._errors[level] = f"{level.value} boundaries: {e}"
            logger.warning("Territory fetch failed for %s: %s", level.value, e)
            return
        self._features[level] = tuple(territories_from_payload(payload, level))
        self._loaded.add(level)
        self._errors.pop(level, None)
        logger.info("Loaded %d %s boundaries", len(self._features[level]), level.value)

    @property
    def error(self) -> Optional[str]:
        if not self._errors:
            return None
        return "; ".join(self._errors[level] for level in sorted(self._errors, key=lambda l: l.value))

    def is_loaded(self, level: TerritoryLevel) -> bool:
        return level in self._loaded

    # Collections

    def features(self, level: TerritoryLevel) -> Tuple[TerritoryFeature, ...]:
        return self._features[TerritoryLevel(level)]

    @property
    def fine(self) -> Tuple[TerritoryFeature, ...]:
        return self._features[TerritoryLevel.FINE]

    @property
    def coarse(self) -> Tuple[TerritoryFeature, ...]:
        return self._features[TerritoryLevel.COARSE]

    @property
    def fine_list(self) -> List[Dict[str, Any]]:
        return territory_list(self.fine)

    @property
    def coarse_list(self) -> List[Dict[str, Any]]:
        return territory_list(self.coarse)

    def get_fine_by_id(self, fine_id: Optional[str]) -> Optional[TerritoryFeature]:
        if not fine_id:
            return None
        return next((f for f in self.fine if f.id == fine_id), None)

    def get_coarse_by_name(self, name: Optional[str]) -> Optional[TerritoryFeature]:
        if not name:
            return None
        return next((f for f in self.coarse if f.name == name), None)

    def get_fine_in_coarse(self, coarse_name: str) -> List[TerritoryFeature]:
        return [f for f in self.fine if f.parent_name == coarse_name]

    def find_territory(
        self, lat: float, lng: float, level: TerritoryLevel = TerritoryLevel.FINE
    ) -> Optional[TerritoryFeature]:
        """Territory of ``level`` whose polygon contains (lat, lng)."""
        return get_territory_from_coordinates(lat, lng, self.features(level))

    def feature_collection(self, level: TerritoryLevel) -> Dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "features": [f.to_geojson() for f in self.features(level) if f.has_geometry],
        }

    def to_geodataframe(self, level: TerritoryLevel) -> gpd.GeoDataFrame:
        """Features of one level with geometry as a GeoDataFrame in EPSG:4326."""
        rows = [f for f in self.features(level) if f.has_geometry]
        return gpd.GeoDataFrame(
            {
                "id": [f.id for f in rows],
                "name": [f.name for f in rows],
                "level": [f.level.value for f in rows],
                "parent_name": [f.parent_name for f in rows],
            },
            geometry=[shape(f.geometry) for f in rows],
            crs="EPSG:4326",
        )

    # Selection

    @property
    def selection(self) -> RegionSelection:
        return self._get_selection()

    def select_fine(self, fine_id: Optional[str]) -> None:
        self._set_selection(self.selection.with_fine(fine_id))

    def select_coarse(self, coarse_name: Optional[str]) -> None:
        self._set_selection(self.selection.with_coarse(coarse_name))

    def clear_selection(self) -> None:
        self._set_selection(RegionSelection())

    @property
    def selected_fine(self) -> Optional[TerritoryFeature]:
        return self.get_fine_by_id(self.selection.fine_id)

    @property
    def selected_coarse(self) -> Optional[TerritoryFeature]:
        return self.get_coarse_by_name(self.selection.coarse_name)

    @property
    def selected_feature(self) -> Optional[TerritoryFeature]:
        return self.selected_fine or self.selected_coarse

    def get_bounds_of_selection(self) -> Optional[LatLngBounds]:
        """Bounding box of the selected feature, or None without a selection."""
        feature = self.selected_feature
        if feature is None or not feature.has_geometry:
            return None
        if self.selection_bounds == "first_ring":
            return first_ring_bounds(feature.geometry)
        return geometry_bounds(feature.geometry)
