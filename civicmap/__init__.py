"""CivicMap: geospatial complaint visualization and filtering engine.

Packages:
    filters: Filter and layer state, transitions and the effective predicate
    stores: Complaint and territory data stores
    clustering: Marker clustering in Web-Mercator pixel space
    geography: Bounds, projection and point-in-territory helpers
    render: Map surface, renderers, legend and folium export
    api: HTTP client for the complaint backend
"""

from civicmap.config import load_config
from civicmap.errors import CivicMapError, ConfigError, FetchError
from civicmap.filters import FilterState, FilterStateManager, LayerVisibility
from civicmap.models import Complaint, DerivedStats, HeatPoint, TerritoryFeature, TerritoryLevel
from civicmap.orchestrator import MapOrchestrator

__version__ = "0.1.0"

__all__ = [
    "load_config",
    "CivicMapError",
    "ConfigError",
    "FetchError",
    "FilterState",
    "FilterStateManager",
    "LayerVisibility",
    "Complaint",
    "DerivedStats",
    "HeatPoint",
    "TerritoryFeature",
    "TerritoryLevel",
    "MapOrchestrator",
]
