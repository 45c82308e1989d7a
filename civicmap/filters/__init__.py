"""Filter state, transitions and the shared effective predicate."""

from civicmap.filters.manager import FilterStateManager
from civicmap.filters.predicate import (
    EffectivePredicate,
    active_filter_count,
    has_active_filters,
    refine_complaints,
    to_api_params,
)
from civicmap.filters.state import (
    LAYER_NAMES,
    DateRange,
    FilterState,
    LayerVisibility,
    RegionSelection,
    SeverityRange,
)

__all__ = [
    "FilterStateManager",
    "EffectivePredicate",
    "active_filter_count",
    "has_active_filters",
    "refine_complaints",
    "to_api_params",
    "LAYER_NAMES",
    "DateRange",
    "FilterState",
    "LayerVisibility",
    "RegionSelection",
    "SeverityRange",
]
