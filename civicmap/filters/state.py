"""Filter and layer-visibility state with pure transitions.

Every transition takes a state and returns a new one; nothing here mutates
its input. FilterStateManager (manager.py) is the only holder of the
current state.
"""

import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, Iterable, Mapping, Optional, Tuple

from civicmap.models import SEVERITY_MAX, SEVERITY_MIN


def _clamp_severity(value) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = math.nan
    if math.isnan(number):
        raise ValueError(f"Severity bound must be a number, got {value!r}")
    return int(max(SEVERITY_MIN, min(SEVERITY_MAX, number)))


@dataclass(frozen=True)
class SeverityRange:
    min: int = SEVERITY_MIN
    max: int = SEVERITY_MAX

    @property
    def is_default(self) -> bool:
        return self.min <= SEVERITY_MIN and self.max >= SEVERITY_MAX

    def contains(self, severity: int) -> bool:
        return self.min <= severity <= self.max


@dataclass(frozen=True)
class DateRange:
    date_from: Optional[str] = None
    date_to: Optional[str] = None

    @property
    def is_default(self) -> bool:
        return not self.date_from and not self.date_to


@dataclass(frozen=True)
class RegionSelection:
    """Selected territory: a UC id or a Town name, never both."""

    fine_id: Optional[str] = None
    coarse_name: Optional[str] = None

    def __post_init__(self):
        if self.fine_id and self.coarse_name:
            raise ValueError("A region selection holds a UC or a Town, not both")

    @property
    def is_empty(self) -> bool:
        return not self.fine_id and not self.coarse_name

    def with_fine(self, fine_id: Optional[str]) -> "RegionSelection":
        return RegionSelection(fine_id=fine_id or None, coarse_name=None)

    def with_coarse(self, coarse_name: Optional[str]) -> "RegionSelection":
        return RegionSelection(fine_id=None, coarse_name=coarse_name or None)


@dataclass(frozen=True)
class FilterState:
    """Complaint filter state.

    ``categories`` and ``statuses`` are ordered sets kept as tuples in
    selection order.
    """

    categories: Tuple[str, ...] = ()
    statuses: Tuple[str, ...] = ()
    severity: SeverityRange = field(default_factory=SeverityRange)
    date_range: DateRange = field(default_factory=DateRange)
    region: RegionSelection = field(default_factory=RegionSelection)
    search_query: str = ""

    @property
    def region_fine(self) -> Optional[str]:
        return self.region.fine_id

    @property
    def region_coarse(self) -> Optional[str]:
        return self.region.coarse_name

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]] = None) -> "FilterState":
        """Build a state from caller-supplied defaults merged over the built-ins.

        Accepts both the engine's names and the embedding page's camelCase
        names (``status``, ``dateRange``, ``ucId``, ``town``, ``searchQuery``).
        """
        state = cls()
        for key, value in (values or {}).items():
            state = set_filter(state, key, value)
        return state


@dataclass(frozen=True)
class LayerVisibility:
    markers: bool = True
    heatmap: bool = True
    fine_boundaries: bool = False
    coarse_boundaries: bool = False
    clusters: bool = True


LAYER_NAMES = tuple(f.name for f in fields(LayerVisibility))

_LAYER_ALIASES = {
    "ucBoundaries": "fine_boundaries",
    "uc_boundaries": "fine_boundaries",
    "townBoundaries": "coarse_boundaries",
    "town_boundaries": "coarse_boundaries",
    "clustering": "clusters",
}


def layer_name(name: str) -> str:
    """Resolve a layer name or alias, raising ValueError for unknown names."""
    resolved = _LAYER_ALIASES.get(name, name)
    if resolved not in LAYER_NAMES:
        raise ValueError(f"Unknown layer: {name}. Must be one of: {', '.join(LAYER_NAMES)}")
    return resolved


def _toggle(values: Tuple[str, ...], value: str) -> Tuple[str, ...]:
    if value in values:
        return tuple(v for v in values if v != value)
    return values + (value,)


def _ordered_unique(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(v for v in values if v))


def toggle_category(state: FilterState, category: str) -> FilterState:
    return replace(state, categories=_toggle(state.categories, category))


def toggle_status(state: FilterState, status: str) -> FilterState:
    return replace(state, statuses=_toggle(state.statuses, status))


def select_all_categories(state: FilterState, categories: Iterable[str]) -> FilterState:
    return replace(state, categories=_ordered_unique(categories))


def clear_categories(state: FilterState) -> FilterState:
    return replace(state, categories=())


def set_severity_range(state: FilterState, min_value, max_value) -> FilterState:
    """Clamp both ends to [1, 10]. The ends are not reordered: a slider
    consumer that lets min pass max gets exactly what it set."""
    return replace(state, severity=SeverityRange(_clamp_severity(min_value), _clamp_severity(max_value)))


def set_date_range(state: FilterState, date_from: Optional[str], date_to: Optional[str]) -> FilterState:
    return replace(state, date_range=DateRange(date_from or None, date_to or None))


def set_search_query(state: FilterState, query: Optional[str]) -> FilterState:
    return replace(state, search_query=query or "")


def set_region_fine(state: FilterState, fine_id: Optional[str]) -> FilterState:
    return replace(state, region=state.region.with_fine(fine_id))


def set_region_coarse(state: FilterState, coarse_name: Optional[str]) -> FilterState:
    return replace(state, region=state.region.with_coarse(coarse_name))


def set_region(state: FilterState, region: RegionSelection) -> FilterState:
    return replace(state, region=region)


def clear_region(state: FilterState) -> FilterState:
    return replace(state, region=RegionSelection())


def reset_filters(state: Optional[FilterState] = None) -> FilterState:
    return FilterState()


def set_filter(state: FilterState, key: str, value: Any) -> FilterState:
    """Replace a single filter group by name.

    Raises:
        ValueError: If ``key`` names no filter group.
    """
    if key == "categories":
        return replace(state, categories=_ordered_unique(value or ()))
    if key in ("status", "statuses"):
        return replace(state, statuses=_ordered_unique(value or ()))
    if key == "severity":
        if isinstance(value, Mapping):
            return set_severity_range(state, value.get("min", SEVERITY_MIN), value.get("max", SEVERITY_MAX))
        if isinstance(value, SeverityRange):
            return set_severity_range(state, value.min, value.max)
        low, high = value
        return set_severity_range(state, low, high)
    if key in ("date_range", "dateRange"):
        if isinstance(value, DateRange):
            return set_date_range(state, value.date_from, value.date_to)
        if isinstance(value, Mapping):
            return set_date_range(state, value.get("from", value.get("date_from")), value.get("to", value.get("date_to")))
        low, high = value
        return set_date_range(state, low, high)
    if key in ("region_fine", "ucId", "uc_id"):
        return set_region_fine(state, value)
    if key in ("region_coarse", "town"):
        return set_region_coarse(state, value)
    if key == "region":
        if isinstance(value, RegionSelection):
            return set_region(state, value)
        value = value or {}
        if value.get("fine_id"):
            return set_region_fine(state, value["fine_id"])
        return set_region_coarse(state, value.get("coarse_name"))
    if key in ("search_query", "searchQuery", "search"):
        return set_search_query(state, value)
    raise ValueError(f"Unknown filter: {key}")


def toggle_layer(layers: LayerVisibility, name: str) -> LayerVisibility:
    name = layer_name(name)
    return replace(layers, **{name: not getattr(layers, name)})


def set_layer_visible(layers: LayerVisibility, name: str, visible: bool) -> LayerVisibility:
    return replace(layers, **{layer_name(name): bool(visible)})


def layers_from_mapping(values: Optional[Mapping[str, bool]] = None) -> LayerVisibility:
    layers = LayerVisibility()
    for name, visible in (values or {}).items():
        layers = set_layer_visible(layers, name, visible)
    return layers
