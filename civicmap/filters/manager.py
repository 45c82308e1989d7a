"""Filter State Manager: the single holder of filter and layer state."""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from civicmap.filters import state as transitions
from civicmap.filters.predicate import EffectivePredicate
from civicmap.filters.state import FilterState, LayerVisibility, RegionSelection
from civicmap.models import CATEGORIES, STATUSES

logger = logging.getLogger(__name__)

Listener = Callable[[str, "FilterStateManager"], None]


class FilterStateManager:
    """Owns FilterState and LayerVisibility and applies transitions to them.

    Every operation returns the new state. Listeners registered with
    subscribe() are called with ``"filters"`` or ``"layers"`` after a change;
    operations that leave the state unchanged notify nobody.

    Args:
        initial_filters: Caller defaults merged over the built-in filters.
        initial_layers: Caller defaults merged over the built-in layer flags.
        categories: Categories offered by select_all_categories(). Defaults
            to the built-in category list.
    """

    def __init__(
        self,
        initial_filters: Optional[Mapping[str, Any]] = None,
        initial_layers: Optional[Mapping[str, bool]] = None,
        categories: Optional[Iterable[str]] = None,
    ):
        self._state = FilterState.from_mapping(initial_filters)
        self._layers = transitions.layers_from_mapping(initial_layers)
        self._categories: Tuple[str, ...] = tuple(
            categories if categories is not None else CATEGORIES
        )
        self._listeners: List[Listener] = []
        self._predicate: Optional[EffectivePredicate] = None

    @property
    def state(self) -> FilterState:
        return self._state

    @property
    def layers(self) -> LayerVisibility:
        return self._layers

    @property
    def available_categories(self) -> Tuple[str, ...]:
        return self._categories

    @property
    def available_statuses(self) -> Tuple[str, ...]:
        return STATUSES

    @property
    def predicate(self) -> EffectivePredicate:
        if self._predicate is None or self._predicate.state is not self._state:
            self._predicate = EffectivePredicate(self._state)
        return self._predicate

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, kind: str) -> None:
        for listener in list(self._listeners):
            listener(kind, self)

    def _commit(self, new_state: FilterState) -> FilterState:
        if new_state != self._state:
            self._state = new_state
            logger.debug("Filters changed: %s", self.predicate.active_groups)
            self._notify("filters")
        return self._state

    def _commit_layers(self, new_layers: LayerVisibility) -> LayerVisibility:
        if new_layers != self._layers:
            self._layers = new_layers
            self._notify("layers")
        return self._layers

    # Filter transitions

    def toggle_category(self, category: str) -> FilterState:
        return self._commit(transitions.toggle_category(self._state, category))

    def toggle_status(self, status: str) -> FilterState:
        return self._commit(transitions.toggle_status(self._state, status))

    def select_all_categories(self) -> FilterState:
        return self._commit(transitions.select_all_categories(self._state, self._categories))

    def clear_categories(self) -> FilterState:
        return self._commit(transitions.clear_categories(self._state))

    def set_severity_range(self, min_value, max_value) -> FilterState:
        return self._commit(transitions.set_severity_range(self._state, min_value, max_value))

    def set_date_range(self, date_from: Optional[str], date_to: Optional[str]) -> FilterState:
        return self._commit(transitions.set_date_range(self._state, date_from, date_to))

    def set_search_query(self, query: Optional[str]) -> FilterState:
        return self._commit(transitions.set_search_query(self._state, query))

    def set_region_fine(self, fine_id: Optional[str]) -> FilterState:
        return self._commit(transitions.set_region_fine(self._state, fine_id))

    def set_region_coarse(self, coarse_name: Optional[str]) -> FilterState:
        return self._commit(transitions.set_region_coarse(self._state, coarse_name))

    def set_region(self, region: RegionSelection) -> FilterState:
        return self._commit(transitions.set_region(self._state, region))

    def clear_region(self) -> FilterState:
        return self._commit(transitions.clear_region(self._state))

    def set_filter(self, key: str, value: Any) -> FilterState:
        return self._commit(transitions.set_filter(self._state, key, value))

    def set_filters(self, **values: Any) -> FilterState:
        """Replace several filter groups at once with a single notification."""
        new_state = self._state
        for key, value in values.items():
            new_state = transitions.set_filter(new_state, key, value)
        return self._commit(new_state)

    def reset_filters(self) -> FilterState:
        return self._commit(transitions.reset_filters(self._state))

    # Layer transitions

    def toggle_layer(self, name: str) -> LayerVisibility:
        return self._commit_layers(transitions.toggle_layer(self._layers, name))

    def set_layer_visible(self, name: str, visible: bool) -> LayerVisibility:
        return self._commit_layers(transitions.set_layer_visible(self._layers, name, visible))

    # Projections

    @property
    def has_active_filters(self) -> bool:
        return bool(self.predicate.active_groups)

    @property
    def active_filter_count(self) -> int:
        return len(self.predicate.active_groups)

    def to_api_params(self) -> Dict[str, object]:
        return self.predicate.to_api_params()
