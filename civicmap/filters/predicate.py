"""Effective predicate shared by server queries and client-side refinement.

A FilterState is compiled into an ordered list of clauses. Each clause
produces its backend query parameters and, when it is applied on the
client, its record test, so the two views of a filter cannot drift apart.
"""

from abc import ABC
from typing import Dict, Iterable, List, Sequence, Tuple

from civicmap.filters.state import DateRange, FilterState, RegionSelection, SeverityRange
from civicmap.models import SEVERITY_MAX, SEVERITY_MIN, Complaint


class Clause(ABC):
    """One filter group.

    Attributes:
        name: Group name, used for counting active groups.
        client_side: Whether refine() applies this clause to fetched records.
    """

    name = ""
    client_side = False

    def active(self) -> bool:
        return False

    def api_params(self) -> Dict[str, object]:
        return {}

    def matches(self, complaint: Complaint) -> bool:
        return True


def _multi_params(values: Sequence[str], singular: str, plural: str) -> Dict[str, str]:
    if len(values) == 1:
        return {singular: values[0]}
    if len(values) > 1:
        return {plural: ",".join(values)}
    return {}


class SearchClause(Clause):
    """Case-insensitive substring match on description or address. Client only."""

    name = "search"
    client_side = True

    def __init__(self, query: str):
        self.query = query or ""
        self._needle = self.query.lower()

    def active(self) -> bool:
        return bool(self.query)

    def matches(self, complaint: Complaint) -> bool:
        if not self.query:
            return True
        return (
            self._needle in (complaint.description or "").lower()
            or self._needle in (complaint.address or "").lower()
        )


class CategoryClause(Clause):
    name = "categories"
    client_side = True

    def __init__(self, categories: Tuple[str, ...]):
        self.categories = tuple(categories)

    def active(self) -> bool:
        return bool(self.categories)

    def api_params(self):
        return _multi_params(self.categories, "category", "categories")

    def matches(self, complaint):
        return not self.categories or complaint.category in self.categories


class StatusClause(Clause):
    name = "status"
    client_side = True

    def __init__(self, statuses: Tuple[str, ...]):
        self.statuses = tuple(statuses)

    def active(self) -> bool:
        return bool(self.statuses)

    def api_params(self):
        return _multi_params(self.statuses, "status", "statuses")

    def matches(self, complaint):
        return not self.statuses or complaint.status in self.statuses


class SeverityClause(Clause):
    """Severity range. Always applied on the client, using severity 5 for
    records without one; sent to the server only when narrowed."""

    name = "severity"
    client_side = True

    def __init__(self, severity: SeverityRange):
        self.severity = severity

    def active(self) -> bool:
        return not self.severity.is_default

    def api_params(self):
        params = {}
        if self.severity.min > SEVERITY_MIN:
            params["severity_min"] = self.severity.min
        if self.severity.max < SEVERITY_MAX:
            params["severity_max"] = self.severity.max
        return params

    def matches(self, complaint):
        return self.severity.contains(complaint.effective_severity)


class DateClause(Clause):
    """Creation date bounds. Server only."""

    name = "date"

    def __init__(self, date_range: DateRange):
        self.date_range = date_range

    def active(self) -> bool:
        return not self.date_range.is_default

    def api_params(self):
        params = {}
        if self.date_range.date_from:
            params["date_from"] = self.date_range.date_from
        if self.date_range.date_to:
            params["date_to"] = self.date_range.date_to
        return params


class RegionClause(Clause):
    """UC or Town restriction. Server only."""

    name = "region"

    def __init__(self, region: RegionSelection):
        self.region = region

    def active(self) -> bool:
        return not self.region.is_empty

    def api_params(self):
        if self.region.fine_id:
            return {"uc_id": self.region.fine_id}
        if self.region.coarse_name:
            return {"town": self.region.coarse_name}
        return {}


class EffectivePredicate:
    """Compiled filter: query parameters and client refinement from one source."""

    def __init__(self, state: FilterState):
        self.state = state
        # Order matters: refine() applies client clauses in this order.
        self.clauses: List[Clause] = [
            SearchClause(state.search_query),
            CategoryClause(state.categories),
            StatusClause(state.statuses),
            SeverityClause(state.severity),
            DateClause(state.date_range),
            RegionClause(state.region),
        ]

    @property
    def client_clauses(self) -> List[Clause]:
        return [c for c in self.clauses if c.client_side]

    @property
    def active_groups(self) -> List[str]:
        return [c.name for c in self.clauses if c.active()]

    def to_api_params(self) -> Dict[str, object]:
        params: Dict[str, object] = {}
        for clause in self.clauses:
            params.update(clause.api_params())
        return params

    def matches(self, complaint: Complaint) -> bool:
        return all(c.matches(complaint) for c in self.client_clauses)

    def refine(self, complaints: Iterable[Complaint]) -> List[Complaint]:
        result = list(complaints)
        for clause in self.client_clauses:
            if not result:
                break
            result = [c for c in result if clause.matches(c)]
        return result


def to_api_params(state: FilterState) -> Dict[str, object]:
    return EffectivePredicate(state).to_api_params()


def refine_complaints(state: FilterState, complaints: Iterable[Complaint]) -> List[Complaint]:
    return EffectivePredicate(state).refine(complaints)


def active_filter_count(state: FilterState) -> int:
    return len(EffectivePredicate(state).active_groups)


def has_active_filters(state: FilterState) -> bool:
    return active_filter_count(state) > 0
