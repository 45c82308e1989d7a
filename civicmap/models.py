"""Core record types for the complaint map engine.

Complaint and territory records are immutable snapshots produced by the
stores from backend responses; renderers and the orchestrator only read
them.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, NamedTuple, Optional

DEFAULT_CATEGORY = "Other"
DEFAULT_STATUS = "reported"
DEFAULT_SEVERITY = 5
SEVERITY_MIN = 1
SEVERITY_MAX = 10

CATEGORIES = (
    "Water", "Electricity", "Roads", "Sanitation",
    "Sewerage", "Street Lights", "Garbage", "Other",
)
STATUSES = ("reported", "pending", "in_progress", "resolved", "closed")


class TerritoryLevel(str, Enum):
    """Administrative boundary level, valued as the backend's ``level`` parameter."""

    FINE = "UC"
    COARSE = "Town"


class HeatPoint(NamedTuple):
    """Heatmap weight: a (lat, lng, intensity) triple."""

    lat: float
    lng: float
    intensity: float


@dataclass(frozen=True)
class Complaint:
    """A single complaint as shown on the map.

    Attributes:
        id: Backend document id (``_id``), or the reference when absent.
        lat: Latitude in decimal degrees, None when the record has no location.
        lng: Longitude in decimal degrees, None when the record has no location.
        category: Primary category label.
        status: Lifecycle status.
        severity: Severity 1-10, or None when the backend sent none.
        description: Free text of the complaint.
        address: Street address, if any.
        created_at: Creation timestamp as sent by the backend (ISO string).
        region_id: Fine region (UC) identifier, if any.
        region_name: Coarse region (Town) name, if any.
        reference: Human-facing complaint reference (``complaintId``).
        raw: The original record.
    """

    id: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    category: str = DEFAULT_CATEGORY
    status: str = DEFAULT_STATUS
    severity: Optional[int] = None
    description: str = ""
    address: Optional[str] = None
    created_at: Optional[str] = None
    region_id: Optional[str] = None
    region_name: Optional[str] = None
    reference: Optional[str] = None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False, hash=False)

    @property
    def effective_severity(self) -> int:
        return self.severity if self.severity else DEFAULT_SEVERITY

    @property
    def has_valid_coordinates(self) -> bool:
        """True when both coordinates are finite and inside the WGS84 range."""
        if self.lat is None or self.lng is None:
            return False
        if math.isnan(self.lat) or math.isnan(self.lng):
            return False
        return -90.0 <= self.lat <= 90.0 and -180.0 <= self.lng <= 180.0

    @property
    def latlng(self) -> Optional[tuple]:
        if not self.has_valid_coordinates:
            return None
        return (self.lat, self.lng)

    def heat_point(self) -> Optional[HeatPoint]:
        """Return the heatmap weight for this complaint.

        Intensity is severity / 10, so a complaint without severity weighs 0.5.
        """
        if not self.has_valid_coordinates:
            return None
        return HeatPoint(self.lat, self.lng, self.effective_severity / 10)

    def matches_id(self, complaint_id: str) -> bool:
        return complaint_id is not None and complaint_id in (self.id, self.reference)


@dataclass(frozen=True)
class DerivedStats:
    """Category and status counts over one fetch result."""

    total: int = 0
    by_category: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    by_status: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_complaints(cls, complaints) -> "DerivedStats":
        by_category: Dict[str, int] = {}
        by_status: Dict[str, int] = {}
        for c in complaints:
            by_category[c.category] = by_category.get(c.category, 0) + 1
            by_status[c.status] = by_status.get(c.status, 0) + 1
        return cls(
            total=len(complaints),
            by_category=MappingProxyType(by_category),
            by_status=MappingProxyType(by_status),
        )


@dataclass(frozen=True)
class TerritoryFeature:
    """Boundary polygon of a UC or Town.

    Attributes:
        id: Identifier used for selection (``uc_id`` for UCs, town name for Towns).
        name: Display name.
        level: TerritoryLevel of the feature.
        parent_name: Name of the containing Town (UCs only).
        geometry: GeoJSON Polygon or MultiPolygon mapping, rings of [lng, lat].
        properties: Properties handed to selection callbacks.
    """

    id: Optional[str]
    name: Optional[str]
    level: TerritoryLevel
    parent_name: Optional[str] = None
    geometry: Optional[Mapping[str, Any]] = field(default=None, compare=False, hash=False)
    properties: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def has_geometry(self) -> bool:
        return bool(self.geometry and self.geometry.get("coordinates"))

    def to_geojson(self) -> Dict[str, Any]:
        return {
            "type": "Feature",
            "properties": dict(self.properties),
            "geometry": dict(self.geometry) if self.geometry else None,
        }


def territory_list(features: List[TerritoryFeature]) -> List[Dict[str, Any]]:
    """Return dropdown entries ({id, name, town}) for a feature list."""
    items = []
    for f in features:
        item = {"id": f.id, "name": f.name}
        if f.level is TerritoryLevel.FINE:
            item["town"] = f.parent_name
        items.append(item)
    return items
