"""Complaint Data Store.

Fetches complaints for the current filter parameters, normalizes them and
keeps the derived views (stats, heat weights) in step with the collection.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd

from civicmap.api.client import CivicLensClient
from civicmap.errors import FetchError
from civicmap.geography.bounds import LatLngBounds
from civicmap.io import complaints_from_payload, normalize_heatmap_payload
from civicmap.models import Complaint, DerivedStats, HeatPoint
from civicmap.stores.debounce import Debouncer

logger = logging.getLogger(__name__)

FRAME_COLUMNS = ["id", "lat", "lng", "category", "status", "severity"]


class ComplaintStore:
    """Holds the last successful complaint fetch and its derived views.

    Every network request takes a request id from a monotonically increasing
    counter. Only the response to the newest request may change the store;
    older responses are handed back to their caller and otherwise ignored.

    Args:
        client: API client.
        debounce_ms: Quiet period for fetch() in milliseconds.
    """

    def __init__(self, client: CivicLensClient, debounce_ms: int = 300):
        self.client = client
        self.complaints: Tuple[Complaint, ...] = ()
        self.stats = DerivedStats()
        self.heat_points: Tuple[HeatPoint, ...] = ()
        self.error: Optional[str] = None
        self.loading = False
        self.last_params: Optional[Dict[str, Any]] = None
        self._request_id = 0
        self._heatmap_request_id = 0
        self._debouncer = Debouncer(debounce_ms / 1000.0)

    @property
    def request_id(self) -> int:
        return self._request_id

    async def fetch(self, params: Optional[Mapping[str, Any]] = None) -> List[Complaint]:
        """Debounced fetch. Every caller of a burst gets the trailing call's result."""
        return await self._debouncer.call(self.fetch_now, dict(params or {}))

    async def fetch_now(self, params: Optional[Mapping[str, Any]] = None) -> List[Complaint]:
        """Fetch immediately.

        Returns:
            The normalized complaints of this response, or ``[]`` if the
            request failed.
        """
        params = dict(params or {})
        self._request_id += 1
        request_id = self._request_id
        self.last_params = params
        self.loading = True
        try:
            payload = await self.client.get_complaints(params)
            complaints = complaints_from_payload(payload)
        except FetchError as e:
            if request_id == self._request_id:
                self.error = str(e)
            logger.warning("Complaint fetch failed: %s", e)
            return []
        finally:
            if request_id == self._request_id:
                self.loading = False

        if request_id != self._request_id:
            logger.debug("Discarding stale complaint response %d (newest %d)", request_id, self._request_id)
            return complaints
        self._replace(complaints)
        self.error = None
        return complaints

    async def refresh(self) -> List[Complaint]:
        """Re-issue the last request immediately."""
        return await self.fetch_now(self.last_params)

    def _replace(self, complaints: List[Complaint]) -> None:
        self.complaints = tuple(complaints)
        self.stats = DerivedStats.from_complaints(self.complaints)
        self.heat_points = tuple(
            p for p in (c.heat_point() for c in self.complaints) if p is not None
        )
        logger.debug("Loaded %d complaints", len(self.complaints))

    async def fetch_heatmap(self, params: Optional[Mapping[str, Any]] = None) -> List[HeatPoint]:
        """Fetch server-aggregated heat points.

        Falls back to the weights of the current collection when the request
        fails or a newer heatmap request has been issued.
        """
        self._heatmap_request_id += 1
        request_id = self._heatmap_request_id
        try:
            payload = await self.client.get_heatmap(dict(params or {}))
        except FetchError as e:
            logger.warning("Heatmap fetch failed, using complaint weights: %s", e)
            return list(self.heat_points)
        if request_id != self._heatmap_request_id:
            logger.debug("Discarding stale heatmap response %d", request_id)
            return list(self.heat_points)
        return normalize_heatmap_payload(payload)

    def get_in_bounds(self, bounds: LatLngBounds) -> List[Complaint]:
        return [
            c for c in self.complaints
            if c.has_valid_coordinates and bounds.contains(c.lat, c.lng)
        ]

    def get_by_category(self, category: str) -> List[Complaint]:
        return [c for c in self.complaints if c.category == category]

    def get_by_id(self, complaint_id: str) -> Optional[Complaint]:
        for c in self.complaints:
            if c.matches_id(complaint_id):
                return c
        return None

    def to_frame(self, complaints=None) -> pd.DataFrame:
        """Tabular view of the collection (or of ``complaints``) for clustering."""
        rows = self.complaints if complaints is None else complaints
        return pd.DataFrame(
            [[c.id, c.lat, c.lng, c.category, c.status, c.severity] for c in rows],
            columns=FRAME_COLUMNS,
        ).astype({"lat": float, "lng": float})

    def close(self) -> None:
        self._debouncer.cancel()
