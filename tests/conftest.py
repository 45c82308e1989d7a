"""Shared fixtures for CivicMap tests.

Provides sample backend records and a MockBackend that serves them through
an httpx.MockTransport, so stores and the orchestrator run against the real
client without a server.
"""

import asyncio
import copy
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from civicmap.api.client import CivicLensClient
from civicmap.config import load_config


def _square(west, south, east, north):
    return [[west, south], [east, south], [east, north], [west, north], [west, south]]


UC_RECORDS = [
    {
        "_id": "uc-doc-1",
        "uc_id": "UC-1",
        "uc_name": "Saddar UC-1",
        "town": "Saddar",
        "geometry": {"type": "Polygon", "coordinates": [_square(67.00, 24.85, 67.02, 24.87)]},
    },
    {
        "_id": "uc-doc-2",
        "uc_id": "UC-2",
        "uc_name": "Saddar UC-2",
        "town": "Saddar",
        "geometry": {"type": "Polygon", "coordinates": [_square(67.02, 24.85, 67.04, 24.87)]},
    },
    {
        "_id": "uc-doc-3",
        "uc_id": "UC-3",
        "uc_name": "Gulshan UC-3",
        "town": "Gulshan",
        "geometry": {
            "type": "MultiPolygon",
            "coordinates": [
                [_square(67.05, 24.90, 67.06, 24.91)],
                [_square(67.08, 24.92, 67.10, 24.95)],
            ],
        },
    },
]

TOWN_RECORDS = [
    {
        "_id": "town-doc-1",
        "town_name": "Saddar",
        "metadata": {"district": "South"},
        "geometry": {"type": "Polygon", "coordinates": [_square(67.00, 24.85, 67.04, 24.87)]},
    },
    {
        "_id": "town-doc-2",
        "town_name": "Gulshan",
        "metadata": {"district": "East"},
        "geometry": {"type": "Polygon", "coordinates": [_square(67.05, 24.90, 67.10, 24.95)]},
    },
]


def complaint_record(
    complaint_id: str,
    lat: Optional[float],
    lng: Optional[float],
    category: Any = "Water",
    status: Any = "pending",
    severity: Any = 5,
    **extra: Any,
) -> Dict[str, Any]:
    record = {
        "_id": complaint_id,
        "complaintId": f"CL-{complaint_id}",
        "category": {"primary": category} if isinstance(category, str) else category,
        "status": status,
        "severity": severity,
        "description": f"Complaint {complaint_id}",
    }
    if lat is not None and lng is not None:
        record["location"] = {"type": "Point", "coordinates": [lng, lat]}
    record.update(extra)
    return record


COMPLAINT_RECORDS = [
    complaint_record("c1", 24.86, 67.01, "Water", "pending", 9, address="Main Boulevard"),
    complaint_record("c2", 24.86, 67.03, "Electricity", "reported", 3),
    complaint_record("c3", 24.905, 67.055, "Roads", "resolved", None),
    complaint_record("c4", 24.93, 67.09, "Water", "in_progress", 7, description="Broken water pipe"),
    complaint_record("c5", None, None, "Garbage", "pending", 6),
]


class MockBackend:
    """In-process stand-in for the complaint API.

    Attributes:
        complaints: Body served for ``GET complaints``.
        heatmap: Body served for ``GET complaints/heatmap``.
        territories: Body per level served for ``GET territories``.
        failures: Paths (``complaints``, ``complaints/heatmap``,
            ``territories:UC``, ``territories:Town``) answered with ``status``.
        status: HTTP status used for failures.
        responder: Optional callable ``(request, n) -> (body, delay)`` that
            overrides the complaints body for the n-th (1-based) complaints
            request and delays the response by ``delay`` seconds.
        requests: Every request received, in order.
    """

    def __init__(self):
        self.complaints: Any = {"success": True, "data": {"complaints": copy.deepcopy(COMPLAINT_RECORDS)}}
        self.heatmap: Any = {"data": {"clusters": [{"lat": 24.86, "lng": 67.01, "count": 3, "intensity": 0.8}]}}
        self.territories: Dict[str, Any] = {
            "UC": {"success": True, "data": copy.deepcopy(UC_RECORDS)},
            "Town": {"success": True, "territories": copy.deepcopy(TOWN_RECORDS)},
        }
        self.failures = set()
        self.status = 500
        self.responder: Optional[Callable] = None
        self.requests: List[httpx.Request] = []

    def _path(self, request: httpx.Request) -> str:
        return request.url.path.split("/api/v1/", 1)[-1]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = self._path(request)
        key = path
        if path == "territories":
            key = f"territories:{request.url.params.get('level')}"
        if key in self.failures or path in self.failures:
            return httpx.Response(self.status, json={"success": False, "message": "boom"})

        if path == "complaints":
            body = self.complaints
            if self.responder is not None:
                body, delay = self.responder(request, len(self.requests_to("complaints")))
                if delay:
                    await asyncio.sleep(delay)
            return httpx.Response(200, json=body)
        if path == "complaints/heatmap":
            return httpx.Response(200, json=self.heatmap)
        if path == "territories":
            return httpx.Response(200, json=self.territories.get(request.url.params.get("level"), []))
        return httpx.Response(404, json={"success": False})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if self._path(r) == path]


@pytest.fixture
def backend():
    """Fresh MockBackend serving the sample records."""
    return MockBackend()


@pytest_asyncio.fixture
async def client(backend):
    """CivicLensClient wired to the mock backend."""
    api = CivicLensClient(base_url="http://testserver/api/v1", transport=backend.transport())
    yield api
    await api.aclose()


@pytest.fixture
def config(monkeypatch):
    """Default configuration with a short debounce for fast tests."""
    monkeypatch.delenv("CIVICMAP_API_URL", raising=False)
    monkeypatch.delenv("CIVICMAP_API_TOKEN", raising=False)
    cfg = load_config(None)
    cfg["api"]["base_url"] = "http://testserver/api/v1"
    cfg["fetch"]["debounce_ms"] = 20
    return cfg


@pytest.fixture
def make_record():
    """Factory for raw complaint records: ``make_record(id, lat, lng, category, status, severity, **extra)``."""
    return complaint_record


@pytest.fixture
def complaint_records():
    return copy.deepcopy(COMPLAINT_RECORDS)


@pytest.fixture
def uc_records():
    return copy.deepcopy(UC_RECORDS)


@pytest.fixture
def town_records():
    return copy.deepcopy(TOWN_RECORDS)
