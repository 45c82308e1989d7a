"""Pytest fixtures for CivicMap unit tests.

Builds engine records from the raw sample records in tests/conftest.py.
"""

import pytest

from civicmap.io import complaints_from_payload, territories_from_payload
from civicmap.models import Complaint, TerritoryLevel
from civicmap.render.surface import MapSurface


@pytest.fixture
def complaints(complaint_records):
    """The five sample complaints; ``c5`` has no location."""
    return complaints_from_payload(complaint_records)


@pytest.fixture
def uc_features(uc_records):
    return territories_from_payload(uc_records, TerritoryLevel.FINE)


@pytest.fixture
def town_features(town_records):
    return territories_from_payload(town_records, TerritoryLevel.COARSE)


@pytest.fixture
def surface():
    """Karachi-centred 1024x768 surface at zoom 12."""
    return MapSurface()


@pytest.fixture
def crowd():
    """Factory for ``n`` complaints spread over a small area around (24.86, 67.01)."""

    def make(n, spread=0.002, prefix="p"):
        return [
            Complaint(
                id=f"{prefix}{i}",
                lat=24.86 + spread * (i % 5),
                lng=67.01 + spread * (i // 5),
                category="Water" if i % 2 else "Roads",
            )
            for i in range(n)
        ]

    return make
