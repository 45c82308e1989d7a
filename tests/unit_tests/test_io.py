"""Unit tests for civicmap.io normalization."""

import math

import pytest

from civicmap.io import (
    complaint_from_record,
    complaints_from_payload,
    coord_of,
    normalize_complaint_payload,
    normalize_heatmap_payload,
    parse_severity,
    territories_from_payload,
)
from civicmap.models import DerivedStats, HeatPoint, TerritoryLevel


class TestNormalizeComplaintPayload:
    """Test suite for the accepted response envelopes."""

    RECORD = {"_id": "a"}

    @pytest.mark.parametrize("payload", [
        [RECORD],
        {"complaints": [RECORD]},
        {"data": [RECORD]},
        {"data": {"complaints": [RECORD]}},
    ])
    def test_accepted_shapes(self, payload):
        assert normalize_complaint_payload(payload) == [self.RECORD]

    @pytest.mark.parametrize("payload", [
        None, "oops", 42, {}, {"data": None}, {"data": {"items": []}}, {"complaints": "x"},
    ])
    def test_malformed_shapes_yield_empty(self, payload):
        assert normalize_complaint_payload(payload) == []
        assert complaints_from_payload(payload) == []

    def test_non_dict_items_dropped(self):
        assert normalize_complaint_payload([self.RECORD, None, 3]) == [self.RECORD]


class TestComplaintFromRecord:
    """Test suite for record conversion and defaults."""

    def test_spec_scenario(self):
        """One record with severity 9 at [67.0, 24.9] gives weight (24.9, 67.0, 0.9)."""
        payload = {"data": {"complaints": [
            {"_id": "a", "severity": 9, "location": {"coordinates": [67.0, 24.9]}},
        ]}}
        complaints = complaints_from_payload(payload)
        assert len(complaints) == 1
        assert complaints[0].heat_point() == HeatPoint(24.9, 67.0, 0.9)

    def test_defaults(self):
        complaint = complaint_from_record({"_id": "x"})
        assert complaint.category == "Other"
        assert complaint.status == "reported"
        assert complaint.severity is None
        assert complaint.effective_severity == 5
        assert not complaint.has_valid_coordinates
        assert complaint.heat_point() is None

    def test_nested_fields(self, make_record):
        record = make_record(
            "c1", 24.86, 67.01, category="Water", status={"current": "resolved"},
            text="Leak", location={"coordinates": [67.01, 24.86], "address": "Block 5"},
            ucId="UC-1", town="Saddar",
        )
        record.pop("description")
        complaint = complaint_from_record(record)
        assert complaint.status == "resolved"
        assert complaint.description == "Leak"
        assert complaint.address == "Block 5"
        assert complaint.region_id == "UC-1"
        assert complaint.region_name == "Saddar"
        assert complaint.matches_id("CL-c1")

    def test_plain_category_string(self):
        assert complaint_from_record({"_id": "x", "category": "Roads"}).category == "Roads"

    @pytest.mark.parametrize("record,expected", [
        ({"lat": 24.9, "lng": 67.0}, (24.9, 67.0)),
        ({"latitude": "24.9", "longitude": "67.0"}, (24.9, 67.0)),
        ({"location": {"lat": 24.9, "lon": 67.0}}, (24.9, 67.0)),
        ({"location": {"coordinates": [67.0, 24.9]}}, (24.9, 67.0)),
        ({"location": {"coordinates": []}}, (None, None)),
        ({}, (None, None)),
    ])
    def test_coord_of(self, record, expected):
        assert coord_of(record) == expected

    def test_nan_coordinates_are_invalid(self):
        complaint = complaint_from_record({"_id": "x", "location": {"coordinates": [float("nan"), 24.9]}})
        assert not complaint.has_valid_coordinates
        assert complaint.latlng is None


class TestParseSeverity:
    @pytest.mark.parametrize("value,expected", [
        (None, None), (0, None), (-3, None), ("high", None), (float("nan"), None),
        (1, 1), ("7", 7), (6.6, 7), (14, 10), ({"score": 8}, 8),
        ("1e400", 10), (float("inf"), 10), (float("-inf"), None),
    ])
    def test_values(self, value, expected):
        assert parse_severity(value) == expected

    def test_intensity_range(self):
        """Intensity stays within [0.1, 1.0] for severities 1..10."""
        for severity in range(1, 11):
            point = complaint_from_record(
                {"_id": "s", "severity": severity, "location": {"coordinates": [67.0, 24.9]}}
            ).heat_point()
            assert 0.1 <= point.intensity <= 1.0
            assert math.isclose(point.intensity, severity / 10)


class TestHeatmapPayload:
    def test_triples_and_objects(self):
        payload = {"data": {"clusters": [
            [24.9, 67.0, 0.7],
            {"lat": 24.8, "lng": 67.1, "count": 4, "intensity": 1.7},
            {"lat": 24.7, "lng": 67.2},
            {"count": 3},
            "junk",
        ]}}
        assert normalize_heatmap_payload(payload) == [
            HeatPoint(24.9, 67.0, 0.7),
            HeatPoint(24.8, 67.1, 1.0),
            HeatPoint(24.7, 67.2, 0.5),
        ]

    @pytest.mark.parametrize("key", ["heatmap", "points", "data"])
    def test_envelopes(self, key):
        assert len(normalize_heatmap_payload({key: [[24.9, 67.0]]})) == 1

    def test_malformed(self):
        assert normalize_heatmap_payload({"error": "x"}) == []


class TestTerritories:
    def test_uc_features(self, uc_records):
        features = territories_from_payload({"data": uc_records}, TerritoryLevel.FINE)
        assert [f.id for f in features] == ["UC-1", "UC-2", "UC-3"]
        assert features[0].parent_name == "Saddar"
        assert features[0].properties["uc_id"] == "UC-1"
        assert features[0].properties["level"] == "UC"

    def test_numeric_uc_id_normalized(self, uc_records):
        records = [dict(r, uc_id=i) for i, r in enumerate(uc_records, start=1)]
        features = territories_from_payload(records, TerritoryLevel.FINE)
        assert [f.id for f in features] == ["1", "2", "3"]
        assert [f.properties["uc_id"] for f in features] == ["1", "2", "3"]

    def test_town_features(self, town_records):
        features = territories_from_payload({"territories": town_records}, TerritoryLevel.COARSE)
        assert [f.id for f in features] == ["Saddar", "Gulshan"]
        assert features[1].properties["district"] == "East"
        assert features[1].properties["town_name"] == "Gulshan"

    def test_missing_geometry(self):
        features = territories_from_payload([{"uc_id": "UC-9"}], TerritoryLevel.FINE)
        assert not features[0].has_geometry


class TestDerivedStats:
    def test_counts(self, complaints):
        stats = DerivedStats.from_complaints(complaints)
        assert stats.total == 5
        assert stats.by_category["Water"] == 2
        assert stats.by_status["pending"] == 2
        with pytest.raises(TypeError):
            stats.by_category["Water"] = 0
