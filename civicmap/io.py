"""Normalization of backend payloads into engine records.

The backend has returned complaints, heatmap cells and territories in
several envelope shapes over time. Everything here accepts any JSON value
and degrades to an empty result instead of raising.
"""
from __future__ import annotations

import math
import typing as T

from civicmap.models import (
    DEFAULT_CATEGORY,
    DEFAULT_STATUS,
    SEVERITY_MAX,
    Complaint,
    HeatPoint,
    TerritoryFeature,
    TerritoryLevel,
)


def _as_list(value) -> list | None:
    return value if isinstance(value, list) else None


def unwrap_list(payload, keys: T.Sequence[str]) -> list:
    """Extract a record list from a bare list or a (nested) envelope.

    Tries ``payload`` itself, then ``payload[key]`` for each key, then
    ``payload["data"][key]``.

    Args:
        payload: Decoded JSON body.
        keys: Envelope keys to try, in order.

    Returns:
        list: The records, or an empty list for any other shape.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []
    for key in keys:
        found = _as_list(payload.get(key))
        if found is not None:
            return found
    data = payload.get("data")
    if isinstance(data, dict):
        for key in keys:
            if key == "data":
                continue
            found = _as_list(data.get(key))
            if found is not None:
                return found
    return []


def normalize_complaint_payload(payload) -> list[dict]:
    """Return the raw complaint records of a ``GET complaints`` body.

    Accepted shapes: ``[...]``, ``{"complaints": [...]}``, ``{"data": [...]}``
    and ``{"data": {"complaints": [...]}}``.
    """
    return [r for r in unwrap_list(payload, ("complaints", "data")) if isinstance(r, dict)]


def _to_float(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def coord_of(record: dict) -> tuple[float | None, float | None]:
    """Extract (lat, lng) from a complaint record.

    Supports GeoJSON ``location.coordinates`` ([lng, lat]) first, then flat
    and nested lat/lng field pairs.

    Args:
        record: Raw complaint record.

    Returns:
        Tuple of (lat, lng) or (None, None) if coordinates not found.
    """
    loc = record.get("location")
    if isinstance(loc, dict):
        coords = loc.get("coordinates")
        if isinstance(coords, (list, tuple)) and len(coords) >= 2:
            lng, lat = _to_float(coords[0]), _to_float(coords[1])
            if lat is not None and lng is not None:
                return lat, lng
    for src in (record, loc if isinstance(loc, dict) else {}):
        for a, b in (("lat", "lng"), ("lat", "lon"), ("latitude", "longitude")):
            lat, lng = _to_float(src.get(a)), _to_float(src.get(b))
            if lat is not None and lng is not None:
                return lat, lng
    return None, None


def parse_severity(value) -> int | None:
    """Parse a severity value into an integer 1-10.

    Missing, zero, negative and non-numeric values yield None (the map then
    uses the default severity of 5). Values above 10, infinity included,
    are capped.
    """
    if isinstance(value, dict):
        value = value.get("score", value.get("value"))
    number = _to_float(value)
    if number is None or math.isnan(number) or number <= 0:
        return None
    if number >= SEVERITY_MAX:
        return SEVERITY_MAX
    return max(1, int(round(number)))


def _text(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def complaint_from_record(record: dict) -> Complaint:
    """Build a Complaint from one raw backend record, defaulting missing fields."""
    category = record.get("category")
    if isinstance(category, dict):
        category = category.get("primary")
    status = record.get("status")
    if isinstance(status, dict):
        status = status.get("current")
    loc = record.get("location") if isinstance(record.get("location"), dict) else {}
    lat, lng = coord_of(record)
    complaint_id = record.get("_id") or record.get("id") or record.get("complaintId")

    return Complaint(
        id=str(complaint_id) if complaint_id is not None else "",
        lat=lat,
        lng=lng,
        category=_text(category) or DEFAULT_CATEGORY,
        status=_text(status) or DEFAULT_STATUS,
        severity=parse_severity(record.get("severity")),
        description=_text(record.get("description") or record.get("text")) or "",
        address=_text(record.get("address") or loc.get("address")),
        created_at=_text(record.get("createdAt")),
        region_id=_text(record.get("ucId") or record.get("ucNumber") or loc.get("uc")),
        region_name=_text(record.get("town") or record.get("townName")),
        reference=_text(record.get("complaintId")),
        raw=record,
    )


def complaints_from_payload(payload) -> list[Complaint]:
    return [complaint_from_record(r) for r in normalize_complaint_payload(payload)]


def normalize_heatmap_payload(payload) -> list[HeatPoint]:
    """Parse a ``GET complaints/heatmap`` body into heat points.

    Items may be ``[lat, lng, intensity]`` triples or objects with
    ``lat``/``lng`` and ``intensity`` (or ``weight``). Intensities are
    clamped to [0, 1]; items without coordinates are skipped.
    """
    points = []
    for item in unwrap_list(payload, ("heatmap", "clusters", "points", "data")):
        if isinstance(item, (list, tuple)) and len(item) >= 2:
            lat, lng = _to_float(item[0]), _to_float(item[1])
            intensity = _to_float(item[2]) if len(item) > 2 else None
        elif isinstance(item, dict):
            lat, lng = coord_of(item)
            intensity = _to_float(item.get("intensity", item.get("weight")))
        else:
            continue
        if lat is None or lng is None or not (math.isfinite(lat) and math.isfinite(lng)):
            continue
        if intensity is None or math.isnan(intensity):
            intensity = 0.5
        points.append(HeatPoint(lat, lng, min(1.0, max(0.0, intensity))))
    return points


def normalize_territory_payload(payload) -> list[dict]:
    return [r for r in unwrap_list(payload, ("territories", "data")) if isinstance(r, dict)]


def territory_from_record(record: dict, level: TerritoryLevel) -> TerritoryFeature:
    """Convert one territory record into a uniform TerritoryFeature.

    UCs are keyed by ``uc_id`` and Towns by their name, matching how the
    backend filters complaints (``uc_id=`` / ``town=``).
    """
    geometry = record.get("geometry") or record.get("boundary")
    if not isinstance(geometry, dict):
        geometry = None

    if level is TerritoryLevel.FINE:
        key = _text(record.get("uc_id"))
        name = _text(record.get("uc_name") or record.get("name"))
        parent = _text(record.get("town"))
        properties = {
            "id": record.get("_id"),
            "uc_id": key,
            "uc_name": record.get("uc_name"),
            "town": record.get("town"),
            "level": level.value,
        }
    else:
        name = _text(record.get("town_name") or record.get("town") or record.get("name"))
        key = name
        parent = None
        metadata = record.get("metadata") if isinstance(record.get("metadata"), dict) else {}
        properties = {
            "id": record.get("_id"),
            "town_id": record.get("town_id") or record.get("_id"),
            "town_name": name,
            "district": metadata.get("district") or record.get("district"),
            "level": level.value,
        }

    return TerritoryFeature(
        id=key,
        name=name,
        level=level,
        parent_name=parent,
        geometry=geometry,
        properties=properties,
    )


def territories_from_payload(payload, level: TerritoryLevel) -> list[TerritoryFeature]:
    return [territory_from_record(r, level) for r in normalize_territory_payload(payload)]
