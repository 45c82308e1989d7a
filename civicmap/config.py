"""Configuration management for the complaint map engine.

Provides the built-in defaults and a loader that merges a user JSON file
over them section by section, applies environment overrides and validates
the result against a JSON schema.
"""
from __future__ import annotations

import copy
import json
import logging
import os
import pathlib

from jsonschema import Draft202012Validator

from civicmap.errors import ConfigError

_DEFAULT = {
    "api": {
        "base_url": "http://localhost:3000/api/v1",
        "timeout": 30.0,
        "token": None,
        "city": "Karachi",
    },
    "fetch": {
        "debounce_ms": 300,
        "viewport_params": False,
    },
    "map": {
        "center": [24.8607, 67.0011],
        "zoom": 12,
        "min_zoom": 10,
        "max_zoom": 18,
        "width_px": 1024,
        "height_px": 768,
        "tile_provider": "cartoDB",
    },
    "clustering": {
        "method": "greedy",
        "radius_px": 60,
        "min_points": 10,
        "disable_at_zoom": 16,
    },
    "heatmap": {
        "source": "complaints",
        "radius": 25,
        "blur": 15,
        "max_zoom": 17,
        "max": 1.0,
        "min_opacity": 0.4,
        "gradient": {
            "0.2": "#22C55E",
            "0.4": "#86EFAC",
            "0.6": "#F59E0B",
            "0.8": "#F97316",
            "1.0": "#EF4444",
        },
    },
    "boundaries": {
        "fit_padding": [50, 50],
        "selection_bounds": "all_rings",
    },
    "logging": {"level": "INFO"},
}

_NUMBER = {"type": "number"}
_POS_INT = {"type": "integer", "minimum": 0}

CONFIG_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "api": {
            "type": "object",
            "properties": {
                "base_url": {"type": "string", "minLength": 1},
                "timeout": {"type": "number", "exclusiveMinimum": 0},
                "token": {"type": ["string", "null"]},
                "city": {"type": "string"},
            },
        },
        "fetch": {
            "type": "object",
            "properties": {
                "debounce_ms": _POS_INT,
                "viewport_params": {"type": "boolean"},
            },
        },
        "map": {
            "type": "object",
            "properties": {
                "center": {"type": "array", "items": _NUMBER, "minItems": 2, "maxItems": 2},
                "zoom": _POS_INT,
                "min_zoom": _POS_INT,
                "max_zoom": _POS_INT,
                "width_px": {"type": "integer", "minimum": 1},
                "height_px": {"type": "integer", "minimum": 1},
                "tile_provider": {"type": "string"},
            },
        },
        "clustering": {
            "type": "object",
            "properties": {
                "method": {"enum": ["greedy", "dbscan"]},
                "radius_px": {"type": "number", "exclusiveMinimum": 0},
                "min_points": _POS_INT,
                "disable_at_zoom": _POS_INT,
            },
        },
        "heatmap": {
            "type": "object",
            "properties": {
                "source": {"enum": ["complaints", "server"]},
                "radius": _NUMBER,
                "blur": _NUMBER,
                "max_zoom": _POS_INT,
                "max": _NUMBER,
                "min_opacity": {"type": "number", "minimum": 0, "maximum": 1},
                "gradient": {"type": "object", "additionalProperties": {"type": "string"}},
            },
        },
        "boundaries": {
            "type": "object",
            "properties": {
                "fit_padding": {"type": "array", "items": _POS_INT, "minItems": 2, "maxItems": 2},
                "selection_bounds": {"enum": ["first_ring", "all_rings"]},
            },
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {"enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
            },
        },
    },
}


def validate_config(config: dict) -> None:
    """Validate a merged configuration against CONFIG_SCHEMA.

    Args:
        config: Configuration dictionary.

    Raises:
        ConfigError: Listing every schema violation found.
    """
    validator = Draft202012Validator(CONFIG_SCHEMA)
    errs = sorted(validator.iter_errors(config), key=lambda e: list(e.path))
    if errs:
        raise ConfigError(
            f"{'/'.join(str(p) for p in e.path) or '<root>'}: {e.message}" for e in errs
        )


def load_config(path: str | None = None) -> dict:
    """Load engine configuration from a JSON file.

    Loads the user configuration file and merges it with the default
    configuration. Sections present in both are merged key by key; user
    values win. ``CIVICMAP_API_URL`` and ``CIVICMAP_API_TOKEN`` override the
    API section.

    Args:
        path: Path to configuration JSON file. If None or the file doesn't
            exist, the defaults are used.

    Returns:
        dict: Merged, validated configuration dictionary.

    Raises:
        ConfigError: If the merged configuration is invalid.
    """
    merged = copy.deepcopy(_DEFAULT)
    p = pathlib.Path(path) if path else None
    if p and p.exists():
        with p.open("r", encoding="utf-8") as f:
            user = json.load(f)
        for k, v in user.items():
            if isinstance(v, dict) and isinstance(merged.get(k), dict):
                merged[k].update(v)
            else:
                merged[k] = v

    if os.environ.get("CIVICMAP_API_URL"):
        merged["api"]["base_url"] = os.environ["CIVICMAP_API_URL"]
    if os.environ.get("CIVICMAP_API_TOKEN"):
        merged["api"]["token"] = os.environ["CIVICMAP_API_TOKEN"]

    validate_config(merged)
    return merged


def configure_logging(config: dict | None = None) -> None:
    """Configure root logging from the ``logging`` section."""
    level = ((config or _DEFAULT).get("logging") or {}).get("level", "INFO")
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
