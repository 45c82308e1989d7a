"""HTTP access to the complaint backend."""

from civicmap.api.client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, CivicLensClient

__all__ = ["CivicLensClient", "DEFAULT_BASE_URL", "DEFAULT_TIMEOUT"]
