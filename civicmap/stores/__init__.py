"""Data stores for complaints and territory boundaries."""

from civicmap.stores.complaints import ComplaintStore
from civicmap.stores.debounce import Debouncer
from civicmap.stores.territories import TerritoryStore

__all__ = ["ComplaintStore", "Debouncer", "TerritoryStore"]
