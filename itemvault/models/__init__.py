"""
Data Models Layer.

This package contains the core data structures used throughout the application:
the Pydantic configuration model, stored records, catalog items, and the
catalog's published state.
"""

from .config import VaultConfig
from .item import Item
from .record import Asset, Record, RecordRef
from .state import CatalogError, CatalogState, LoadStatus

__all__ = [
    "Asset",
    "CatalogError",
    "CatalogState",
    "Item",
    "LoadStatus",
    "Record",
    "RecordRef",
    "VaultConfig",
]
