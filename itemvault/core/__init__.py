"""
Core application engine.

The `ItemCatalog` owns the state the user sees and coordinates the fetcher,
the staging store, and the record store client for every user intent.
"""

from .catalog import ItemCatalog

__all__ = ["ItemCatalog"]
