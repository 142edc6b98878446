"""
Storage Layer.

This package handles all data persistence: the configuration file, the
record database with its assets, and the staging area in the documents
directory.
"""

from .config_manager import ConfigManager
from .records import QueryMatch, SQLiteRecordDatabase
from .staging import StagingStore

__all__ = ["ConfigManager", "QueryMatch", "SQLiteRecordDatabase", "StagingStore"]
