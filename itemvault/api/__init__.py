"""
Record Store API Layer.

This package wraps every operation the application performs against the
record store.
"""

from .client import RecordStoreClient

__all__ = ["RecordStoreClient"]
