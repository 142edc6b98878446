"""
Media Layer.

This package is responsible for getting asset bytes in and out of the
application: the HTTP fetcher and the hand-off to the platform file viewer.
"""

from .fetcher import AssetFetcher, FetchedAsset
from .viewer import open_in_file_viewer

__all__ = ["AssetFetcher", "FetchedAsset", "open_in_file_viewer"]
