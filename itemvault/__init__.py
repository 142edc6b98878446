"""Fetch, stage, and catalog remote binary assets in a record store."""

__version__ = "0.1.0"
