"""
Adapters for SafePath hexagonal architecture.

This module contains the concrete implementations of port interfaces
that handle external I/O and infrastructure concerns.
"""

from .storage import InMemoryKVStore, SQLiteKVStore
from .gdelt import GdeltSearchClient
from .static_data import RegionDataLoader, StaticRegionDataLoader

__all__ = ["InMemoryKVStore", "SQLiteKVStore", "GdeltSearchClient", "RegionDataLoader", "StaticRegionDataLoader"]
