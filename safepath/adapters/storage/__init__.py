"""
Storage adapters for SafePath hexagonal architecture.

This module contains KVStorePort implementations backing the result cache.
"""

from .memory_kv import InMemoryKVStore
from .sqlite_kv import SQLiteKVStore

__all__ = ["InMemoryKVStore", "SQLiteKVStore"]
