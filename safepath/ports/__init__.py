"""
Port interfaces for SafePath hexagonal architecture.

This module defines the port interfaces (Protocols) that define
the contracts between the core domain and external adapters.
"""

from .kvstore import KVStorePort
from .search import NewsSearchPort

__all__ = ["KVStorePort", "NewsSearchPort"]
