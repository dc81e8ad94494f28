from .result_cache import CacheEntry, ResultCache
from . import keys

__all__ = ["CacheEntry", "ResultCache", "keys"]
