"""Cache connector implementations."""

from .ram import CacheEntry, RAMCache

__all__ = ["RAMCache", "CacheEntry"]
