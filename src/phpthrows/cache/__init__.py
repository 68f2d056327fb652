"""Persistent method-throws cache."""

from phpthrows.cache.manager import CacheManager, CachedUnit, file_fingerprint

__all__ = ["CacheManager", "CachedUnit", "file_fingerprint"]
