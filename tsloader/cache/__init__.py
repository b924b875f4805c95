from .base import CodeCache
from .disk import CacheEntry, DiskCache
from .memory import InMemoryCache
from .noop import NoopCache

__all__ = ["CodeCache", "CacheEntry", "DiskCache", "InMemoryCache", "NoopCache"]
