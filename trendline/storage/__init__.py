"""In-memory TTL cache and on-disk snapshot store"""

from .cache import CacheEntry, TTLCache
from .snapshot_store import SnapshotStore

__all__ = ['CacheEntry', 'TTLCache', 'SnapshotStore']
