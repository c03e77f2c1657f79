"""
Per-snapshot caches keyed by content hash.

Every memoised result (band lists, quota bounds, candidate masks, valid
blocks) lives in a CacheEntry owned by exactly one snapshot key. A new board
state hashes differently, so it always starts from an empty entry.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Any

DEFAULT_MAX_ENTRIES = 16


@dataclass
class CacheEntry:
    key: str
    bands: Dict[str, Any] = field(default_factory=dict)
    quota: Dict[tuple, Any] = field(default_factory=dict)
    misc: Dict[Any, Any] = field(default_factory=dict)


class SnapshotCache:
    """LRU map snapshot.key → CacheEntry."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        self.max_entries = max_entries
        self._entries: 'OrderedDict[str, CacheEntry]' = OrderedDict()

    def entry(self, snapshot) -> CacheEntry:
        key = snapshot.key
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key)
            self._entries[key] = entry
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
        else:
            self._entries.move_to_end(key)
        return entry

    def discard(self, snapshot):
        self._entries.pop(snapshot.key, None)

    def clear(self):
        self._entries.clear()

    def __contains__(self, snapshot) -> bool:
        return snapshot.key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


SNAPSHOT_CACHE = SnapshotCache()


def cache_for(snapshot) -> CacheEntry:
    """Cache entry of `snapshot` in the process-wide cache."""
    return SNAPSHOT_CACHE.entry(snapshot)
