"""Small associative cache with oldest-clean-entry replacement."""

from __future__ import annotations

from dataclasses import dataclass

CACHE_CAPACITY = 16
CACHE_MISS = 0xFFFFFFFF

_INT_MAX = 2**31 - 1


@dataclass
class CacheEntry:
    """One cached word."""

    data: int = 0
    is_valid: bool = False
    is_dirty: bool = False
    timestamp: int = 0


class CachePolicy:
    """Chooses which entry to evict when the cache is full."""

    def erase(self, cache_map: dict[int, CacheEntry]) -> bool:
        """Remove the clean entry with the smallest timestamp.

        Returns False, removing nothing, if every entry is dirty.
        """
        oldest_time = _INT_MAX
        victim: int | None = None
        for address, entry in cache_map.items():
            if entry.timestamp < oldest_time and not entry.is_dirty:
                oldest_time = entry.timestamp
                victim = address
        if victim is None:
            return False
        del cache_map[victim]
        return True


class Cache:
    """Address-to-word cache that counts hits and misses."""

    def __init__(self, capacity: int = CACHE_CAPACITY) -> None:
        self.capacity = capacity
        self.entries: dict[int, CacheEntry] = {}
        self.hits = 0
        self.misses = 0
        self._policy = CachePolicy()

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, address: object) -> bool:
        return address in self.entries

    def get(self, address: int) -> int:
        """Cached word for ``address``, or ``CACHE_MISS``."""
        entry = self.entries.get(address)
        if entry is None:
            self.misses += 1
            return CACHE_MISS
        entry.is_valid = True
        self.hits += 1
        return entry.data

    def put(self, address: int, data: int, timestamp: int) -> None:
        """Cache a clean word, dropping invalid entries first.

        When full, the oldest clean entry is evicted; if all are dirty the
        word is not cached.
        """
        entry = CacheEntry(data=data, is_valid=True, is_dirty=False, timestamp=timestamp)
        self.entries = {a: e for a, e in self.entries.items() if e.is_valid}
        if len(self.entries) == self.capacity:
            if self._policy.erase(self.entries):
                self.entries[address] = entry
        else:
            self.entries[address] = entry

    def update(self, address: int, data: int) -> None:
        """Overwrite the word at ``address`` and mark it dirty.

        An address not yet cached gets a new, invalid, dirty entry.
        """
        entry = self.entries.setdefault(address, CacheEntry())
        entry.data = data
        entry.is_dirty = True

    def invalidate(self) -> None:
        """Mark every entry invalid."""
        for entry in self.entries.values():
            entry.is_valid = False

    def dirty_data(self) -> list[tuple[int, int]]:
        """(address, data) pairs of every dirty entry."""
        return [(a, e.data) for a, e in self.entries.items() if e.is_dirty]