"""Incremental per-file cache of scored findings.

An entry is keyed by file path and validated by (content digest, mtime): when
both match, the file's items are returned without re-extracting or
re-scoring anything. Entries are replaced wholesale under a lock, so a
reader sees either the old list or the new one, never a partial update.
Items are copied on the way in and out; lifecycle changes made through the
item store never reach a cached entry.

The cache is bounded by file count with least-recently-used eviction;
otherwise it would grow with every distinct file visited in a long session.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from collections import OrderedDict
from dataclasses import replace

from dropcomments_core.models import CacheEntry, StaleCommentItem

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILES = 5000


def content_digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8", errors="surrogatepass")).hexdigest()


def _copy(item: StaleCommentItem) -> StaleCommentItem:
    return replace(item, reasons=list(item.reasons), reason_messages=list(item.reason_messages))


def _well_formed(entry: object) -> bool:
    return (
        isinstance(entry, CacheEntry)
        and isinstance(entry.digest, str)
        and isinstance(entry.mtime, (int, float))
        and isinstance(entry.items, tuple)
        and all(isinstance(item, StaleCommentItem) for item in entry.items)
    )


class IncrementalCache:
    def __init__(self, max_files: int = DEFAULT_MAX_FILES):
        self.max_files = max(1, max_files)
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def lookup(self, path: str, digest: str, mtime: float) -> list[StaleCommentItem] | None:
        """Return the cached items for an unchanged file, or None on a miss."""
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                self.misses += 1
                return None
            if not _well_formed(entry):
                # Treat a corrupted entry as a miss and force a recompute.
                logger.warning("Discarding malformed cache entry for %s", path)
                del self._entries[path]
                self.misses += 1
                return None
            if entry.digest != digest or entry.mtime != mtime:
                self.misses += 1
                return None
            self._entries.move_to_end(path)
            self.hits += 1
            return [_copy(item) for item in entry.items]

    def store(self, path: str, digest: str, mtime: float, items: list[StaleCommentItem]) -> None:
        """Replace the entry for path with a freshly computed one."""
        entry = CacheEntry(digest=digest, mtime=mtime, items=tuple(_copy(item) for item in items))
        with self._lock:
            self._entries[path] = entry
            self._entries.move_to_end(path)
            while len(self._entries) > self.max_files:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache entry for %s", evicted)

    def invalidate(self, path: str) -> None:
        with self._lock:
            self._entries.pop(path, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
