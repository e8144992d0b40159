"""Bounded score cache for the reranking service."""

from __future__ import annotations

import hashlib
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from knowledge_rag.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(slots=True)
class RerankCacheEntry:
    scores: tuple[float, ...]
    last_accessed: float


class RerankCache:
    """Maps (query, documents) to per-document scores.

    Eviction is least-recently-used by ``last_accessed`` and runs lazily on
    insert, at most once per ``cleanup_interval`` seconds; between cleanups the
    cache may briefly hold more than ``max_entries``. All access goes through
    one lock so concurrent inserts cannot lose updates.
    """

    def __init__(
        self,
        *,
        max_entries: int = 2000,
        cleanup_interval: float = 300.0,
        key_prefix_chars: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self.cleanup_interval = cleanup_interval
        self.key_prefix_chars = key_prefix_chars
        self._clock = clock
        self._entries: dict[str, RerankCacheEntry] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def make_key(self, query: str, documents: Sequence[str]) -> str:
        joined = "|".join(documents)[: self.key_prefix_chars]
        raw = f"{query}\x00{len(documents)}\x00{joined}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def get(self, query: str, documents: Sequence[str]) -> list[float] | None:
        key = self.make_key(query, documents)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or len(entry.scores) != len(documents):
                logger.debug("Rerank cache miss (%d/%d entries)", len(self._entries), self.max_entries)
                return None
            entry.last_accessed = self._clock()
            logger.debug("Rerank cache hit (%d/%d entries)", len(self._entries), self.max_entries)
            return list(entry.scores)

    def put(self, query: str, documents: Sequence[str], scores: Sequence[float]) -> None:
        key = self.make_key(query, documents)
        with self._lock:
            self._entries[key] = RerankCacheEntry(scores=tuple(scores), last_accessed=self._clock())
            self._cleanup_if_due()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _cleanup_if_due(self) -> int:
        now = self._clock()
        if now - self._last_cleanup <= self.cleanup_interval:
            return 0
        self._last_cleanup = now

        overflow = len(self._entries) - self.max_entries
        if overflow <= 0:
            return 0

        by_recency = sorted(self._entries.items(), key=lambda item: item[1].last_accessed)
        for key, _ in by_recency[:overflow]:
            del self._entries[key]
        logger.info("Evicted %d least-recently-used rerank cache entries", overflow)
        return overflow
