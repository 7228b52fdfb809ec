from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

from core.config import DEFAULT_CACHE_TTL_SECONDS
from core.errors import FetchFailed
from core.mapping import RawRow

logger = logging.getLogger(__name__)


class _Miss:
    _instance: Optional["_Miss"] = None

    def __new__(cls) -> "_Miss":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISS"


MISS = _Miss()


@dataclass(frozen=True)
class CacheEntry:
    source_key: str
    rows: Tuple[RawRow, ...]
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now <= self.expires_at


class RowCache:
    """Time-boxed raw-row batches, one entry per source key.

    Expiry is checked lazily on read. Entries are replaced whole under a lock,
    so a reader sees either the old batch or the new one.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS, clock: Callable[[], float] = time.time) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, source_key: str) -> Tuple[RawRow, ...] | _Miss:
        with self._lock:
            entry = self._entries.get(source_key)
        if entry is None or not entry.is_fresh(self._clock()):
            return MISS
        return entry.rows

    def peek(self, source_key: str) -> Optional[CacheEntry]:
        """Return the stored entry even when it has expired."""
        with self._lock:
            return self._entries.get(source_key)

    def put(self, source_key: str, rows: Sequence[RawRow], ttl_seconds: Optional[float] = None) -> CacheEntry:
        ttl = self.ttl_seconds if ttl_seconds is None else float(ttl_seconds)
        entry = CacheEntry(
            source_key=source_key,
            rows=tuple(tuple(row) for row in rows),
            expires_at=self._clock() + ttl,
        )
        with self._lock:
            self._entries[source_key] = entry
        return entry

    def invalidate(self, source_key: str) -> None:
        with self._lock:
            removed = self._entries.pop(source_key, None)
        if removed is not None:
            logger.debug("cache invalidated for %s", source_key)

    def get_or_fetch(self, source_key: str, loader: Callable[[], Sequence[RawRow]]) -> Tuple[RawRow, ...]:
        cached = self.get(source_key)
        if cached is not MISS:
            return cached  # type: ignore[return-value]
        try:
            rows = loader()
        except Exception as exc:
            logger.warning("refresh failed for %s: %s", source_key, exc)
            raise FetchFailed(source_key, exc) from exc
        return self.put(source_key, rows).rows
