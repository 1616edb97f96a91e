from __future__ import annotations

import copy
import hashlib
import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_KEY_SEPARATOR = "|||"


@dataclass(slots=True)
class CacheEntry:
    key: str
    result: Any
    created_at: float


class NormalizedCache:
    """Content-addressed TTL store.

    Keys are built from input texts after trimming, collapsing whitespace and
    lowercasing, so inputs that differ only in case or spacing share an entry.
    Expired entries are dropped lazily on read and in bulk by ``purge_expired``.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
        name: str = "analysis",
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._name = name
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @staticmethod
    def normalize(text: str) -> str:
        return _WHITESPACE_RE.sub(" ", (text or "").strip()).lower()

    def make_key(self, *parts: str) -> str:
        joined = _KEY_SEPARATOR.join(self.normalize(part) for part in parts)
        return hashlib.sha256(joined.encode("utf-8")).hexdigest()

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at > self._ttl

    def get(self, *parts: str) -> Any | None:
        key = self.make_key(*parts)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, self._clock()):
                del self._entries[key]
                logger.debug("cache_entry_expired cache=%s key=%s", self._name, key[:12])
                return None
            return copy.deepcopy(entry.result)

    def set(self, *parts: str, result: Any) -> str:
        key = self.make_key(*parts)
        entry = CacheEntry(key=key, result=copy.deepcopy(result), created_at=self._clock())
        with self._lock:
            self._entries[key] = entry
        return key

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.info("cache_purge cache=%s removed=%s", self._name, len(stale))
        return len(stale)

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
