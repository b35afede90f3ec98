"""Process-wide geocode caches shared by every caller."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from ...models.domain import Coordinate
from .normalizer import normalize_key

logger = logging.getLogger(__name__)

DEFAULT_NEGATIVE_TTL_SECONDS = 600.0


def make_key(namespace: str, *parts: Optional[str]) -> str:
    """Build a namespaced cache key, e.g. ``addr|<address>`` or ``hub|7|<address>``."""
    return "|".join([namespace.lower(), *(normalize_key(part) for part in parts)])


def reverse_key(lat: float, lng: float) -> str:
    return f"rev|{round(lat, 6)}|{round(lng, 6)}"


class GeocodeCache:
    """Positive (address -> coordinate) and negative (address -> failure time) maps.

    Positive entries never expire. Negative entries are forgotten once older
    than ``negative_ttl_seconds``; expiry is checked on lookup.
    """

    def __init__(
        self,
        negative_ttl_seconds: float = DEFAULT_NEGATIVE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.negative_ttl_seconds = negative_ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._positive: dict[str, Coordinate] = {}
        self._negative: dict[str, float] = {}
        self._reverse: dict[str, str] = {}

    def get(self, key: str) -> Coordinate | None:
        with self._lock:
            return self._positive.get(key)

    def put(self, key: str, coordinate: Coordinate) -> None:
        with self._lock:
            self._positive.setdefault(key, coordinate)
            self._negative.pop(key, None)

    def get_failure(self, key: str) -> bool:
        """Return True iff a non-expired failure is recorded for ``key``."""
        with self._lock:
            failed_at = self._negative.get(key)
            if failed_at is None:
                return False
            if self._clock() - failed_at < self.negative_ttl_seconds:
                return True
            del self._negative[key]
            logger.debug("Negative cache entry expired for %s", key)
            return False

    def mark_failed(self, key: str) -> None:
        with self._lock:
            self._negative[key] = self._clock()

    def get_reverse(self, key: str) -> str | None:
        with self._lock:
            return self._reverse.get(key)

    def put_reverse(self, key: str, display_name: str) -> None:
        with self._lock:
            self._reverse.setdefault(key, display_name)

    def prune_expired(self) -> int:
        """Drop expired negative entries. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, failed_at in self._negative.items() if now - failed_at >= self.negative_ttl_seconds]
            for key in expired:
                del self._negative[key]
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._positive.clear()
            self._negative.clear()
            self._reverse.clear()

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "positive": len(self._positive),
                "negative": len(self._negative),
                "reverse": len(self._reverse),
            }
